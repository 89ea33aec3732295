import logging

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from .config import Config
from .db import init_supabase
from .errors import LoanDeskError


def create_app(config_object=None, supabase_client=None):
    app = Flask(__name__)
    app.config.from_object(config_object or Config)
    app.logger.setLevel(app.config.get('LOG_LEVEL', 'INFO'))
    logging.getLogger('loandesk').setLevel(app.config.get('LOG_LEVEL', 'INFO'))

    init_supabase(app, supabase_client)

    # Register blueprints
    from .auth import auth_bp
    from .loans import loans_bp
    from .admin import admin_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(loans_bp)
    app.register_blueprint(admin_bp)

    register_error_handlers(app)
    register_cli(app)

    return app


def register_error_handlers(app):
    @app.errorhandler(LoanDeskError)
    def handle_loandesk_error(e):
        if e.status_code >= 500:
            app.logger.error(f"Unhandled service error: {e}")
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify({'status': 'error', 'message': e.description}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        app.logger.exception(f"Unexpected error: {e}")
        return jsonify({'status': 'error', 'message': 'Internal server error'}), 500


def register_cli(app):
    from .cli import seed_users
    app.cli.add_command(seed_users)

