from flask import request, jsonify, current_app
from werkzeug.utils import secure_filename

from . import loans_bp
from ..auth.decorators import login_required, role_required, current_user
from ..db import get_supabase
from ..errors import ValidationError
from ..lifecycle import calculate_loan_terms
from ..roles import Capability
from ..settings import SettingsService
from .service import ApplicationService, DOCUMENT_FIELDS


def settings_service():
    return SettingsService.from_config(get_supabase(), current_app.config)


def application_service():
    client = get_supabase()
    return ApplicationService(
        client,
        SettingsService.from_config(client, current_app.config),
        strict_transitions=current_app.config.get('STRICT_STATUS_TRANSITIONS', False),
    )


def _application_form():
    """Collect form fields from JSON or multipart; uploads are kept as filenames only."""
    if request.is_json:
        data = request.get_json(silent=True)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValidationError('Request body must be a JSON object')
        return data
    form = request.form.to_dict()
    for field in DOCUMENT_FIELDS:
        upload = request.files.get(field)
        if upload and upload.filename:
            form[field] = secure_filename(upload.filename)
    return form


@loans_bp.route('/apply', methods=['POST'])
@login_required
@role_required(Capability.APPLY_LOAN)
def apply_loan():
    user = current_user()
    loan = application_service().submit(user['id'], _application_form())
    current_app.logger.info(f"Loan {loan['id']} submitted by {user['email']}")
    return jsonify({'status': 'success', 'data': loan}), 201


@loans_bp.route('', methods=['GET'])
@login_required
def list_loans():
    user = current_user()
    loans = application_service().list(user['role'], user['id'], request.args.get('status'))
    return jsonify({'status': 'success', 'data': loans}), 200


@loans_bp.route('/<loan_id>', methods=['GET'])
@login_required
def get_loan(loan_id):
    user = current_user()
    loan = application_service().get(loan_id, user['role'], user['id'])
    return jsonify({'status': 'success', 'data': loan}), 200


@loans_bp.route('/settings/limits', methods=['GET'])
def get_loan_limits():
    return jsonify({'status': 'success', 'data': settings_service().get_limits()}), 200


@loans_bp.route('/settings/payment-numbers', methods=['GET'])
def get_payment_numbers():
    return jsonify({'status': 'success', 'data': settings_service().get_payment_numbers()}), 200


@loans_bp.route('/calculate', methods=['GET'])
def calculate():
    """
    EMI calculator for the public loan page.
    Query params: amount, duration (months)
    Bad or non-positive input yields zeros rather than an error.
    """
    rate = settings_service().get_interest_rate()
    terms = calculate_loan_terms(
        request.args.get('amount', 0),
        request.args.get('duration', 0),
        rate,
    )
    return jsonify({
        'status': 'success',
        'data': {
            'interest_rate': rate,
            'emi_amount': terms.emi_amount,
            'total_interest': terms.total_interest,
            'total_repayment': terms.total_repayment,
            'down_payment': terms.down_payment,
        }
    }), 200
