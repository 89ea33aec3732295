from flask import request, jsonify, current_app

from . import auth_bp
from ..db import get_supabase
from ..errors import AuthenticationError, ValidationError
from .decorators import login_required, current_user
from .tokens import create_jwt
from .users import UserStore, public_profile


def _payload():
    data = request.get_json(silent=True)
    if data is None:
        return request.form.to_dict()
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def _session_response(user, status_code=200):
    profile = public_profile(user)
    profile['token'] = create_jwt(user)
    return jsonify({'status': 'success', 'data': profile}), status_code


@auth_bp.route('/register', methods=['POST'])
def register():
    data = _payload()
    # Role is never taken from the request; new accounts are always plain users
    user = UserStore(get_supabase()).create(
        full_name=data.get('full_name'),
        email=data.get('email'),
        password=data.get('password'),
        phone_number=data.get('phone_number'),
        address=data.get('address'),
    )
    current_app.logger.info(f"New registration: {user['email']}")
    return _session_response(user, 201)


@auth_bp.route('/login', methods=['POST'])
def login():
    data = _payload()
    email = data.get('email')
    password = data.get('password')
    if not email or not password:
        raise ValidationError('Email and password required')
    if not isinstance(email, str) or not isinstance(password, str):
        raise ValidationError('Email and password must be strings')
    users = UserStore(get_supabase())
    user = users.find_by_email(email)
    if not user or not users.verify_password(user, password):
        current_app.logger.info(f"Failed login for {email}")
        raise AuthenticationError('Invalid email or password')
    return _session_response(user)


@auth_bp.route('/me', methods=['GET'])
@login_required
def me():
    return jsonify({'status': 'success', 'data': public_profile(current_user())}), 200
