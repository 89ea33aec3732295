from flask import request, jsonify, current_app

from . import admin_bp
from ..auth.decorators import login_required, role_required, current_user
from ..auth.users import UserStore
from ..db import get_supabase
from ..errors import ValidationError
from ..loans.routes import application_service, settings_service
from ..roles import Capability


def _body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


@admin_bp.route('/users', methods=['GET'])
@login_required
@role_required(Capability.LIST_USERS)
def list_users():
    users = UserStore(get_supabase()).list_all(current_user()['role'])
    return jsonify({'status': 'success', 'data': users}), 200


@admin_bp.route('/users/<user_id>/role', methods=['PUT'])
@login_required
@role_required(Capability.CHANGE_ROLE)
def update_user_role(user_id):
    caller = current_user()
    user = UserStore(get_supabase()).set_role(user_id, _body().get('role'), caller['role'])
    current_app.logger.info(f"{caller['email']} set role of {user_id} to {user['role']}")
    return jsonify({'status': 'success', 'message': 'User role updated successfully', 'data': user}), 200


@admin_bp.route('/loans/<loan_id>/status', methods=['PUT'])
@login_required
@role_required(Capability.SET_LOAN_STATUS)
def update_loan_status(loan_id):
    caller = current_user()
    loan = application_service().set_status(loan_id, _body().get('status'), caller['role'])
    current_app.logger.info(f"{caller['email']} set loan {loan_id} to {loan['status']}")
    return jsonify({'status': 'success', 'data': loan}), 200


@admin_bp.route('/settings/loan-limits', methods=['PUT'])
@login_required
@role_required(Capability.MANAGE_SETTINGS)
def update_loan_limits():
    data = _body()
    limits = settings_service().set_limits(data.get('min'), data.get('max'), current_user()['role'])
    return jsonify({'status': 'success', 'data': limits}), 200


@admin_bp.route('/settings/payment-numbers', methods=['PUT'])
@login_required
@role_required(Capability.MANAGE_SETTINGS)
def update_payment_numbers():
    numbers = settings_service().set_payment_numbers(_body(), current_user()['role'])
    return jsonify({'status': 'success', 'data': numbers}), 200
