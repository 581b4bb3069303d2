"""
User management blueprint.
Allows tenant admins to create, edit and remove cashiers and admins.
"""
from typing import Tuple

from flask import Blueprint, request, jsonify, g, Response

from restopos.middleware import require_auth, require_tenant, get_tenant_session
from restopos.decorators.permissions import require_role
from restopos.services import user_service

users_bp = Blueprint('users', __name__, url_prefix='/api/users')


@users_bp.route('', methods=['GET'])
@require_auth
@require_tenant
@require_role('admin')
def list_users() -> Response:
    return jsonify([user.to_dict() for user in user_service.list_users(get_tenant_session())])


@users_bp.route('/<int:user_id>', methods=['GET'])
@require_auth
@require_tenant
@require_role('admin')
def get_user(user_id: int) -> Response:
    return jsonify(user_service.get_user(get_tenant_session(), user_id).to_dict())


@users_bp.route('', methods=['POST'])
@require_auth
@require_tenant
@require_role('admin')
def create_user() -> Tuple[Response, int]:
    user = user_service.create_user(get_tenant_session(), request.get_json(silent=True) or {})
    return jsonify(user.to_dict()), 201


@users_bp.route('/<int:user_id>', methods=['PUT'])
@require_auth
@require_tenant
@require_role('admin')
def update_user(user_id: int) -> Response:
    user = user_service.update_user(get_tenant_session(), user_id, request.get_json(silent=True) or {})
    return jsonify(user.to_dict())


@users_bp.route('/<int:user_id>', methods=['DELETE'])
@require_auth
@require_tenant
@require_role('admin')
def delete_user(user_id: int) -> Response:
    user_service.delete_user(get_tenant_session(), user_id, g.principal)
    return jsonify({'message': 'User deleted successfully'})
