"""Tenant provisioning blueprint (super-admin only)."""
from typing import Tuple

from flask import Blueprint, request, jsonify, Response

from restopos.database import get_session
from restopos.middleware import require_auth
from restopos.decorators.permissions import super_admin_required
from restopos.services import tenant_service
from restopos.tenant_db import get_tenant_stores

tenants_bp = Blueprint('tenants', __name__, url_prefix='/api/tenants')


@tenants_bp.route('', methods=['GET'])
@require_auth
@super_admin_required
def list_tenants() -> Response:
    tenants = tenant_service.list_tenants(
        get_session(),
        status=request.args.get('status') or None,
        search=request.args.get('search') or None,
    )
    return jsonify([tenant.to_dict() for tenant in tenants])


@tenants_bp.route('', methods=['POST'])
@require_auth
@super_admin_required
def create_tenant() -> Tuple[Response, int]:
    """Create the directory record and the tenant's store file."""
    tenant = tenant_service.create_tenant(
        get_session(), get_tenant_stores(), request.get_json(silent=True) or {}
    )
    return jsonify(tenant.to_dict()), 201


@tenants_bp.route('/<int:tenant_id>', methods=['GET'])
@require_auth
@super_admin_required
def get_tenant(tenant_id: int) -> Response:
    return jsonify(tenant_service.get_tenant(get_session(), tenant_id).to_dict())


@tenants_bp.route('/<int:tenant_id>', methods=['PUT'])
@require_auth
@super_admin_required
def update_tenant(tenant_id: int) -> Response:
    tenant = tenant_service.update_tenant(
        get_session(), get_tenant_stores(), tenant_id, request.get_json(silent=True) or {}
    )
    return jsonify(tenant.to_dict())


@tenants_bp.route('/<int:tenant_id>', methods=['DELETE'])
@require_auth
@super_admin_required
def delete_tenant(tenant_id: int) -> Response:
    tenant_service.delete_tenant(get_session(), get_tenant_stores(), tenant_id)
    return jsonify({'message': 'Tenant deleted successfully'})
