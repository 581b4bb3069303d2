"""Delivery staff blueprint. Writes are admin-only."""
from typing import Tuple

from flask import Blueprint, request, jsonify, Response

from restopos.middleware import require_auth, require_tenant, get_tenant_session
from restopos.decorators.permissions import require_role
from restopos.services import delivery_boy_service

delivery_boys_bp = Blueprint('delivery_boys', __name__, url_prefix='/api/delivery-boys')


@delivery_boys_bp.route('', methods=['GET'])
@require_auth
@require_tenant
def list_delivery_boys() -> Response:
    boys = delivery_boy_service.list_delivery_boys(get_tenant_session(), status=request.args.get('status') or None)
    return jsonify([boy.to_dict() for boy in boys])


@delivery_boys_bp.route('/<int:delivery_boy_id>', methods=['GET'])
@require_auth
@require_tenant
def get_delivery_boy(delivery_boy_id: int) -> Response:
    return jsonify(delivery_boy_service.get_delivery_boy(get_tenant_session(), delivery_boy_id).to_dict())


@delivery_boys_bp.route('', methods=['POST'])
@require_auth
@require_tenant
@require_role('admin')
def create_delivery_boy() -> Tuple[Response, int]:
    boy = delivery_boy_service.create_delivery_boy(get_tenant_session(), request.get_json(silent=True) or {})
    return jsonify(boy.to_dict()), 201


@delivery_boys_bp.route('/<int:delivery_boy_id>', methods=['PUT'])
@require_auth
@require_tenant
@require_role('admin')
def update_delivery_boy(delivery_boy_id: int) -> Response:
    boy = delivery_boy_service.update_delivery_boy(
        get_tenant_session(), delivery_boy_id, request.get_json(silent=True) or {}
    )
    return jsonify(boy.to_dict())


@delivery_boys_bp.route('/<int:delivery_boy_id>', methods=['DELETE'])
@require_auth
@require_tenant
@require_role('admin')
def delete_delivery_boy(delivery_boy_id: int) -> Response:
    """Delete a delivery person; 409 while a delivery is still open."""
    delivery_boy_service.delete_delivery_boy(get_tenant_session(), delivery_boy_id)
    return jsonify({'message': 'Delivery boy deleted successfully'})
