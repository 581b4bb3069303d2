"""Held sales blueprint - park and resume carts at the POS."""
from typing import Tuple

from flask import Blueprint, request, jsonify, g, Response

from restopos.middleware import require_auth, require_tenant, get_tenant_session
from restopos.services import held_sale_service

held_sales_bp = Blueprint('held_sales', __name__, url_prefix='/api/held-sales')


@held_sales_bp.route('', methods=['GET'])
@require_auth
@require_tenant
def list_held() -> Response:
    held = held_sale_service.list_held_sales(get_tenant_session())
    return jsonify([item.to_dict() for item in held])


@held_sales_bp.route('', methods=['POST'])
@require_auth
@require_tenant
def hold() -> Tuple[Response, int]:
    held = held_sale_service.hold_sale(get_tenant_session(), request.get_json(silent=True) or {}, g.principal)
    return jsonify(held.to_dict()), 201


@held_sales_bp.route('/<int:held_id>', methods=['GET'])
@require_auth
@require_tenant
def get_held(held_id: int) -> Response:
    return jsonify(held_sale_service.get_held_sale(get_tenant_session(), held_id).to_dict())


@held_sales_bp.route('/<int:held_id>/resume', methods=['POST'])
@require_auth
@require_tenant
def resume(held_id: int) -> Response:
    """Return the held cart and remove it from the hold list."""
    return jsonify(held_sale_service.resume_held_sale(get_tenant_session(), held_id))


@held_sales_bp.route('/<int:held_id>', methods=['DELETE'])
@require_auth
@require_tenant
def delete_held(held_id: int) -> Response:
    held_sale_service.delete_held_sale(get_tenant_session(), held_id)
    return jsonify({'message': 'Held sale deleted successfully'})
