"""Customers blueprint - Multi-Tenant."""
from typing import Tuple

from flask import Blueprint, request, jsonify, Response

from restopos.middleware import require_auth, require_tenant, get_tenant_session
from restopos.services import catalog_service

customers_bp = Blueprint('customers', __name__, url_prefix='/api/customers')


@customers_bp.route('', methods=['GET'])
@require_auth
@require_tenant
def list_customers() -> Response:
    customers = catalog_service.list_customers(get_tenant_session(), search=request.args.get('search') or None)
    return jsonify([customer.to_dict() for customer in customers])


@customers_bp.route('/<int:customer_id>', methods=['GET'])
@require_auth
@require_tenant
def get_customer(customer_id: int) -> Response:
    return jsonify(catalog_service.get_customer(get_tenant_session(), customer_id).to_dict())


@customers_bp.route('', methods=['POST'])
@require_auth
@require_tenant
def create_customer() -> Tuple[Response, int]:
    customer = catalog_service.create_customer(get_tenant_session(), request.get_json(silent=True) or {})
    return jsonify(customer.to_dict()), 201


@customers_bp.route('/<int:customer_id>', methods=['PUT'])
@require_auth
@require_tenant
def update_customer(customer_id: int) -> Response:
    customer = catalog_service.update_customer(
        get_tenant_session(), customer_id, request.get_json(silent=True) or {}
    )
    return jsonify(customer.to_dict())


@customers_bp.route('/<int:customer_id>', methods=['DELETE'])
@require_auth
@require_tenant
def delete_customer(customer_id: int) -> Response:
    catalog_service.delete_customer(get_tenant_session(), customer_id)
    return jsonify({'message': 'Customer deleted successfully'})
