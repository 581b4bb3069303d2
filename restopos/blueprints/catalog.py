"""Catalog blueprint - categories and products - Multi-Tenant."""
from typing import Tuple

from flask import Blueprint, request, jsonify, Response

from restopos.middleware import require_auth, require_tenant, get_tenant_session
from restopos.services import catalog_service

catalog_bp = Blueprint('catalog', __name__, url_prefix='/api')


# ============================================================================
# Categories
# ============================================================================

@catalog_bp.route('/categories', methods=['GET'])
@require_auth
@require_tenant
def categories_list() -> Response:
    categories = catalog_service.list_categories(get_tenant_session())
    return jsonify([category.to_dict() for category in categories])


@catalog_bp.route('/categories/<int:category_id>', methods=['GET'])
@require_auth
@require_tenant
def categories_detail(category_id: int) -> Response:
    return jsonify(catalog_service.get_category(get_tenant_session(), category_id).to_dict())


@catalog_bp.route('/categories', methods=['POST'])
@require_auth
@require_tenant
def categories_create() -> Tuple[Response, int]:
    category = catalog_service.create_category(get_tenant_session(), request.get_json(silent=True) or {})
    return jsonify(category.to_dict()), 201


@catalog_bp.route('/categories/<int:category_id>', methods=['PUT'])
@require_auth
@require_tenant
def categories_update(category_id: int) -> Response:
    category = catalog_service.update_category(
        get_tenant_session(), category_id, request.get_json(silent=True) or {}
    )
    return jsonify(category.to_dict())


@catalog_bp.route('/categories/<int:category_id>', methods=['DELETE'])
@require_auth
@require_tenant
def categories_delete(category_id: int) -> Response:
    """Delete a category; 409 while products still reference it."""
    catalog_service.delete_category(get_tenant_session(), category_id)
    return jsonify({'message': 'Category deleted successfully'})


# ============================================================================
# Products
# ============================================================================

@catalog_bp.route('/products', methods=['GET'])
@require_auth
@require_tenant
def products_list() -> Response:
    products = catalog_service.list_products(
        get_tenant_session(),
        category_id=request.args.get('category_id'),
        search=request.args.get('search') or None,
    )
    return jsonify([product.to_dict() for product in products])


@catalog_bp.route('/products/<int:product_id>', methods=['GET'])
@require_auth
@require_tenant
def products_detail(product_id: int) -> Response:
    return jsonify(catalog_service.get_product(get_tenant_session(), product_id).to_dict())


@catalog_bp.route('/products', methods=['POST'])
@require_auth
@require_tenant
def products_create() -> Tuple[Response, int]:
    product = catalog_service.create_product(get_tenant_session(), request.get_json(silent=True) or {})
    return jsonify(product.to_dict()), 201


@catalog_bp.route('/products/<int:product_id>', methods=['PUT'])
@require_auth
@require_tenant
def products_update(product_id: int) -> Response:
    product = catalog_service.update_product(
        get_tenant_session(), product_id, request.get_json(silent=True) or {}
    )
    return jsonify(product.to_dict())


@catalog_bp.route('/products/<int:product_id>', methods=['DELETE'])
@require_auth
@require_tenant
def products_delete(product_id: int) -> Response:
    catalog_service.delete_product(get_tenant_session(), product_id)
    return jsonify({'message': 'Product deleted successfully'})
