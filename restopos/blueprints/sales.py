"""Sales blueprint - POS sale commit, history and deletion - Multi-Tenant."""
from decimal import Decimal
from typing import Tuple

from flask import Blueprint, request, jsonify, current_app, g, Response

from restopos.middleware import require_auth, require_tenant, get_tenant_session
from restopos.decorators.permissions import require_role
from restopos.blueprints.metrics import record_sale
from restopos.services.sales_service import commit_sale, get_sale, list_sales
from restopos.services.sale_delete_service import delete_sale_with_reversal
from restopos.utils.number_format import parse_optional_int

sales_bp = Blueprint('sales', __name__, url_prefix='/api/sales')


@sales_bp.route('', methods=['GET'])
@require_auth
@require_tenant
def sales_list() -> Response:
    """Sale history, newest first. Filters: start_date, end_date, search, payment_method, delivery_status, order_type, limit."""
    sales = list_sales(
        get_tenant_session(),
        start_date=request.args.get('start_date') or None,
        end_date=request.args.get('end_date') or None,
        search=request.args.get('search') or None,
        payment_method=request.args.get('payment_method') or None,
        delivery_status=request.args.get('delivery_status') or None,
        order_type=request.args.get('order_type') or None,
        limit=parse_optional_int(request.args.get('limit'), 'limit'),
    )
    return jsonify([sale.to_dict(include_items=False) for sale in sales])


@sales_bp.route('', methods=['POST'])
@require_auth
@require_tenant
def sales_create() -> Tuple[Response, int]:
    """
    Commit a sale.

    Totals sent by the client are verified against the lines within
    MONEY_TOLERANCE; stock is decremented for tracked products in the same
    transaction.
    """
    config = current_app.config
    sale = commit_sale(
        get_tenant_session(),
        request.get_json(silent=True) or {},
        g.principal,
        tolerance=Decimal(str(config.get('MONEY_TOLERANCE', '0.01'))),
        enforce_catalog_prices=config.get('ENFORCE_CATALOG_PRICES', False),
        max_attempts=config.get('SALE_NUMBER_ATTEMPTS', 3),
    )
    record_sale(sale.payment_method)
    return jsonify(sale.to_dict()), 201


@sales_bp.route('/<int:sale_id>', methods=['GET'])
@require_auth
@require_tenant
def sales_detail(sale_id: int) -> Response:
    return jsonify(get_sale(get_tenant_session(), sale_id).to_dict())


@sales_bp.route('/<int:sale_id>', methods=['DELETE'])
@require_auth
@require_tenant
@require_role('admin')
def sales_delete(sale_id: int) -> Response:
    """Delete a sale and restore stock for its tracked products."""
    result = delete_sale_with_reversal(sale_id, get_tenant_session())
    current_app.logger.info(f"Sale {result['sale_number']} deleted by {g.principal['username']} in {g.tenant_code}")
    return jsonify(result)
