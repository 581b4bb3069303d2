"""Reports blueprint - sales, product performance and per-operator totals."""
from flask import Blueprint, request, jsonify, Response

from restopos.middleware import require_auth, require_tenant, get_tenant_session
from restopos.services import report_service

reports_bp = Blueprint('reports', __name__, url_prefix='/api/reports')


def _range():
    return request.args.get('start_date') or None, request.args.get('end_date') or None


@reports_bp.route('/sales')
@require_auth
@require_tenant
def sales_report() -> Response:
    start_date, end_date = _range()
    return jsonify(report_service.sales_report(
        get_tenant_session(), start_date, end_date,
        payment_method=request.args.get('payment_method') or None,
        order_type=request.args.get('order_type') or None,
    ))


@reports_bp.route('/products')
@require_auth
@require_tenant
def products_report() -> Response:
    start_date, end_date = _range()
    return jsonify(report_service.products_report(get_tenant_session(), start_date, end_date))


@reports_bp.route('/users')
@require_auth
@require_tenant
def users_report() -> Response:
    start_date, end_date = _range()
    return jsonify(report_service.users_report(get_tenant_session(), start_date, end_date))
