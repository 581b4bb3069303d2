"""Deliveries blueprint - pay-after-delivery tracking and settlement."""
from flask import Blueprint, request, jsonify, current_app, Response

from restopos.middleware import require_auth, require_tenant, get_tenant_session
from restopos.decorators.permissions import require_role
from restopos.services import delivery_service
from restopos.services.delivery_boy_service import list_delivery_boys

deliveries_bp = Blueprint('deliveries', __name__, url_prefix='/api/deliveries')


def _strict() -> bool:
    return bool(current_app.config.get('DELIVERY_STRICT_TRANSITIONS', False))


@deliveries_bp.route('', methods=['GET'])
@require_auth
@require_tenant
def deliveries_list() -> Response:
    deliveries = delivery_service.list_deliveries(
        get_tenant_session(),
        status=request.args.get('status') or None,
        delivery_boy_id=request.args.get('delivery_boy_id') or None,
        start_date=request.args.get('start_date') or None,
        end_date=request.args.get('end_date') or None,
    )
    return jsonify(deliveries)


@deliveries_bp.route('/delivery-boys', methods=['GET'])
@require_auth
@require_tenant
def active_delivery_boys() -> Response:
    """Active delivery persons for the assignment picker."""
    boys = list_delivery_boys(get_tenant_session(), status='active')
    return jsonify([boy.to_dict() for boy in boys])


@deliveries_bp.route('/<int:sale_id>/assign', methods=['PUT'])
@require_auth
@require_tenant
def assign(sale_id: int) -> Response:
    data = request.get_json(silent=True) or {}
    sale = delivery_service.assign_delivery_boy(
        get_tenant_session(), sale_id, data.get('delivery_boy_id'), strict=_strict()
    )
    return jsonify({'message': 'Delivery boy assigned successfully', 'sale': sale.to_dict(include_items=False)})


@deliveries_bp.route('/<int:sale_id>/status', methods=['PUT'])
@require_auth
@require_tenant
def update_status(sale_id: int) -> Response:
    data = request.get_json(silent=True) or {}
    sale = delivery_service.update_delivery_status(
        get_tenant_session(), sale_id, data.get('status'), strict=_strict()
    )
    return jsonify({'message': 'Delivery status updated successfully', 'sale': sale.to_dict(include_items=False)})


@deliveries_bp.route('/settlement', methods=['GET'])
@require_auth
@require_tenant
@require_role('admin')
def settlement() -> Response:
    """Per delivery person collected/settled/pending totals for a day (default today)."""
    summary = delivery_service.settlement_summary(
        get_tenant_session(),
        settlement_date=request.args.get('date') or None,
        delivery_boy_id=request.args.get('delivery_boy_id') or None,
    )
    return jsonify(summary)


@deliveries_bp.route('/settle', methods=['POST'])
@require_auth
@require_tenant
@require_role('admin')
def settle() -> Response:
    data = request.get_json(silent=True) or {}
    result = delivery_service.settle_deliveries(
        get_tenant_session(),
        delivery_boy_id=data.get('delivery_boy_id'),
        settlement_date=data.get('date') or None,
    )
    return jsonify(result)


@deliveries_bp.route('/settle-partial', methods=['POST'])
@require_auth
@require_tenant
@require_role('admin')
def settle_partial() -> Response:
    data = request.get_json(silent=True) or {}
    result = delivery_service.settle_partial(
        get_tenant_session(),
        data.get('delivery_boy_id'),
        data.get('amount'),
        settlement_date=data.get('date') or None,
    )
    return jsonify(result)
