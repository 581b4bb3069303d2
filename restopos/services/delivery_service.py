"""
Delivery lifecycle and settlement accounting for pay-after-delivery sales.

States: pending -> assigned -> out_for_delivery -> delivered ->
payment_collected -> settled.

Transitions are permissive by default: any of the six states may be set
directly. With ``strict=True`` only the forward moves listed in
STRICT_TRANSITIONS are accepted.
"""
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import case, func
from sqlalchemy.orm import joinedload

from restopos.exceptions import PosError, BusinessLogicError, NotFoundError
from restopos.models import Sale, SaleItem, DeliveryBoy, Customer, PaymentMethod, DeliveryStatus
from restopos.services.sales_service import parse_date
from restopos.utils.number_format import parse_decimal, parse_optional_int, quantize_money

logger = logging.getLogger(__name__)

ZERO = Decimal('0')

STRICT_TRANSITIONS = {
    None: {DeliveryStatus.PENDING, DeliveryStatus.ASSIGNED},
    DeliveryStatus.PENDING: {DeliveryStatus.ASSIGNED},
    DeliveryStatus.ASSIGNED: {DeliveryStatus.ASSIGNED, DeliveryStatus.OUT_FOR_DELIVERY},
    DeliveryStatus.OUT_FOR_DELIVERY: {DeliveryStatus.DELIVERED},
    DeliveryStatus.DELIVERED: {DeliveryStatus.PAYMENT_COLLECTED},
    DeliveryStatus.PAYMENT_COLLECTED: {DeliveryStatus.SETTLED},
    DeliveryStatus.SETTLED: set(),
}


def _get_delivery_sale(session, sale_id: int) -> Sale:
    sale = session.get(Sale, sale_id)
    if not sale:
        raise NotFoundError(f'Sale {sale_id} not found')
    if not sale.is_pay_after_delivery:
        raise BusinessLogicError('This sale is not a pay-after-delivery order')
    return sale


def _check_transition(sale: Sale, new_status: str, strict: bool) -> None:
    if not strict:
        return
    allowed = STRICT_TRANSITIONS.get(sale.delivery_status, set())
    if new_status not in allowed:
        raise BusinessLogicError(
            f'Cannot move delivery from {sale.delivery_status or "none"} to {new_status}',
            payload={'from': sale.delivery_status, 'to': new_status}
        )


def _settlement_date(value: Optional[str]) -> str:
    return parse_date(value, 'date') if value else date.today().isoformat()


def assign_delivery_boy(session, sale_id: int, delivery_boy_id, strict: bool = False) -> Sale:
    """
    Assign an active delivery person to a pay-after-delivery sale.

    Raises:
        BusinessLogicError: missing id, not a pay-after-delivery sale, or a
            rejected transition in strict mode
        NotFoundError: sale missing, or delivery person missing/inactive
    """
    delivery_boy_id = parse_optional_int(delivery_boy_id, 'delivery_boy_id')
    if delivery_boy_id is None:
        raise BusinessLogicError('Delivery boy ID is required')

    try:
        sale = _get_delivery_sale(session, sale_id)

        delivery_boy = session.get(DeliveryBoy, delivery_boy_id)
        if not delivery_boy or not delivery_boy.is_active:
            raise NotFoundError('Delivery boy not found or inactive')

        _check_transition(sale, DeliveryStatus.ASSIGNED, strict)

        sale.delivery_boy_id = delivery_boy.id
        sale.delivery_status = DeliveryStatus.ASSIGNED
        sale.delivery_assigned_at = datetime.now()
        session.commit()
    except PosError:
        session.rollback()
        raise

    logger.info(f"Assigned sale {sale.sale_number} to delivery boy {delivery_boy.id}")
    return sale


def update_delivery_status(session, sale_id: int, status: str, strict: bool = False) -> Sale:
    """
    Set the delivery status of a pay-after-delivery sale.

    Side effects per target state:
    - out_for_delivery: back-fills delivery_assigned_at if unset
    - delivered: stamps delivery_delivered_at
    - payment_collected: sets delivery_payment_collected
    - settled: stamps delivery_settled_at and records the full total as settled
    """
    if status not in DeliveryStatus.ALL:
        raise BusinessLogicError('Invalid delivery status', payload={'allowed': list(DeliveryStatus.ALL)})

    try:
        sale = _get_delivery_sale(session, sale_id)
        _check_transition(sale, status, strict)

        now = datetime.now()
        sale.delivery_status = status
        if status == DeliveryStatus.OUT_FOR_DELIVERY:
            if sale.delivery_assigned_at is None:
                sale.delivery_assigned_at = now
        elif status == DeliveryStatus.DELIVERED:
            sale.delivery_delivered_at = now
        elif status == DeliveryStatus.PAYMENT_COLLECTED:
            sale.delivery_payment_collected = True
        elif status == DeliveryStatus.SETTLED:
            sale.delivery_settled_at = now
            sale.delivery_settled_amount = sale.total

        session.commit()
    except PosError:
        session.rollback()
        raise

    logger.info(f"Sale {sale.sale_number} delivery status -> {status}")
    return sale


def list_deliveries(session, status: Optional[str] = None, delivery_boy_id=None,
                    start_date: Optional[str] = None, end_date: Optional[str] = None) -> List[Dict]:
    """List pay-after-delivery sales with customer contact and item counts."""
    item_count = session.query(func.count(SaleItem.id)).filter(
        SaleItem.sale_id == Sale.id
    ).correlate(Sale).scalar_subquery()

    query = session.query(Sale, item_count.label('item_count')).options(
        joinedload(Sale.customer), joinedload(Sale.delivery_boy)
    ).filter(Sale.payment_method == PaymentMethod.PAY_AFTER_DELIVERY)

    if status:
        query = query.filter(Sale.delivery_status == status)
    delivery_boy_id = parse_optional_int(delivery_boy_id, 'delivery_boy_id')
    if delivery_boy_id is not None:
        query = query.filter(Sale.delivery_boy_id == delivery_boy_id)
    if start_date:
        query = query.filter(func.date(Sale.created_at) >= parse_date(start_date, 'start_date'))
    if end_date:
        query = query.filter(func.date(Sale.created_at) <= parse_date(end_date, 'end_date'))

    rows = query.order_by(Sale.created_at.desc(), Sale.id.desc()).all()

    deliveries = []
    for sale, count in rows:
        data = sale.to_dict(include_items=False)
        customer: Optional[Customer] = sale.customer
        data['customer_address'] = customer.address if customer else None
        data['customer_city'] = customer.city if customer else None
        data['item_count'] = count
        deliveries.append(data)
    return deliveries


def settlement_summary(session, settlement_date: Optional[str] = None, delivery_boy_id=None) -> List[Dict]:
    """
    Per delivery person totals for one calendar day of sales.

    total_collected: sum of totals in payment_collected or settled
    total_settled: sum of settled amounts of those sales
    pending_settlement: total_collected - total_settled
    """
    day = _settlement_date(settlement_date)
    collected = Sale.delivery_status.in_(DeliveryStatus.COLLECTED)

    query = session.query(
        DeliveryBoy.id,
        DeliveryBoy.name,
        func.count(Sale.id),
        func.coalesce(func.sum(case((collected, Sale.total), else_=0)), 0),
        func.coalesce(func.sum(case((collected, Sale.delivery_settled_amount), else_=0)), 0),
    ).join(DeliveryBoy, Sale.delivery_boy_id == DeliveryBoy.id).filter(
        Sale.payment_method == PaymentMethod.PAY_AFTER_DELIVERY,
        func.date(Sale.created_at) == day,
    )

    delivery_boy_id = parse_optional_int(delivery_boy_id, 'delivery_boy_id')
    if delivery_boy_id is not None:
        query = query.filter(Sale.delivery_boy_id == delivery_boy_id)

    summary = []
    for boy_id, boy_name, deliveries, total_collected, total_settled in query.group_by(
            DeliveryBoy.id, DeliveryBoy.name).order_by(DeliveryBoy.name).all():
        total_collected = quantize_money(total_collected)
        total_settled = quantize_money(total_settled)
        summary.append({
            'delivery_boy_id': boy_id,
            'delivery_boy_name': boy_name,
            'date': day,
            'total_deliveries': deliveries,
            'total_collected': float(total_collected),
            'total_settled': float(total_settled),
            'pending_settlement': float(max(total_collected - total_settled, ZERO)),
        })
    return summary


def settle_deliveries(session, delivery_boy_id=None, settlement_date: Optional[str] = None) -> Dict:
    """
    Mark every collected, unsettled sale of the person/day as settled in one
    bulk update.
    """
    day = _settlement_date(settlement_date)
    delivery_boy_id = parse_optional_int(delivery_boy_id, 'delivery_boy_id')

    query = session.query(Sale).filter(
        Sale.payment_method == PaymentMethod.PAY_AFTER_DELIVERY,
        Sale.delivery_status == DeliveryStatus.PAYMENT_COLLECTED,
        Sale.delivery_settled_at.is_(None),
        func.date(Sale.created_at) == day,
    )
    if delivery_boy_id is not None:
        query = query.filter(Sale.delivery_boy_id == delivery_boy_id)

    try:
        settled_count = query.update({
            Sale.delivery_status: DeliveryStatus.SETTLED,
            Sale.delivery_settled_at: datetime.now(),
            Sale.delivery_settled_amount: Sale.total,
        }, synchronize_session=False)
        session.commit()
    except Exception:
        session.rollback()
        raise

    session.expire_all()
    logger.info(f"Settled {settled_count} delivery payment(s) for boy={delivery_boy_id} date={day}")
    return {
        'message': f'Settled {settled_count} delivery payment(s)',
        'settled_count': settled_count,
        'date': day,
    }


def settle_partial(session, delivery_boy_id, amount, settlement_date: Optional[str] = None) -> Dict:
    """
    Apply a collected amount to the person's pending sales of the day,
    oldest first.

    Raises:
        BusinessLogicError: missing delivery person, non-positive amount,
            nothing pending, or amount above the pending total (no changes made)
    """
    delivery_boy_id = parse_optional_int(delivery_boy_id, 'delivery_boy_id')
    if delivery_boy_id is None:
        raise BusinessLogicError('Delivery boy ID is required')
    amount = parse_decimal(amount, 'amount')
    if amount <= 0:
        raise BusinessLogicError('Settlement amount must be greater than zero')
    amount = quantize_money(amount)
    day = _settlement_date(settlement_date)

    try:
        sales = session.query(Sale).filter(
            Sale.payment_method == PaymentMethod.PAY_AFTER_DELIVERY,
            Sale.delivery_boy_id == delivery_boy_id,
            Sale.delivery_status.in_(DeliveryStatus.COLLECTED),
            Sale.total > Sale.delivery_settled_amount,
            func.date(Sale.created_at) == day,
        ).order_by(Sale.created_at.asc(), Sale.id.asc()).all()

        if not sales:
            raise BusinessLogicError('No pending deliveries found for this delivery boy and date')

        pending = sum((quantize_money(s.total - (s.delivery_settled_amount or ZERO)) for s in sales), ZERO)
        if amount > pending:
            raise BusinessLogicError(
                f'Settlement amount {amount} exceeds pending amount {pending}',
                payload={'pending_settlement': float(pending)}
            )

        remaining = amount
        affected = 0
        now = datetime.now()
        for sale in sales:
            if remaining <= 0:
                break
            outstanding = quantize_money(sale.total - (sale.delivery_settled_amount or ZERO))
            apply = min(outstanding, remaining)
            sale.delivery_settled_amount = quantize_money((sale.delivery_settled_amount or ZERO) + apply)
            if sale.delivery_settled_amount >= sale.total:
                sale.delivery_status = DeliveryStatus.SETTLED
                if sale.delivery_settled_at is None:
                    sale.delivery_settled_at = now
            remaining -= apply
            affected += 1

        session.commit()
    except PosError:
        session.rollback()
        raise

    logger.info(f"Partially settled {amount} across {affected} delivery(ies) for boy={delivery_boy_id} date={day}")
    return {
        'message': f'Partially settled {affected} delivery(ies) for a total of {amount}',
        'settled_amount': float(amount),
        'affected_deliveries': affected,
        'date': day,
    }
