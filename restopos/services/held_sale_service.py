"""Held (parked) carts that cashiers can resume later."""
import json
import time
import uuid
import logging
from decimal import Decimal

from restopos.exceptions import PosError, BusinessLogicError, NotFoundError
from restopos.models import HeldSale, DiscountType
from restopos.utils.number_format import parse_decimal, parse_optional_int

logger = logging.getLogger(__name__)

ZERO = Decimal('0')


def generate_hold_number() -> str:
    return f"HOLD-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8].upper()}"


def hold_sale(session, payload: dict, operator: dict) -> HeldSale:
    """Store a cart snapshot. The cart must not be empty."""
    cart = payload.get('cart_data') if isinstance(payload, dict) else None
    if not cart or not isinstance(cart, list):
        raise BusinessLogicError('Cart data is required')

    discount_type = payload.get('discount_type') or DiscountType.FIXED
    if discount_type not in DiscountType.ALL:
        raise BusinessLogicError(f"discount_type must be one of {', '.join(DiscountType.ALL)}")

    held = HeldSale(
        hold_number=generate_hold_number(),
        customer_id=parse_optional_int(payload.get('customer_id'), 'customer_id'),
        user_id=operator.get('id'),
        cart_data=json.dumps(cart),
        subtotal=parse_decimal(payload.get('subtotal'), 'subtotal', default=ZERO, minimum=ZERO),
        discount_amount=parse_decimal(payload.get('discount_amount'), 'discount_amount', default=ZERO, minimum=ZERO),
        discount_type=discount_type,
        vat_percentage=parse_decimal(payload.get('vat_percentage'), 'vat_percentage', default=ZERO, minimum=ZERO),
        vat_amount=parse_decimal(payload.get('vat_amount'), 'vat_amount', default=ZERO, minimum=ZERO),
        total=parse_decimal(payload.get('total'), 'total', default=ZERO, minimum=ZERO),
        notes=payload.get('notes') or None,
    )
    try:
        session.add(held)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"Held sale {held.hold_number} with {len(cart)} line(s)")
    return held


def list_held_sales(session):
    return session.query(HeldSale).order_by(HeldSale.created_at.desc(), HeldSale.id.desc()).all()


def get_held_sale(session, held_id: int) -> HeldSale:
    held = session.get(HeldSale, held_id)
    if not held:
        raise NotFoundError(f'Held sale {held_id} not found')
    return held


def resume_held_sale(session, held_id: int) -> dict:
    """Return the held snapshot and remove it in the same transaction."""
    try:
        held = get_held_sale(session, held_id)
        snapshot = held.to_dict()
        session.delete(held)
        session.commit()
    except PosError:
        session.rollback()
        raise

    logger.info(f"Resumed held sale {snapshot['hold_number']}")
    return snapshot


def delete_held_sale(session, held_id: int) -> None:
    try:
        held = get_held_sale(session, held_id)
        session.delete(held)
        session.commit()
    except PosError:
        session.rollback()
        raise
