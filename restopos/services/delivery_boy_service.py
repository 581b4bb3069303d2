"""Delivery staff management - per tenant store."""
import logging

from restopos.exceptions import BusinessLogicError, NotFoundError, ConflictError
from restopos.models import DeliveryBoy, Sale, DeliveryStatus

logger = logging.getLogger(__name__)

STATUSES = ('active', 'inactive')


def _status(value):
    status = value or 'active'
    if status not in STATUSES:
        raise BusinessLogicError(f"status must be one of {', '.join(STATUSES)}")
    return status


def list_delivery_boys(session, status=None):
    query = session.query(DeliveryBoy)
    if status:
        query = query.filter(DeliveryBoy.status == _status(status))
    return query.order_by(DeliveryBoy.name).all()


def get_delivery_boy(session, delivery_boy_id: int) -> DeliveryBoy:
    delivery_boy = session.get(DeliveryBoy, delivery_boy_id)
    if not delivery_boy:
        raise NotFoundError(f'Delivery boy {delivery_boy_id} not found')
    return delivery_boy


def create_delivery_boy(session, data: dict) -> DeliveryBoy:
    name = (data.get('name') or '').strip()
    if not name:
        raise BusinessLogicError('Name is required')

    delivery_boy = DeliveryBoy(
        name=name,
        phone=data.get('phone') or None,
        email=data.get('email') or None,
        address=data.get('address') or None,
        status=_status(data.get('status')),
    )
    try:
        session.add(delivery_boy)
        session.commit()
    except Exception:
        session.rollback()
        raise
    logger.info(f"Created delivery boy {delivery_boy.id} '{name}'")
    return delivery_boy


def update_delivery_boy(session, delivery_boy_id: int, data: dict) -> DeliveryBoy:
    delivery_boy = get_delivery_boy(session, delivery_boy_id)
    if 'name' in data:
        name = (data.get('name') or '').strip()
        if not name:
            raise BusinessLogicError('Name is required')
        delivery_boy.name = name
    for field in ('phone', 'email', 'address'):
        if field in data:
            setattr(delivery_boy, field, data.get(field) or None)
    if 'status' in data:
        delivery_boy.status = _status(data.get('status'))
    try:
        session.commit()
    except Exception:
        session.rollback()
        raise
    return delivery_boy


def delete_delivery_boy(session, delivery_boy_id: int) -> None:
    """
    Delete a delivery person.

    Raises:
        ConflictError: the person still has a delivery that is not settled
    """
    delivery_boy = get_delivery_boy(session, delivery_boy_id)
    open_deliveries = session.query(Sale).filter(
        Sale.delivery_boy_id == delivery_boy.id,
        Sale.delivery_status.isnot(None),
        Sale.delivery_status.notin_(DeliveryStatus.TERMINAL),
    ).count()
    if open_deliveries:
        raise ConflictError(
            'Cannot delete delivery boy with active deliveries',
            payload={'active_deliveries': open_deliveries}
        )

    # settled sales keep delivery_boy_id
    try:
        session.delete(delivery_boy)
        session.commit()
    except Exception:
        session.rollback()
        raise
    logger.info(f"Deleted delivery boy {delivery_boy_id}")
