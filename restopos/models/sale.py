"""Sale model."""
from datetime import datetime
from sqlalchemy import Column, Integer, String, Numeric, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from restopos.database import TenantBase
from restopos.utils.number_format import as_float, iso


class PaymentMethod:
    """Accepted payment methods."""
    CASH = 'cash'
    CARD = 'card'
    ONLINE = 'online'
    PAY_AFTER_DELIVERY = 'payAfterDelivery'

    ALL = (CASH, CARD, ONLINE, PAY_AFTER_DELIVERY)


class OrderType:
    DINE_IN = 'dine-in'
    TAKEAWAY = 'takeaway'
    DELIVERY = 'delivery'

    ALL = (DINE_IN, TAKEAWAY, DELIVERY)


class DiscountType:
    FIXED = 'fixed'
    PERCENTAGE = 'percentage'

    ALL = (FIXED, PERCENTAGE)


class DeliveryStatus:
    """Delivery lifecycle states, in canonical order."""
    PENDING = 'pending'
    ASSIGNED = 'assigned'
    OUT_FOR_DELIVERY = 'out_for_delivery'
    DELIVERED = 'delivered'
    PAYMENT_COLLECTED = 'payment_collected'
    SETTLED = 'settled'

    ALL = (PENDING, ASSIGNED, OUT_FOR_DELIVERY, DELIVERED, PAYMENT_COLLECTED, SETTLED)
    COLLECTED = (PAYMENT_COLLECTED, SETTLED)
    TERMINAL = (SETTLED,)


class SaleStatus:
    COMPLETED = 'completed'


class Sale(TenantBase):
    """Committed sale (header).

    Monetary fields and lines are immutable once committed; only the
    ``delivery_*`` fields change afterwards.
    """

    __tablename__ = 'sales'

    id = Column(Integer, primary_key=True, autoincrement=True)
    sale_number = Column(String(50), nullable=False, unique=True)
    customer_id = Column(Integer, ForeignKey('customers.id'), nullable=True)
    user_id = Column(Integer, nullable=True)
    operator_name = Column(String(200), nullable=True)
    subtotal = Column(Numeric(10, 2), nullable=False)
    discount_amount = Column(Numeric(10, 2), nullable=False, default=0, server_default='0')
    discount_type = Column(String(20), nullable=False, default=DiscountType.FIXED, server_default=DiscountType.FIXED)
    vat_percentage = Column(Numeric(5, 2), nullable=False, default=0, server_default='0')
    vat_amount = Column(Numeric(10, 2), nullable=False, default=0, server_default='0')
    total = Column(Numeric(10, 2), nullable=False)
    payment_method = Column(String(255), nullable=False)
    payment_amount = Column(Numeric(10, 2), nullable=True)
    change_amount = Column(Numeric(10, 2), nullable=False, default=0, server_default='0')
    order_type = Column(String(20), nullable=False, default=OrderType.DINE_IN, server_default=OrderType.DINE_IN)
    status = Column(String(20), nullable=False, default=SaleStatus.COMPLETED, server_default=SaleStatus.COMPLETED)
    # Local time: settlement groups sales by calendar day
    created_at = Column(DateTime, nullable=False, default=datetime.now, server_default=func.now())

    # Delivery lifecycle (payAfterDelivery only)
    delivery_boy_id = Column(Integer, ForeignKey('delivery_boys.id'), nullable=True)
    delivery_status = Column(String(30), nullable=True)
    delivery_payment_collected = Column(Boolean, nullable=False, default=False, server_default='0')
    delivery_assigned_at = Column(DateTime, nullable=True)
    delivery_delivered_at = Column(DateTime, nullable=True)
    delivery_settled_at = Column(DateTime, nullable=True)
    delivery_settled_amount = Column(Numeric(10, 2), nullable=False, default=0, server_default='0')

    # Relationships
    customer = relationship('Customer', back_populates='sales')
    delivery_boy = relationship('DeliveryBoy', back_populates='sales')
    items = relationship('SaleItem', back_populates='sale', order_by='SaleItem.id',
                         cascade='all, delete-orphan')

    @property
    def is_pay_after_delivery(self):
        return self.payment_method == PaymentMethod.PAY_AFTER_DELIVERY

    def to_dict(self, include_items=True):
        rv = {
            'id': self.id,
            'sale_number': self.sale_number,
            'customer_id': self.customer_id,
            'customer_name': self.customer.name if self.customer else None,
            'customer_phone': self.customer.phone if self.customer else None,
            'user_id': self.user_id,
            'cashier_name': self.operator_name,
            'subtotal': as_float(self.subtotal),
            'discount_amount': as_float(self.discount_amount),
            'discount_type': self.discount_type,
            'vat_percentage': as_float(self.vat_percentage),
            'vat_amount': as_float(self.vat_amount),
            'total': as_float(self.total),
            'payment_method': self.payment_method,
            'payment_amount': as_float(self.payment_amount),
            'change_amount': as_float(self.change_amount),
            'order_type': self.order_type,
            'status': self.status,
            'created_at': iso(self.created_at),
            'delivery_boy_id': self.delivery_boy_id,
            'delivery_boy_name': self.delivery_boy.name if self.delivery_boy else None,
            'delivery_status': self.delivery_status,
            'delivery_payment_collected': bool(self.delivery_payment_collected),
            'delivery_assigned_at': iso(self.delivery_assigned_at),
            'delivery_delivered_at': iso(self.delivery_delivered_at),
            'delivery_settled_at': iso(self.delivery_settled_at),
            'delivery_settled_amount': as_float(self.delivery_settled_amount),
        }
        if include_items:
            rv['items'] = [item.to_dict() for item in self.items]
        return rv

    def __repr__(self):
        return f"<Sale(id={self.id}, sale_number='{self.sale_number}', total={self.total})>"
