"""HeldSale model - parked carts that can be resumed at the POS."""
import json
from sqlalchemy import Column, Integer, String, Text, Numeric, DateTime
from sqlalchemy.sql import func
from restopos.database import TenantBase
from restopos.utils.number_format import as_float, iso


class HeldSale(TenantBase):
    """Cart snapshot put on hold."""

    __tablename__ = 'held_sales'

    id = Column(Integer, primary_key=True, autoincrement=True)
    hold_number = Column(String(50), nullable=False, unique=True)
    customer_id = Column(Integer, nullable=True)
    user_id = Column(Integer, nullable=True)
    cart_data = Column(Text, nullable=False)
    subtotal = Column(Numeric(10, 2), nullable=False, default=0, server_default='0')
    discount_amount = Column(Numeric(10, 2), nullable=False, default=0, server_default='0')
    discount_type = Column(String(20), nullable=False, default='fixed', server_default='fixed')
    vat_percentage = Column(Numeric(5, 2), nullable=False, default=0, server_default='0')
    vat_amount = Column(Numeric(10, 2), nullable=False, default=0, server_default='0')
    total = Column(Numeric(10, 2), nullable=False, default=0, server_default='0')
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    @property
    def cart(self):
        return json.loads(self.cart_data) if self.cart_data else []

    def to_dict(self):
        return {
            'id': self.id,
            'hold_number': self.hold_number,
            'customer_id': self.customer_id,
            'user_id': self.user_id,
            'cart': self.cart,
            'subtotal': as_float(self.subtotal),
            'discount_amount': as_float(self.discount_amount),
            'discount_type': self.discount_type,
            'vat_percentage': as_float(self.vat_percentage),
            'vat_amount': as_float(self.vat_amount),
            'total': as_float(self.total),
            'notes': self.notes,
            'created_at': iso(self.created_at),
        }

    def __repr__(self):
        return f"<HeldSale(id={self.id}, hold_number='{self.hold_number}')>"
