"""DeliveryBoy model."""
from sqlalchemy import Column, Integer, String, Text, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from restopos.database import TenantBase
from restopos.utils.number_format import iso


class DeliveryBoy(TenantBase):
    """Delivery person who carries pay-after-delivery orders."""

    __tablename__ = 'delivery_boys'
    __table_args__ = {'sqlite_autoincrement': True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    phone = Column(String(50), nullable=True)
    email = Column(String(200), nullable=True)
    address = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default='active', server_default='active')
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    sales = relationship('Sale', back_populates='delivery_boy', passive_deletes='all')

    @property
    def is_active(self):
        return self.status == 'active'

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'phone': self.phone,
            'email': self.email,
            'address': self.address,
            'status': self.status,
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at),
        }

    def __repr__(self):
        return f"<DeliveryBoy(id={self.id}, name='{self.name}', status='{self.status}')>"
