"""Customer model."""
from sqlalchemy import Column, Integer, String, Text, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from restopos.database import TenantBase
from restopos.utils.number_format import iso


class Customer(TenantBase):
    """Customer (cliente) of a restaurant."""

    __tablename__ = 'customers'
    __table_args__ = {'sqlite_autoincrement': True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    country = Column(String(100), nullable=True)
    city = Column(String(100), nullable=True)
    address = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    sales = relationship('Sale', back_populates='customer', passive_deletes='all')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'phone': self.phone,
            'email': self.email,
            'country': self.country,
            'city': self.city,
            'address': self.address,
            'created_at': iso(self.created_at),
        }

    def __repr__(self):
        return f"<Customer(id={self.id}, name='{self.name}')>"
