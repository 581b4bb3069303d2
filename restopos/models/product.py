"""Product model."""
from sqlalchemy import Column, Integer, String, Text, Numeric, Boolean, Date, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from restopos.database import TenantBase
from restopos.utils.number_format import as_float, iso


class Product(TenantBase):
    """Menu item / product.

    ``stock_quantity`` only moves when ``stock_tracking_enabled`` is set and
    has no lower bound.
    """

    __tablename__ = 'products'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    category_id = Column(Integer, ForeignKey('categories.id'), nullable=True)
    image = Column(String(500), nullable=True)
    description = Column(Text, nullable=True)
    purchase_rate = Column(Numeric(10, 2), nullable=True)
    stock_quantity = Column(Numeric(12, 3), nullable=False, default=0, server_default='0')
    stock_tracking_enabled = Column(Boolean, nullable=False, default=False, server_default='0')
    expiry_date = Column(Date, nullable=True)
    barcode = Column(String(100), nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    category = relationship('Category', back_populates='products')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'price': as_float(self.price),
            'purchase_rate': as_float(self.purchase_rate),
            'category_id': self.category_id,
            'category_name': self.category.name if self.category else None,
            'image': self.image,
            'description': self.description,
            'stock_quantity': as_float(self.stock_quantity),
            'stock_tracking_enabled': bool(self.stock_tracking_enabled),
            'expiry_date': iso(self.expiry_date),
            'barcode': self.barcode,
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', price={self.price})>"
