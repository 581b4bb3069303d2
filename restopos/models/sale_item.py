"""SaleItem model."""
from sqlalchemy import Column, Integer, String, Numeric, ForeignKey
from sqlalchemy.orm import relationship
from restopos.database import TenantBase
from restopos.utils.number_format import as_float


class SaleItem(TenantBase):
    """Sale line with a snapshot of the product name at commit time."""

    __tablename__ = 'sale_items'

    id = Column(Integer, primary_key=True, autoincrement=True)
    sale_id = Column(Integer, ForeignKey('sales.id'), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey('products.id'), nullable=True)
    product_name = Column(String(200), nullable=False)
    quantity = Column(Numeric(10, 3), nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)

    # Relationships
    sale = relationship('Sale', back_populates='items')
    product = relationship('Product')

    def to_dict(self):
        return {
            'id': self.id,
            'sale_id': self.sale_id,
            'product_id': self.product_id,
            'product_name': self.product_name,
            'quantity': as_float(self.quantity),
            'unit_price': as_float(self.unit_price),
            'total_price': as_float(self.total_price),
        }

    def __repr__(self):
        return f"<SaleItem(id={self.id}, product='{self.product_name}', qty={self.quantity})>"
