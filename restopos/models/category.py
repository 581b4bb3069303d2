"""Category model."""
from sqlalchemy import Column, Integer, String, Text, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from restopos.database import TenantBase
from restopos.utils.number_format import iso


class Category(TenantBase):
    """Product Category."""

    __tablename__ = 'categories'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    # Relationships
    products = relationship('Product', back_populates='category')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'created_at': iso(self.created_at),
        }

    def __repr__(self):
        return f"<Category(id={self.id}, name='{self.name}')>"
