"""Setting model - string key/value pairs per tenant store."""
from sqlalchemy import Column, Integer, String, Text, DateTime
from sqlalchemy.sql import func
from restopos.database import TenantBase


class Setting(TenantBase):
    """Raw settings row. Read and written through TenantSettings."""

    __tablename__ = 'settings'

    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String(100), nullable=False, unique=True)
    value = Column(Text, nullable=True)
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Setting(key='{self.key}', value='{self.value}')>"
