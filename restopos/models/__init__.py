"""Models package - exports all SQLAlchemy models."""
# Directory models (master.db)
from restopos.models.super_admin import SuperAdmin
from restopos.models.tenant import Tenant, TenantStatus

# Tenant store models (tenants/<CODE>.db)
from restopos.models.user import User, UserRole
from restopos.models.category import Category
from restopos.models.product import Product
from restopos.models.customer import Customer
from restopos.models.delivery_boy import DeliveryBoy
from restopos.models.sale import Sale, SaleStatus, PaymentMethod, OrderType, DiscountType, DeliveryStatus
from restopos.models.sale_item import SaleItem
from restopos.models.held_sale import HeldSale
from restopos.models.setting import Setting

__all__ = [
    # Directory
    'SuperAdmin', 'Tenant', 'TenantStatus',
    # Tenant store
    'User', 'UserRole', 'Category', 'Product', 'Customer', 'DeliveryBoy',
    'Sale', 'SaleStatus', 'PaymentMethod', 'OrderType', 'DiscountType', 'DeliveryStatus',
    'SaleItem', 'HeldSale', 'Setting',
]
