"""Catalog (categories, products) and customer management - per tenant store."""
import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload

from restopos.exceptions import PosError, BusinessLogicError, NotFoundError, ConflictError
from restopos.models import Category, Product, Customer
from restopos.utils.number_format import parse_decimal, parse_optional_int

logger = logging.getLogger(__name__)

ZERO = Decimal('0')
CUSTOMER_FIELDS = ('name', 'phone', 'email', 'country', 'city', 'address')


def _commit(session, conflict_message=None):
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        if conflict_message:
            raise BusinessLogicError(conflict_message)
        raise
    except Exception:
        session.rollback()
        raise


def _required_text(data, key, label):
    value = (data.get(key) or '').strip() if isinstance(data.get(key), str) else data.get(key)
    if not value:
        raise BusinessLogicError(f'{label} is required')
    return value


# ============================================================================
# Categories
# ============================================================================

def list_categories(session):
    return session.query(Category).order_by(Category.name).all()


def get_category(session, category_id: int) -> Category:
    category = session.get(Category, category_id)
    if not category:
        raise NotFoundError(f'Category {category_id} not found')
    return category


def create_category(session, data: dict) -> Category:
    category = Category(
        name=_required_text(data, 'name', 'Category name'),
        description=data.get('description') or None,
    )
    session.add(category)
    _commit(session, 'Category name already exists')
    return category


def update_category(session, category_id: int, data: dict) -> Category:
    category = get_category(session, category_id)
    if 'name' in data:
        category.name = _required_text(data, 'name', 'Category name')
    if 'description' in data:
        category.description = data.get('description') or None
    _commit(session, 'Category name already exists')
    return category


def delete_category(session, category_id: int) -> None:
    """Delete a category. Refused while any product references it."""
    category = get_category(session, category_id)
    product_count = session.query(Product).filter(Product.category_id == category.id).count()
    if product_count:
        raise ConflictError(
            'Cannot delete category with existing products',
            payload={'product_count': product_count}
        )
    session.delete(category)
    _commit(session)
    logger.info(f"Deleted category {category_id}")


# ============================================================================
# Products
# ============================================================================

def list_products(session, category_id=None, search=None):
    query = session.query(Product).options(joinedload(Product.category))
    if category_id not in (None, '', 'all'):
        query = query.filter(Product.category_id == parse_optional_int(category_id, 'category_id'))
    if search:
        term = f'%{search.strip()}%'
        query = query.filter(or_(
            Product.name.ilike(term),
            Product.description.ilike(term),
            Product.barcode == search.strip(),
        ))
    return query.order_by(Product.created_at.desc(), Product.id.desc()).all()


def get_product(session, product_id: int) -> Product:
    product = session.get(Product, product_id)
    if not product:
        raise NotFoundError(f'Product {product_id} not found')
    return product


def _apply_product_fields(session, product: Product, data: dict, creating: bool) -> None:
    if creating or 'name' in data:
        product.name = _required_text(data, 'name', 'Name')
    if creating or 'price' in data:
        product.price = parse_decimal(data.get('price'), 'price', minimum=ZERO)
    if 'category_id' in data:
        category_id = parse_optional_int(data.get('category_id'), 'category_id')
        if category_id is not None:
            get_category(session, category_id)
        product.category_id = category_id
    if 'description' in data:
        product.description = data.get('description') or None
    if 'image' in data:
        product.image = data.get('image') or None
    if 'barcode' in data:
        product.barcode = data.get('barcode') or None
    if 'purchase_rate' in data:
        value = data.get('purchase_rate')
        product.purchase_rate = None if value in (None, '') else parse_decimal(value, 'purchase_rate', minimum=ZERO)
    if 'stock_quantity' in data:
        product.stock_quantity = parse_decimal(data.get('stock_quantity'), 'stock_quantity', default=ZERO)
    elif creating:
        product.stock_quantity = ZERO
    if 'stock_tracking_enabled' in data:
        value = data.get('stock_tracking_enabled')
        product.stock_tracking_enabled = value in (True, 1, '1', 'true', 'True')
    elif creating:
        product.stock_tracking_enabled = False
    if 'expiry_date' in data:
        value = data.get('expiry_date')
        if value in (None, ''):
            product.expiry_date = None
        else:
            try:
                product.expiry_date = datetime.strptime(str(value), '%Y-%m-%d').date()
            except ValueError:
                raise BusinessLogicError('expiry_date must be a date (YYYY-MM-DD)')


def create_product(session, data: dict) -> Product:
    product = Product()
    try:
        _apply_product_fields(session, product, data, creating=True)
        session.add(product)
    except PosError:
        session.rollback()
        raise
    _commit(session)
    logger.info(f"Created product {product.id} '{product.name}'")
    return product


def update_product(session, product_id: int, data: dict) -> Product:
    product = get_product(session, product_id)
    try:
        _apply_product_fields(session, product, data, creating=False)
    except PosError:
        session.rollback()
        raise
    _commit(session)
    return product


def delete_product(session, product_id: int) -> None:
    product = get_product(session, product_id)
    session.delete(product)
    _commit(session)
    logger.info(f"Deleted product {product_id}")


# ============================================================================
# Customers
# ============================================================================

def list_customers(session, search=None):
    query = session.query(Customer)
    if search:
        term = f'%{search.strip()}%'
        query = query.filter(or_(
            Customer.name.ilike(term),
            Customer.phone.ilike(term),
            Customer.email.ilike(term),
        ))
    return query.order_by(Customer.name).all()


def get_customer(session, customer_id: int) -> Customer:
    customer = session.get(Customer, customer_id)
    if not customer:
        raise NotFoundError(f'Customer {customer_id} not found')
    return customer


def create_customer(session, data: dict) -> Customer:
    customer = Customer(name=_required_text(data, 'name', 'Customer name'))
    for field in CUSTOMER_FIELDS[1:]:
        setattr(customer, field, data.get(field) or None)
    session.add(customer)
    _commit(session)
    return customer


def update_customer(session, customer_id: int, data: dict) -> Customer:
    customer = get_customer(session, customer_id)
    if 'name' in data:
        customer.name = _required_text(data, 'name', 'Customer name')
    for field in CUSTOMER_FIELDS[1:]:
        if field in data:
            setattr(customer, field, data.get(field) or None)
    _commit(session)
    return customer


def delete_customer(session, customer_id: int) -> None:
    customer = get_customer(session, customer_id)
    session.delete(customer)
    _commit(session)
