"""Sales, product performance, and per-operator reports (tenant-scoped)."""
from decimal import Decimal

from sqlalchemy import func, desc, and_
from sqlalchemy.orm import joinedload

from restopos.models import Sale, SaleItem, Product, Category
from restopos.services.sales_service import parse_date
from restopos.utils.number_format import as_float

ZERO = Decimal('0')


def _date_conditions(start_date, end_date):
    conditions = []
    if start_date:
        conditions.append(func.date(Sale.created_at) >= parse_date(start_date, 'start_date'))
    if end_date:
        conditions.append(func.date(Sale.created_at) <= parse_date(end_date, 'end_date'))
    return conditions


def sales_report(session, start_date=None, end_date=None, payment_method=None, order_type=None):
    """
    List sales in the range with revenue, discount and VAT totals.

    Returns:
        dict with 'sales' and 'summary'
    """
    item_count = session.query(func.count(SaleItem.id)).filter(
        SaleItem.sale_id == Sale.id
    ).correlate(Sale).scalar_subquery()

    query = session.query(Sale, item_count.label('item_count')).options(joinedload(Sale.customer))
    for condition in _date_conditions(start_date, end_date):
        query = query.filter(condition)
    if payment_method:
        query = query.filter(Sale.payment_method == payment_method)
    if order_type:
        query = query.filter(Sale.order_type == order_type)

    sales = []
    revenue = discount = vat = ZERO
    for sale, count in query.order_by(Sale.created_at.desc(), Sale.id.desc()).all():
        data = sale.to_dict(include_items=False)
        data['item_count'] = count
        sales.append(data)
        revenue += sale.total or ZERO
        discount += sale.discount_amount or ZERO
        vat += sale.vat_amount or ZERO

    return {
        'sales': sales,
        'summary': {
            'total_sales': len(sales),
            'total_revenue': as_float(revenue),
            'total_discount': as_float(discount),
            'total_vat': as_float(vat),
        },
    }


def products_report(session, start_date=None, end_date=None):
    """
    Quantity, revenue, cost and profit per product.

    Cost uses the product's purchase_rate (0 when unset). Products with no
    sales in the range are listed with zeros.
    """
    sold = session.query(
        SaleItem.product_id.label('product_id'),
        func.sum(SaleItem.quantity).label('quantity'),
        func.sum(SaleItem.total_price).label('revenue'),
    ).join(Sale, Sale.id == SaleItem.sale_id)
    conditions = _date_conditions(start_date, end_date)
    if conditions:
        sold = sold.filter(and_(*conditions))
    sold = sold.group_by(SaleItem.product_id).subquery()

    total_quantity = func.coalesce(sold.c.quantity, 0)
    total_revenue = func.coalesce(sold.c.revenue, 0)
    total_cost = total_quantity * func.coalesce(Product.purchase_rate, 0)

    rows = session.query(
        Product.id,
        Product.name,
        Product.price,
        Product.purchase_rate,
        Category.name.label('category_name'),
        total_quantity.label('total_quantity'),
        total_revenue.label('total_revenue'),
        total_cost.label('total_cost'),
    ).outerjoin(Category, Category.id == Product.category_id).outerjoin(
        sold, sold.c.product_id == Product.id
    ).order_by(desc('total_revenue'), Product.name).all()

    products = []
    for row in rows:
        revenue = as_float(row.total_revenue) or 0.0
        cost = as_float(row.total_cost) or 0.0
        products.append({
            'id': row.id,
            'name': row.name,
            'price': as_float(row.price),
            'purchase_rate': as_float(row.purchase_rate),
            'category_name': row.category_name,
            'total_quantity': as_float(row.total_quantity) or 0.0,
            'total_revenue': revenue,
            'total_cost': round(cost, 2),
            'total_profit': round(revenue - cost, 2),
        })

    return {
        'products': products,
        'summary': {
            'total_products': len(products),
            'total_quantity_sold': sum(p['total_quantity'] for p in products),
            'total_revenue': round(sum(p['total_revenue'] for p in products), 2),
            'total_cost': round(sum(p['total_cost'] for p in products), 2),
            'total_profit': round(sum(p['total_profit'] for p in products), 2),
        },
    }


def users_report(session, start_date=None, end_date=None):
    """Sales totals per operator who signed at least one sale in the range."""
    items = session.query(
        SaleItem.sale_id.label('sale_id'),
        func.sum(SaleItem.quantity).label('quantity'),
    ).group_by(SaleItem.sale_id).subquery()

    query = session.query(
        Sale.user_id,
        Sale.operator_name,
        func.count(Sale.id).label('total_sales'),
        func.coalesce(func.sum(Sale.total), 0).label('total_revenue'),
        func.coalesce(func.sum(Sale.discount_amount), 0).label('total_discount'),
        func.coalesce(func.sum(Sale.vat_amount), 0).label('total_vat'),
        func.coalesce(func.sum(items.c.quantity), 0).label('total_items_sold'),
    ).outerjoin(items, items.c.sale_id == Sale.id)
    for condition in _date_conditions(start_date, end_date):
        query = query.filter(condition)

    users = []
    for row in query.group_by(Sale.user_id, Sale.operator_name).order_by(desc('total_revenue')).all():
        users.append({
            'user_id': row.user_id,
            'username': row.operator_name,
            'total_sales': row.total_sales,
            'total_revenue': as_float(row.total_revenue),
            'total_discount': as_float(row.total_discount),
            'total_vat': as_float(row.total_vat),
            'total_items_sold': as_float(row.total_items_sold),
        })

    return {
        'users': users,
        'summary': {
            'total_users': len(users),
            'total_sales': sum(u['total_sales'] for u in users),
            'total_revenue': round(sum(u['total_revenue'] for u in users), 2),
            'total_items_sold': sum(u['total_items_sold'] for u in users),
        },
    }
