"""
Sales service with transactional logic - per tenant store.

Turns a cart into a committed sale: header, lines in input order, stock
decrements for tracked products and the initial delivery state. Everything
happens in one transaction on the tenant session and is rolled back on any
failure.
"""
import time
import uuid
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import or_, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload

from restopos.exceptions import PosError, BusinessLogicError, NotFoundError
from restopos.models import (
    Product, Customer, DeliveryBoy, Sale, SaleItem,
    PaymentMethod, OrderType, DiscountType, DeliveryStatus
)
from restopos.utils.number_format import parse_decimal, parse_optional_int, quantize_money

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = Decimal('0.01')
SPLIT_PREFIX = 'split:'
SPLIT_METHODS = PaymentMethod.ALL
ZERO = Decimal('0')


def generate_sale_number() -> str:
    """SALE-<epoch ms>-<8 hex>; the unique constraint on sale_number is the backstop."""
    return f"SALE-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8].upper()}"


def parse_split_payment(payment_method: str) -> List[Dict[str, Any]]:
    """Parse ``split:cash:10,card:6.99`` into [{'method', 'amount'}, ...]."""
    parts = payment_method[len(SPLIT_PREFIX):].split(',')
    if not parts[0].strip():
        raise BusinessLogicError('Split payment needs at least one payment')
    payments = []
    for part in parts:
        method, sep, amount = part.strip().rpartition(':')
        if not sep or method not in SPLIT_METHODS:
            raise BusinessLogicError(f'Invalid split payment entry: {part!r}')
        payments.append({'method': method, 'amount': parse_decimal(amount, 'split payment amount', minimum=ZERO)})
    return payments


def parse_sale_request(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Validate the request body. Raises BusinessLogicError before anything is written."""
    if not isinstance(payload, dict):
        raise BusinessLogicError('Invalid request body')

    items = payload.get('items')
    if not items or not isinstance(items, list):
        raise BusinessLogicError('Sale must have at least one item')

    payment_method = payload.get('payment_method')
    split_payments = None
    if isinstance(payment_method, str) and payment_method.startswith(SPLIT_PREFIX):
        split_payments = parse_split_payment(payment_method)
    elif payment_method not in PaymentMethod.ALL:
        raise BusinessLogicError(f"payment_method must be one of {', '.join(PaymentMethod.ALL)}")

    order_type = payload.get('order_type') or OrderType.DINE_IN
    if order_type not in OrderType.ALL:
        raise BusinessLogicError(f"order_type must be one of {', '.join(OrderType.ALL)}")

    discount_type = payload.get('discount_type') or DiscountType.FIXED
    if discount_type not in DiscountType.ALL:
        raise BusinessLogicError(f"discount_type must be one of {', '.join(DiscountType.ALL)}")

    lines = []
    for index, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            raise BusinessLogicError(f'Item {index} is invalid')
        product_id = parse_optional_int(item.get('product_id'), f'items[{index}].product_id')
        if product_id is None:
            raise BusinessLogicError(f'Item {index}: product_id is required')
        quantity = parse_decimal(item.get('quantity'), f'items[{index}].quantity')
        if quantity <= 0:
            raise BusinessLogicError(f'Item {index}: quantity must be greater than 0')
        unit_price = parse_decimal(item.get('unit_price'), f'items[{index}].unit_price', minimum=ZERO)
        total_price = item.get('total_price')
        lines.append({
            'product_id': product_id,
            'product_name': (item.get('product_name') or '').strip() or None,
            'quantity': quantity,
            'unit_price': unit_price,
            'total_price': None if total_price in (None, '') else parse_decimal(total_price, f'items[{index}].total_price', minimum=ZERO),
        })

    def optional_money(key):
        value = payload.get(key)
        return None if value in (None, '') else parse_decimal(value, key, minimum=ZERO)

    return {
        'lines': lines,
        'customer_id': parse_optional_int(payload.get('customer_id'), 'customer_id'),
        'delivery_boy_id': parse_optional_int(payload.get('delivery_boy_id'), 'delivery_boy_id'),
        'payment_method': payment_method,
        'split_payments': split_payments,
        'order_type': order_type,
        'discount_type': discount_type,
        'subtotal': optional_money('subtotal'),
        'discount_amount': optional_money('discount_amount') or ZERO,
        'vat_percentage': parse_decimal(payload.get('vat_percentage'), 'vat_percentage', default=ZERO, minimum=ZERO),
        'vat_amount': optional_money('vat_amount'),
        'total': optional_money('total'),
        'payment_amount': optional_money('payment_amount'),
        'change_amount': optional_money('change_amount') or ZERO,
    }


def verify_totals(request: Dict[str, Any], products: Dict[int, Product],
                  tolerance: Decimal = DEFAULT_TOLERANCE, enforce_catalog_prices: bool = False) -> Dict[str, Decimal]:
    """
    Recompute line totals, subtotal, VAT and total and compare them with the
    caller's figures.

    Returns:
        dict with the verified, cent-rounded amounts

    Raises:
        BusinessLogicError: any supplied figure is off by more than ``tolerance``
    """
    def check(label, supplied, expected):
        if supplied is not None and abs(supplied - expected) > tolerance:
            raise BusinessLogicError(
                f'{label} mismatch: expected {quantize_money(expected)}, got {supplied}',
                payload={'field': label, 'expected': float(quantize_money(expected)), 'received': float(supplied)}
            )

    subtotal = ZERO
    for index, line in enumerate(request['lines'], start=1):
        product = products[line['product_id']]
        if enforce_catalog_prices and abs(line['unit_price'] - product.price) > tolerance:
            raise BusinessLogicError(
                f'Item {index}: unit price {line["unit_price"]} does not match catalog price {product.price}'
            )
        expected_line = line['quantity'] * line['unit_price']
        check(f'items[{index}].total_price', line['total_price'], expected_line)
        line['total_price'] = quantize_money(expected_line if line['total_price'] is None else line['total_price'])
        subtotal += line['total_price']

    check('subtotal', request['subtotal'], subtotal)

    discount = request['discount_amount']
    if discount > subtotal + tolerance:
        raise BusinessLogicError('discount_amount cannot exceed subtotal')

    vat_amount = (subtotal - discount) * request['vat_percentage'] / Decimal('100')
    check('vat_amount', request['vat_amount'], vat_amount)

    total = subtotal - discount + vat_amount
    check('total', request['total'], total)
    total = quantize_money(request['total'] if request['total'] is not None else total)

    payment_amount = request['payment_amount']
    if request['split_payments']:
        paid = sum(p['amount'] for p in request['split_payments'])
        check('payment_amount', payment_amount, paid)
        payment_amount = paid
    if payment_amount is not None and request['change_amount'] > 0:
        check('change_amount', request['change_amount'], payment_amount - total)

    return {
        'subtotal': quantize_money(request['subtotal'] if request['subtotal'] is not None else subtotal),
        'discount_amount': quantize_money(discount),
        'vat_amount': quantize_money(request['vat_amount'] if request['vat_amount'] is not None else vat_amount),
        'total': total,
        'payment_amount': None if payment_amount is None else quantize_money(payment_amount),
        'change_amount': quantize_money(request['change_amount']),
    }


def commit_sale(session, payload: Dict[str, Any], operator: Dict[str, Any],
                tolerance: Decimal = DEFAULT_TOLERANCE, enforce_catalog_prices: bool = False,
                max_attempts: int = 3) -> Sale:
    """
    Commit a sale atomically (tenant-scoped session).

    Args:
        session: tenant store session
        payload: request body (items, totals, payment and delivery fields)
        operator: authenticated principal {id, username, role, tenant_code}
        tolerance: allowed rounding difference on money checks
        enforce_catalog_prices: reject unit prices that differ from the catalog
        max_attempts: retries with a fresh sale_number on a uniqueness collision

    Returns:
        The persisted Sale with its items in input order

    Raises:
        BusinessLogicError: invalid cart or totals
        NotFoundError: unknown product, customer or delivery person
    """
    request = parse_sale_request(payload)

    for attempt in range(1, max_attempts + 1):
        sale_number = generate_sale_number()
        try:
            sale = _write_sale(session, request, operator, sale_number, tolerance, enforce_catalog_prices)
            session.commit()
        except IntegrityError as e:
            session.rollback()
            if 'sale_number' in str(e.orig) and attempt < max_attempts:
                logger.warning(f"Sale number collision on {sale_number}, retrying ({attempt}/{max_attempts})")
                continue
            raise
        except PosError:
            session.rollback()
            raise
        except Exception:
            session.rollback()
            logger.exception('Unexpected error while committing sale')
            raise

        logger.info(f"Committed sale {sale.sale_number} total={sale.total} method={sale.payment_method}")
        return sale


def _write_sale(session, request, operator, sale_number, tolerance, enforce_catalog_prices) -> Sale:
    product_ids = {line['product_id'] for line in request['lines']}
    products = {p.id: p for p in session.query(Product).filter(Product.id.in_(product_ids)).all()}
    missing = sorted(product_ids - set(products))
    if missing:
        raise NotFoundError(f'Product {missing[0]} not found', payload={'product_ids': missing})

    if request['customer_id'] is not None and session.get(Customer, request['customer_id']) is None:
        raise NotFoundError(f"Customer {request['customer_id']} not found")

    amounts = verify_totals(request, products, tolerance, enforce_catalog_prices)

    delivery_status = None
    delivery_boy_id = None
    delivery_assigned_at = None
    if request['payment_method'] == PaymentMethod.PAY_AFTER_DELIVERY:
        if request['delivery_boy_id'] is not None:
            delivery_boy = session.get(DeliveryBoy, request['delivery_boy_id'])
            if delivery_boy is None:
                raise NotFoundError(f"Delivery boy {request['delivery_boy_id']} not found")
            if not delivery_boy.is_active:
                raise BusinessLogicError(f'Delivery boy "{delivery_boy.name}" is not active')
            delivery_boy_id = delivery_boy.id
            delivery_status = DeliveryStatus.ASSIGNED
            delivery_assigned_at = datetime.now()
        else:
            delivery_status = DeliveryStatus.PENDING

    sale = Sale(
        sale_number=sale_number,
        customer_id=request['customer_id'],
        user_id=operator.get('id'),
        operator_name=operator.get('username'),
        subtotal=amounts['subtotal'],
        discount_amount=amounts['discount_amount'],
        discount_type=request['discount_type'],
        vat_percentage=request['vat_percentage'],
        vat_amount=amounts['vat_amount'],
        total=amounts['total'],
        payment_method=request['payment_method'],
        payment_amount=amounts['payment_amount'],
        change_amount=amounts['change_amount'],
        order_type=request['order_type'],
        created_at=datetime.now(),
        delivery_boy_id=delivery_boy_id,
        delivery_status=delivery_status,
        delivery_assigned_at=delivery_assigned_at,
        delivery_payment_collected=False,
        delivery_settled_amount=ZERO,
    )
    session.add(sale)
    session.flush()

    for line in request['lines']:
        product = products[line['product_id']]
        sale.items.append(SaleItem(
            product_id=product.id,
            product_name=line['product_name'] or product.name,
            quantity=line['quantity'],
            unit_price=line['unit_price'],
            total_price=line['total_price'],
        ))
        if product.stock_tracking_enabled:
            _adjust_stock(session, product, -line['quantity'])

    session.flush()
    return sale


def _adjust_stock(session, product: Product, delta: Decimal) -> None:
    """Apply a stock delta in SQL so concurrent commits never lose updates."""
    session.query(Product).filter(Product.id == product.id).update(
        {Product.stock_quantity: Product.stock_quantity + delta},
        synchronize_session=False
    )
    session.expire(product, ['stock_quantity'])


def get_sale(session, sale_id: int) -> Sale:
    sale = session.query(Sale).options(
        joinedload(Sale.customer), joinedload(Sale.delivery_boy), joinedload(Sale.items)
    ).filter(Sale.id == sale_id).first()
    if not sale:
        raise NotFoundError(f'Sale {sale_id} not found')
    return sale


def list_sales(session, start_date: Optional[str] = None, end_date: Optional[str] = None,
               search: Optional[str] = None, payment_method: Optional[str] = None,
               delivery_status: Optional[str] = None, order_type: Optional[str] = None,
               limit: Optional[int] = None) -> List[Sale]:
    """List sales, newest first. Dates are YYYY-MM-DD over created_at."""
    query = session.query(Sale).outerjoin(Customer, Sale.customer_id == Customer.id).options(
        joinedload(Sale.customer), joinedload(Sale.delivery_boy)
    )

    if start_date:
        query = query.filter(func.date(Sale.created_at) >= parse_date(start_date, 'start_date'))
    if end_date:
        query = query.filter(func.date(Sale.created_at) <= parse_date(end_date, 'end_date'))
    if search:
        term = f'%{search.strip()}%'
        query = query.filter(or_(
            Sale.sale_number.ilike(term),
            Customer.name.ilike(term),
            Customer.phone.ilike(term),
        ))
    if payment_method:
        query = query.filter(Sale.payment_method == payment_method)
    if delivery_status:
        query = query.filter(Sale.delivery_status == delivery_status)
    if order_type:
        query = query.filter(Sale.order_type == order_type)

    query = query.order_by(Sale.created_at.desc(), Sale.id.desc())
    if limit:
        query = query.limit(limit)
    return query.all()


def parse_date(value: str, field: str) -> str:
    """Validate a YYYY-MM-DD string and return it normalized."""
    try:
        return datetime.strptime(value.strip(), '%Y-%m-%d').date().isoformat()
    except (ValueError, AttributeError):
        raise BusinessLogicError(f'{field} must be a date (YYYY-MM-DD)')
