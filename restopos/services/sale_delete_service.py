"""Service for deleting sales with stock reversal - per tenant store."""
import logging

from restopos.exceptions import PosError, NotFoundError
from restopos.models import Sale, SaleItem, Product

logger = logging.getLogger(__name__)


def delete_sale_with_reversal(sale_id: int, session) -> dict:
    """
    Delete sale and restore stock (tenant-scoped session).

    Steps:
    1. Validate sale exists
    2. Restore stock for each item whose product tracks stock, by the item quantity
    3. Delete sale items
    4. Delete sale
    5. Commit transaction

    This is the exact inverse of the stock effect of committing the sale.

    Args:
        sale_id: Sale ID to delete
        session: tenant store session

    Returns:
        dict with message and the restored products

    Raises:
        NotFoundError: sale does not exist
    """
    try:
        sale = session.query(Sale).filter(Sale.id == sale_id).first()
        if not sale:
            raise NotFoundError(f'Sale {sale_id} not found')

        sale_items = session.query(SaleItem).filter(
            SaleItem.sale_id == sale_id
        ).order_by(SaleItem.id).all()

        restored_products = []
        for item in sale_items:
            if item.product_id is None:
                continue
            product = session.get(Product, item.product_id)
            if not product or not product.stock_tracking_enabled:
                continue

            session.query(Product).filter(Product.id == product.id).update(
                {Product.stock_quantity: Product.stock_quantity + item.quantity},
                synchronize_session=False
            )
            session.expire(product, ['stock_quantity'])
            restored_products.append({
                'product_id': product.id,
                'product_name': item.product_name,
                'quantity': float(item.quantity),
            })

        for item in sale_items:
            session.delete(item)
        session.flush()
        session.delete(sale)

        session.commit()

        logger.info(f"Deleted sale {sale.sale_number}; restored stock for {len(restored_products)} item(s)")
        return {
            'message': 'Sale deleted successfully',
            'sale_id': sale_id,
            'sale_number': sale.sale_number,
            'restored_products': restored_products,
        }

    except PosError:
        session.rollback()
        raise

    except Exception:
        session.rollback()
        logger.exception(f'Error deleting sale {sale_id}')
        raise
