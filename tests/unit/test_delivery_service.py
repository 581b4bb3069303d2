"""
Unit tests for the delivery lifecycle and settlement accounting.
"""

from decimal import Decimal

import pytest

from restopos.exceptions import BusinessLogicError, NotFoundError
from restopos.models import DeliveryBoy
from restopos.services.sales_service import commit_sale
from restopos.services.delivery_service import (
    assign_delivery_boy, update_delivery_status, settlement_summary,
    settle_deliveries, settle_partial, list_deliveries
)


def delivery_cart(product, qty=1, **extra):
    body = {
        'items': [{'product_id': product.id, 'quantity': qty, 'unit_price': str(product.price)}],
        'payment_method': 'payAfterDelivery',
        'order_type': 'delivery',
    }
    body.update(extra)
    return body


@pytest.fixture
def pending_sale(store_session, operator, tracked_product):
    """Pay-after-delivery sale of 10.00 with no delivery person yet."""
    return commit_sale(store_session, delivery_cart(tracked_product, 2), operator)


@pytest.fixture
def cash_sale(store_session, operator, tracked_product):
    return commit_sale(store_session, {
        'items': [{'product_id': tracked_product.id, 'quantity': 1, 'unit_price': '5.00'}],
        'payment_method': 'cash',
    }, operator)


def collect(session, sale, delivery_boy):
    assign_delivery_boy(session, sale.id, delivery_boy.id)
    for status in ('out_for_delivery', 'delivered', 'payment_collected'):
        update_delivery_status(session, sale.id, status)
    return sale


def summary_for(session, delivery_boy):
    rows = settlement_summary(session, delivery_boy_id=delivery_boy.id)
    assert len(rows) == 1
    return rows[0]


class TestAssignAndStatus:
    """Assignment and status transitions."""

    def test_assign_pending_sale(self, store_session, pending_sale, delivery_boy):
        assert pending_sale.delivery_status == 'pending'

        sale = assign_delivery_boy(store_session, pending_sale.id, delivery_boy.id)

        assert sale.delivery_status == 'assigned'
        assert sale.delivery_boy_id == delivery_boy.id
        assert sale.delivery_assigned_at is not None

    def test_assign_requires_active_delivery_boy(self, store_session, pending_sale):
        boy = DeliveryBoy(name='Inactive', status='inactive')
        store_session.add(boy)
        store_session.commit()

        with pytest.raises(NotFoundError):
            assign_delivery_boy(store_session, pending_sale.id, boy.id)
        with pytest.raises(BusinessLogicError):
            assign_delivery_boy(store_session, pending_sale.id, None)

    def test_status_side_effects(self, store_session, pending_sale, delivery_boy):
        sale = update_delivery_status(store_session, pending_sale.id, 'out_for_delivery')
        assert sale.delivery_assigned_at is not None

        sale = update_delivery_status(store_session, pending_sale.id, 'delivered')
        assert sale.delivery_delivered_at is not None

        sale = update_delivery_status(store_session, pending_sale.id, 'payment_collected')
        assert sale.delivery_payment_collected is True

        sale = update_delivery_status(store_session, pending_sale.id, 'settled')
        assert sale.delivery_settled_at is not None
        assert sale.delivery_settled_amount == sale.total

    def test_unknown_status_rejected(self, store_session, pending_sale):
        with pytest.raises(BusinessLogicError):
            update_delivery_status(store_session, pending_sale.id, 'lost')

    def test_strict_mode_rejects_skipping(self, store_session, pending_sale, delivery_boy):
        with pytest.raises(BusinessLogicError):
            update_delivery_status(store_session, pending_sale.id, 'delivered', strict=True)

        assign_delivery_boy(store_session, pending_sale.id, delivery_boy.id, strict=True)
        sale = update_delivery_status(store_session, pending_sale.id, 'out_for_delivery', strict=True)
        assert sale.delivery_status == 'out_for_delivery'

    def test_permissive_mode_allows_any_state(self, store_session, pending_sale):
        sale = update_delivery_status(store_session, pending_sale.id, 'payment_collected')
        assert sale.delivery_status == 'payment_collected'


class TestNonDeliverySalesRejected:
    """Delivery operations on other payment methods fail without mutation."""

    def test_assign(self, store_session, cash_sale, delivery_boy):
        with pytest.raises(BusinessLogicError):
            assign_delivery_boy(store_session, cash_sale.id, delivery_boy.id)
        store_session.refresh(cash_sale)
        assert cash_sale.delivery_status is None
        assert cash_sale.delivery_boy_id is None

    def test_status(self, store_session, cash_sale):
        with pytest.raises(BusinessLogicError):
            update_delivery_status(store_session, cash_sale.id, 'delivered')
        store_session.refresh(cash_sale)
        assert cash_sale.delivery_status is None
        assert cash_sale.delivery_delivered_at is None

    def test_settle_ignores_cash_sales(self, store_session, cash_sale, delivery_boy):
        result = settle_deliveries(store_session, delivery_boy_id=delivery_boy.id)
        assert result['settled_count'] == 0
        store_session.refresh(cash_sale)
        assert cash_sale.delivery_settled_at is None

    def test_missing_sale(self, store_session, delivery_boy):
        with pytest.raises(NotFoundError):
            assign_delivery_boy(store_session, 999, delivery_boy.id)


class TestSettlement:
    """Settlement summary, full settle and partial settle."""

    def test_full_settle_clears_pending(self, store_session, pending_sale, delivery_boy):
        collect(store_session, pending_sale, delivery_boy)
        before = summary_for(store_session, delivery_boy)
        assert before['total_collected'] == 10.0
        assert before['pending_settlement'] == 10.0

        result = settle_deliveries(store_session, delivery_boy_id=delivery_boy.id)
        assert result['settled_count'] == 1

        store_session.refresh(pending_sale)
        assert pending_sale.delivery_status == 'settled'
        assert pending_sale.delivery_settled_at is not None

        after = summary_for(store_session, delivery_boy)
        assert after['total_settled'] == 10.0
        assert after['pending_settlement'] == before['pending_settlement'] - 10.0

    def test_partial_settle_oldest_first(self, store_session, operator, tracked_product, delivery_boy):
        first = commit_sale(store_session, delivery_cart(tracked_product, 2), operator)
        second = commit_sale(store_session, delivery_cart(tracked_product, 1), operator)
        collect(store_session, first, delivery_boy)
        collect(store_session, second, delivery_boy)

        result = settle_partial(store_session, delivery_boy.id, '12.00')
        assert result['affected_deliveries'] == 2

        store_session.refresh(first)
        store_session.refresh(second)
        assert first.delivery_status == 'settled'
        assert Decimal(str(first.delivery_settled_amount)) == Decimal('10.00')
        assert second.delivery_status == 'payment_collected'
        assert Decimal(str(second.delivery_settled_amount)) == Decimal('2.00')

        summary = summary_for(store_session, delivery_boy)
        assert summary['total_collected'] == 15.0
        assert summary['total_settled'] == 12.0
        assert summary['pending_settlement'] == 3.0

    def test_partial_settle_above_pending_rejected(self, store_session, pending_sale, delivery_boy):
        collect(store_session, pending_sale, delivery_boy)
        before = summary_for(store_session, delivery_boy)

        with pytest.raises(BusinessLogicError):
            settle_partial(store_session, delivery_boy.id, '10.01')

        store_session.refresh(pending_sale)
        assert pending_sale.delivery_status == 'payment_collected'
        assert Decimal(str(pending_sale.delivery_settled_amount)) == Decimal('0')
        assert pending_sale.delivery_settled_at is None
        assert summary_for(store_session, delivery_boy) == before

    def test_partial_settle_validation(self, store_session, delivery_boy):
        with pytest.raises(BusinessLogicError):
            settle_partial(store_session, None, '5')
        with pytest.raises(BusinessLogicError):
            settle_partial(store_session, delivery_boy.id, '0')
        with pytest.raises(BusinessLogicError):
            settle_partial(store_session, delivery_boy.id, '5')

    def test_settled_never_exceeds_collected(self, store_session, pending_sale, delivery_boy):
        collect(store_session, pending_sale, delivery_boy)
        settle_partial(store_session, delivery_boy.id, '4')
        settle_partial(store_session, delivery_boy.id, '6')

        with pytest.raises(BusinessLogicError):
            settle_partial(store_session, delivery_boy.id, '0.01')

        summary = summary_for(store_session, delivery_boy)
        assert summary['total_settled'] <= summary['total_collected']
        assert summary['pending_settlement'] == 0.0

    def test_summary_for_other_day_is_empty(self, store_session, pending_sale, delivery_boy):
        collect(store_session, pending_sale, delivery_boy)
        assert settlement_summary(store_session, settlement_date='2001-01-01') == []


class TestListDeliveries:
    def test_lists_only_pay_after_delivery(self, store_session, pending_sale, cash_sale):
        deliveries = list_deliveries(store_session)

        assert [d['id'] for d in deliveries] == [pending_sale.id]
        assert deliveries[0]['item_count'] == 1

    def test_filters_by_status(self, store_session, pending_sale, delivery_boy):
        assign_delivery_boy(store_session, pending_sale.id, delivery_boy.id)

        assert len(list_deliveries(store_session, status='assigned')) == 1
        assert list_deliveries(store_session, status='pending') == []
        assert len(list_deliveries(store_session, delivery_boy_id=delivery_boy.id)) == 1
