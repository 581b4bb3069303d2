"""
Integration tests for pay-after-delivery orders and settlement.
"""

import pytest


@pytest.fixture
def delivery_order(client, owner_headers, tracked_product, delivery_boy):
    """Pay-after-delivery sale of 10.00 assigned at checkout."""
    response = client.post('/api/sales', headers=owner_headers, json={
        'items': [{'product_id': tracked_product.id, 'quantity': 2, 'unit_price': '5.00'}],
        'payment_method': 'payAfterDelivery',
        'order_type': 'delivery',
        'delivery_boy_id': delivery_boy.id,
    })
    assert response.status_code == 201
    return response.get_json()


def advance(client, headers, sale_id, *statuses):
    for status in statuses:
        response = client.put(f'/api/deliveries/{sale_id}/status', headers=headers, json={'status': status})
        assert response.status_code == 200, response.get_json()
    return response.get_json()['sale']


class TestDeliveryFlow:
    """Assignment, status updates and listing."""

    def test_assigned_at_checkout(self, delivery_order):
        assert delivery_order['delivery_status'] == 'assigned'
        assert delivery_order['delivery_boy_name'] == 'Rider One'

    def test_status_updates(self, client, owner_headers, delivery_order):
        sale = advance(client, owner_headers, delivery_order['id'], 'out_for_delivery', 'delivered', 'payment_collected')

        assert sale['delivery_status'] == 'payment_collected'
        assert sale['delivery_payment_collected'] is True
        assert sale['delivery_delivered_at'] is not None

    def test_reassign(self, client, owner_headers, delivery_order):
        other = client.post('/api/delivery-boys', headers=owner_headers, json={'name': 'Rider Two'}).get_json()

        response = client.put(f"/api/deliveries/{delivery_order['id']}/assign", headers=owner_headers,
                              json={'delivery_boy_id': other['id']})

        assert response.status_code == 200
        assert response.get_json()['sale']['delivery_boy_id'] == other['id']

    def test_strict_transitions_from_config(self, app, client, owner_headers, delivery_order):
        app.config['DELIVERY_STRICT_TRANSITIONS'] = True

        response = client.put(f"/api/deliveries/{delivery_order['id']}/status", headers=owner_headers,
                              json={'status': 'payment_collected'})
        assert response.status_code == 400

    def test_cash_sale_rejected(self, client, owner_headers, tracked_product):
        sale = client.post('/api/sales', headers=owner_headers, json={
            'items': [{'product_id': tracked_product.id, 'quantity': 1, 'unit_price': '5.00'}],
            'payment_method': 'cash',
        }).get_json()

        response = client.put(f"/api/deliveries/{sale['id']}/status", headers=owner_headers,
                              json={'status': 'delivered'})
        assert response.status_code == 400
        assert client.get(f"/api/sales/{sale['id']}", headers=owner_headers).get_json()['delivery_status'] is None

    def test_list_and_active_boys(self, client, owner_headers, delivery_order, delivery_boy):
        listed = client.get('/api/deliveries?status=assigned', headers=owner_headers).get_json()
        assert [d['id'] for d in listed] == [delivery_order['id']]

        boys = client.get('/api/deliveries/delivery-boys', headers=owner_headers).get_json()
        assert [b['name'] for b in boys] == ['Rider One']

    def test_delivery_boy_with_open_order_not_deletable(self, client, owner_headers, delivery_order, delivery_boy):
        response = client.delete(f'/api/delivery-boys/{delivery_boy.id}', headers=owner_headers)

        assert response.status_code == 409
        assert response.get_json()['code'] == 'referential_conflict'


class TestSettlementApi:
    """Settlement endpoints (admin only)."""

    def test_summary_and_full_settle(self, client, owner_headers, delivery_order, delivery_boy):
        advance(client, owner_headers, delivery_order['id'], 'out_for_delivery', 'delivered', 'payment_collected')

        summary = client.get('/api/deliveries/settlement', headers=owner_headers).get_json()
        assert summary[0]['total_collected'] == 10.0
        assert summary[0]['pending_settlement'] == 10.0

        result = client.post('/api/deliveries/settle', headers=owner_headers,
                             json={'delivery_boy_id': delivery_boy.id}).get_json()
        assert result['settled_count'] == 1

        summary = client.get(f'/api/deliveries/settlement?delivery_boy_id={delivery_boy.id}',
                             headers=owner_headers).get_json()
        assert summary[0]['total_settled'] == 10.0
        assert summary[0]['pending_settlement'] == 0.0

    def test_partial_settle_over_pending(self, client, owner_headers, delivery_order, delivery_boy):
        advance(client, owner_headers, delivery_order['id'], 'payment_collected')

        response = client.post('/api/deliveries/settle-partial', headers=owner_headers,
                               json={'delivery_boy_id': delivery_boy.id, 'amount': '25'})
        assert response.status_code == 400

        response = client.post('/api/deliveries/settle-partial', headers=owner_headers,
                               json={'delivery_boy_id': delivery_boy.id, 'amount': '4'})
        assert response.status_code == 200
        assert response.get_json()['settled_amount'] == 4.0

    def test_cashier_forbidden(self, client, owner_headers, api_login, delivery_order):
        client.post('/api/users', headers=owner_headers, json={
            'username': 'cash1', 'email': 'cash1@alpha.test', 'password': 'secret1'
        })
        _, cashier_headers = api_login('cash1', 'secret1', 'ALPHA')

        assert client.get('/api/deliveries/settlement', headers=cashier_headers).status_code == 403
        assert client.post('/api/deliveries/settle', headers=cashier_headers, json={}).status_code == 403
