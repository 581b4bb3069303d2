import pytest
from decimal import Decimal

from config import TestConfig
from restopos import create_app
from restopos import database
from restopos.database import get_session
from restopos.models import Category, Product, DeliveryBoy, Customer
from restopos.services.tenant_service import create_tenant


@pytest.fixture(scope='function')
def app(tmp_path):
    """Create application instance with a throwaway DATA_DIR."""
    config = type('IsolatedTestConfig', (TestConfig,), {'DATA_DIR': str(tmp_path)})
    app = create_app(config)

    with app.app_context():
        yield app

    app.extensions['tenant_stores'].dispose_all()
    database.engine.dispose()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def directory_session(app):
    """Directory (master.db) session."""
    session = get_session()
    yield session
    session.rollback()


@pytest.fixture(scope='function')
def stores(app):
    """Tenant store registry of the app."""
    return app.extensions['tenant_stores']


def _tenant_data(code, status='active'):
    lower = code.lower()
    return {
        'tenant_code': code,
        'restaurant_name': f'{code.title()} Bistro',
        'owner_name': f'{code.title()} Owner',
        'owner_email': f'owner@{lower}.test',
        'username': f'{lower}_owner',
        'password': f'{lower}pass',
        'status': status,
    }


@pytest.fixture(scope='function')
def tenant_data():
    """Factory for tenant provisioning payloads."""
    return _tenant_data


@pytest.fixture(scope='function')
def tenant_a(directory_session, stores):
    """First active tenant."""
    return create_tenant(directory_session, stores, _tenant_data('ALPHA'))


@pytest.fixture(scope='function')
def tenant_b(directory_session, stores):
    """Second active tenant for isolation tests."""
    return create_tenant(directory_session, stores, _tenant_data('BRAVO'))


@pytest.fixture(scope='function')
def store_session(stores, tenant_a):
    """Session on tenant_a's store."""
    session = stores.open_session(tenant_a.tenant_code)
    yield session
    session.rollback()
    session.close()


@pytest.fixture(scope='function')
def operator(tenant_a):
    """Principal used as the sale operator."""
    return {'id': 1, 'username': 'cashier1', 'role': 'cashier', 'tenant_code': tenant_a.tenant_code}


@pytest.fixture(scope='function')
def category(store_session):
    category = Category(name='Mains', description='Main dishes')
    store_session.add(category)
    store_session.commit()
    return category


@pytest.fixture(scope='function')
def tracked_product(store_session, category):
    """Product with stock tracking on and 10 units in stock."""
    product = Product(
        name='Burger', price=Decimal('5.00'), category_id=category.id,
        stock_quantity=Decimal('10'), stock_tracking_enabled=True
    )
    store_session.add(product)
    store_session.commit()
    return product


@pytest.fixture(scope='function')
def untracked_product(store_session, category):
    """Product without stock tracking."""
    product = Product(
        name='Soda', price=Decimal('2.50'), category_id=category.id,
        stock_quantity=Decimal('0'), stock_tracking_enabled=False
    )
    store_session.add(product)
    store_session.commit()
    return product


@pytest.fixture(scope='function')
def customer(store_session):
    customer = Customer(name='Dana Client', phone='555-0100', city='Springfield', address='1 Main St')
    store_session.add(customer)
    store_session.commit()
    return customer


@pytest.fixture(scope='function')
def delivery_boy(store_session):
    """Active delivery person."""
    boy = DeliveryBoy(name='Rider One', phone='555-0111', status='active')
    store_session.add(boy)
    store_session.commit()
    return boy


def login(client, username, password, tenant_code=None):
    """Log in through the API and return the JSON response and status."""
    body = {'username': username, 'password': password}
    if tenant_code:
        body['tenant_code'] = tenant_code
    response = client.post('/api/auth/login', json=body)
    return response


def bearer(response):
    return {'Authorization': f"Bearer {response.get_json()['token']}"}


@pytest.fixture(scope='function')
def owner_headers(client, tenant_a):
    """Auth headers for tenant_a's owner (role admin)."""
    return bearer(login(client, 'alpha_owner', 'alphapass', 'ALPHA'))


@pytest.fixture(scope='function')
def owner_b_headers(client, tenant_b):
    """Auth headers for tenant_b's owner."""
    return bearer(login(client, 'bravo_owner', 'bravopass', 'BRAVO'))


@pytest.fixture(scope='function')
def super_headers(client):
    """Auth headers for the seeded super-admin."""
    return bearer(login(client, 'root', 'rootpass'))


@pytest.fixture(scope='function')
def api_login(client):
    """Return a function that logs in and returns (response, headers)."""
    def _login(username, password, tenant_code=None):
        response = login(client, username, password, tenant_code)
        headers = bearer(response) if response.status_code == 200 else None
        return response, headers
    return _login


@pytest.fixture(scope='function')
def login_as(client):
    """Return a function that posts to /api/auth/login and returns the response."""
    def _login_as(username, password, tenant_code=None):
        return login(client, username, password, tenant_code)
    return _login_as
