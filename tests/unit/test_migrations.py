"""
Unit tests for additive schema migrations on legacy stores.
"""

import pytest
from sqlalchemy import inspect, text

from restopos.database import sqlite_engine
from restopos.exceptions import SchemaMigrationError
from restopos.migrations import Migration, TENANT_MIGRATIONS, run_migrations, applied_versions
from restopos.tenant_db import TenantStoreRegistry

LEGACY_SCHEMA = (
    '''CREATE TABLE categories (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name VARCHAR(200) NOT NULL UNIQUE,
        description TEXT,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
    )''',
    '''CREATE TABLE products (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name VARCHAR(200) NOT NULL,
        price NUMERIC(10, 2) NOT NULL,
        category_id INTEGER,
        image VARCHAR(500),
        description TEXT,
        stock_quantity NUMERIC(12, 3) NOT NULL DEFAULT 0,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
    )''',
    '''CREATE TABLE sales (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        sale_number VARCHAR(50) NOT NULL UNIQUE,
        customer_id INTEGER,
        user_id INTEGER,
        subtotal NUMERIC(10, 2) NOT NULL,
        discount_amount NUMERIC(10, 2) NOT NULL DEFAULT 0,
        discount_type VARCHAR(20) NOT NULL DEFAULT 'fixed',
        vat_percentage NUMERIC(5, 2) NOT NULL DEFAULT 0,
        vat_amount NUMERIC(10, 2) NOT NULL DEFAULT 0,
        total NUMERIC(10, 2) NOT NULL,
        payment_method VARCHAR(30) NOT NULL,
        payment_amount NUMERIC(10, 2),
        change_amount NUMERIC(10, 2) NOT NULL DEFAULT 0,
        order_type VARCHAR(20) NOT NULL DEFAULT 'dine-in',
        status VARCHAR(20) NOT NULL DEFAULT 'completed',
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
    )''',
    "INSERT INTO sales (sale_number, subtotal, total, payment_method) VALUES ('SALE-OLD-1', 5, 5, 'cash')",
)


def columns(engine, table):
    return {column['name'] for column in inspect(engine).get_columns(table)}


@pytest.fixture
def legacy_store(tmp_path):
    """Store file written by an older release, before the delivery columns existed."""
    registry = TenantStoreRegistry(str(tmp_path), idle_seconds=0)
    engine = sqlite_engine(registry.store_path('OLD'))
    with engine.begin() as conn:
        for statement in LEGACY_SCHEMA:
            conn.execute(text(statement))
    engine.dispose()
    yield registry
    registry.dispose_all()


class TestLegacyUpgrade:
    """Opening an old store adds the missing columns and tables."""

    def test_columns_added_on_open(self, legacy_store):
        engine = legacy_store.get_engine('OLD')

        sale_columns = columns(engine, 'sales')
        assert {'delivery_boy_id', 'delivery_status', 'delivery_settled_amount', 'operator_name'} <= sale_columns
        assert {'barcode', 'stock_tracking_enabled', 'expiry_date', 'purchase_rate'} <= columns(engine, 'products')
        assert 'delivery_boys' in inspect(engine).get_table_names()

    def test_existing_rows_get_defaults(self, legacy_store):
        engine = legacy_store.get_engine('OLD')
        with engine.connect() as conn:
            row = conn.execute(text(
                "SELECT delivery_settled_amount, delivery_payment_collected FROM sales WHERE sale_number = 'SALE-OLD-1'"
            )).one()
        assert row[0] == 0
        assert row[1] == 0

    def test_ledger_records_every_version(self, legacy_store):
        engine = legacy_store.get_engine('OLD')
        assert applied_versions(engine) == {m.version for m in TENANT_MIGRATIONS}

    def test_second_run_is_a_no_op(self, legacy_store):
        engine = legacy_store.get_engine('OLD')
        assert run_migrations(engine, TENANT_MIGRATIONS, store_name='OLD') == []


class TestMigrationFailures:
    def test_duplicate_column_counts_as_applied(self, tmp_path):
        engine = sqlite_engine(str(tmp_path / 'dup.db'))
        try:
            with engine.begin() as conn:
                conn.execute(text('CREATE TABLE things (id INTEGER PRIMARY KEY, label TEXT)'))
            migration = Migration(1, 'things_label', ('ALTER TABLE things ADD COLUMN label TEXT',))

            assert run_migrations(engine, [migration], store_name='dup') == [1]
        finally:
            engine.dispose()

    def test_other_failures_abort(self, tmp_path):
        engine = sqlite_engine(str(tmp_path / 'bad.db'))
        try:
            migration = Migration(7, 'broken', ('ALTER TABLE missing ADD COLUMN x INTEGER',))

            with pytest.raises(SchemaMigrationError) as exc:
                run_migrations(engine, [migration], store_name='bad')

            assert exc.value.version == 7
            assert 7 not in applied_versions(engine)
        finally:
            engine.dispose()
