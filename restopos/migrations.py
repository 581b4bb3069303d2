"""
Versioned, additive schema migrations for SQLite stores.

Every store carries a ``schema_migrations`` ledger. Each migration is applied
once per store file and recorded by version, so the check survives restarts
and is shared by every process opening the same file.

Statements are additive (ADD COLUMN / CREATE TABLE). A statement that fails
because its column or table already exists counts as applied; any other
failure aborts with SchemaMigrationError.
"""
import logging
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from restopos.exceptions import SchemaMigrationError

logger = logging.getLogger(__name__)

DUPLICATE_MARKERS = ('duplicate column name', 'already exists')


@dataclass(frozen=True)
class Migration:
    version: int
    name: str
    statements: Tuple[str, ...]


DIRECTORY_MIGRATIONS = (
    Migration(1, 'tenants_activated_at', (
        'ALTER TABLE tenants ADD COLUMN activated_at DATETIME',
    )),
)

TENANT_MIGRATIONS = (
    Migration(1, 'sales_delivery_columns', (
        'ALTER TABLE sales ADD COLUMN delivery_boy_id INTEGER',
        'ALTER TABLE sales ADD COLUMN delivery_status VARCHAR(30)',
        'ALTER TABLE sales ADD COLUMN delivery_payment_collected BOOLEAN NOT NULL DEFAULT 0',
        'ALTER TABLE sales ADD COLUMN delivery_assigned_at DATETIME',
        'ALTER TABLE sales ADD COLUMN delivery_delivered_at DATETIME',
        'ALTER TABLE sales ADD COLUMN delivery_settled_at DATETIME',
    )),
    Migration(2, 'sales_settled_amount_and_operator', (
        'ALTER TABLE sales ADD COLUMN delivery_settled_amount NUMERIC(10, 2) NOT NULL DEFAULT 0',
        'ALTER TABLE sales ADD COLUMN operator_name VARCHAR(200)',
    )),
    Migration(3, 'products_expiry_barcode_tracking', (
        'ALTER TABLE products ADD COLUMN expiry_date DATE',
        'ALTER TABLE products ADD COLUMN barcode VARCHAR(100)',
        'ALTER TABLE products ADD COLUMN stock_tracking_enabled BOOLEAN NOT NULL DEFAULT 0',
        'ALTER TABLE products ADD COLUMN purchase_rate NUMERIC(10, 2)',
    )),
    Migration(4, 'delivery_boys_table', (
        '''CREATE TABLE delivery_boys (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name VARCHAR(200) NOT NULL,
            phone VARCHAR(50),
            email VARCHAR(200),
            address TEXT,
            status VARCHAR(20) NOT NULL DEFAULT 'active',
            created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
            updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
        )''',
    )),
    Migration(5, 'held_sales_table', (
        '''CREATE TABLE held_sales (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            hold_number VARCHAR(50) NOT NULL UNIQUE,
            customer_id INTEGER,
            user_id INTEGER,
            cart_data TEXT NOT NULL,
            subtotal NUMERIC(10, 2) NOT NULL DEFAULT 0,
            discount_amount NUMERIC(10, 2) NOT NULL DEFAULT 0,
            discount_type VARCHAR(20) NOT NULL DEFAULT 'fixed',
            vat_percentage NUMERIC(5, 2) NOT NULL DEFAULT 0,
            vat_amount NUMERIC(10, 2) NOT NULL DEFAULT 0,
            total NUMERIC(10, 2) NOT NULL DEFAULT 0,
            notes TEXT,
            created_at DATETIME DEFAULT CURRENT_TIMESTAMP
        )''',
    )),
)


def is_duplicate_error(error: OperationalError) -> bool:
    """Whether a DDL failure only means the column/table is already there."""
    message = str(getattr(error, 'orig', error)).lower()
    return any(marker in message for marker in DUPLICATE_MARKERS)


def applied_versions(engine) -> set:
    """Return the set of migration versions recorded in a store."""
    with engine.begin() as conn:
        conn.execute(text(
            'CREATE TABLE IF NOT EXISTS schema_migrations ('
            'version INTEGER PRIMARY KEY, '
            'name VARCHAR(100) NOT NULL, '
            'applied_at DATETIME DEFAULT CURRENT_TIMESTAMP)'
        ))
        rows = conn.execute(text('SELECT version FROM schema_migrations')).fetchall()
    return {row[0] for row in rows}


def run_migrations(engine, migrations: Sequence[Migration], store_name: str = '') -> List[int]:
    """
    Apply every migration not yet recorded in the store.

    Args:
        engine: SQLAlchemy engine bound to the store file
        migrations: Migration definitions, any order
        store_name: Label used in logs and errors (tenant code or 'directory')

    Returns:
        List of versions recorded by this call

    Raises:
        SchemaMigrationError: A statement failed for a non-duplicate reason
    """
    done = applied_versions(engine)
    recorded = []

    for migration in sorted(migrations, key=lambda m: m.version):
        if migration.version in done:
            continue

        for statement in migration.statements:
            try:
                with engine.begin() as conn:
                    conn.execute(text(statement))
            except OperationalError as e:
                if is_duplicate_error(e):
                    logger.debug(f"[{store_name}] migration {migration.version} already present: {e.orig}")
                    continue
                logger.error(f"[{store_name}] migration {migration.version} ({migration.name}) failed: {e}")
                raise SchemaMigrationError(store_name, migration.version, str(e)) from e

        with engine.begin() as conn:
            conn.execute(
                text('INSERT OR IGNORE INTO schema_migrations (version, name) VALUES (:version, :name)'),
                {'version': migration.version, 'name': migration.name}
            )
        recorded.append(migration.version)
        logger.info(f"[{store_name}] recorded schema migration {migration.version} ({migration.name})")

    return recorded
