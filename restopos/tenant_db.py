"""
Per-tenant SQLite store registry.

Each tenant owns ``DATA_DIR/tenants/<CODE>.db``. Engines are cached by tenant
code in a bounded LRU with idle eviction; every request still gets its own
session from the cached engine and releases it at teardown.
"""
import os
import re
import time
import logging
import threading
from collections import OrderedDict

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from restopos import models  # noqa: F401  register tenant mappers
from restopos.database import TenantBase, sqlite_engine
from restopos.migrations import run_migrations, TENANT_MIGRATIONS
from restopos.exceptions import BusinessLogicError, StoreUnavailableError, SchemaMigrationError

logger = logging.getLogger(__name__)

TENANT_CODE_PATTERN = re.compile(r'^[A-Za-z0-9_-]{2,32}$')


def validate_tenant_code(tenant_code):
    """Reject codes that could escape the tenants directory."""
    if not tenant_code or not TENANT_CODE_PATTERN.match(tenant_code):
        raise BusinessLogicError('Invalid tenant code')
    return tenant_code


class TenantStore:
    """Cached engine and session factory for one tenant file."""

    def __init__(self, tenant_code, engine):
        self.tenant_code = tenant_code
        self.engine = engine
        self.session_factory = sessionmaker(
            bind=engine, autocommit=False, autoflush=False, expire_on_commit=False
        )
        self.last_used = time.monotonic()

    def touch(self):
        self.last_used = time.monotonic()

    def dispose(self):
        self.engine.dispose()


class TenantStoreRegistry:
    """LRU cache of tenant engines keyed by tenant code."""

    def __init__(self, data_dir, max_size=64, idle_seconds=1800, timeout=30.0, echo=False):
        self.tenants_dir = os.path.join(data_dir, 'tenants')
        self.max_size = max(1, max_size)
        self.idle_seconds = idle_seconds
        self.timeout = timeout
        self.echo = echo
        self._stores = OrderedDict()
        self._lock = threading.Lock()
        os.makedirs(self.tenants_dir, exist_ok=True)

    def __len__(self):
        return len(self._stores)

    def __contains__(self, tenant_code):
        return tenant_code in self._stores

    def store_path(self, tenant_code):
        validate_tenant_code(tenant_code)
        return os.path.join(self.tenants_dir, f'{tenant_code}.db')

    def exists(self, tenant_code):
        return os.path.exists(self.store_path(tenant_code))

    def create_store(self, tenant_code):
        """Create the store file with the current schema and return its engine."""
        path = self.store_path(tenant_code)
        logger.info(f"Creating tenant store {tenant_code} at {path}")
        with self._lock:
            return self._open(tenant_code, path).engine

    def get_engine(self, tenant_code):
        """
        Return the engine for an existing tenant store, opening and migrating it
        on first use.

        Raises:
            StoreUnavailableError: store file missing or unopenable
            SchemaMigrationError: a migration failed
        """
        return self._get_store(tenant_code).engine

    def open_session(self, tenant_code):
        """Open a fresh session bound to the tenant's store. Caller closes it."""
        return self._get_store(tenant_code).session_factory()

    def evict(self, tenant_code):
        """Drop a cached engine so the next request reopens the store."""
        with self._lock:
            store = self._stores.pop(tenant_code, None)
        if store is not None:
            store.dispose()
            logger.info(f"Evicted tenant store {tenant_code}")
            return True
        return False

    def delete_store(self, tenant_code):
        """Evict and remove the store file."""
        path = self.store_path(tenant_code)
        self.evict(tenant_code)
        if os.path.exists(path):
            os.remove(path)
            logger.info(f"Deleted tenant store file {path}")

    def dispose_all(self):
        with self._lock:
            stores = list(self._stores.values())
            self._stores.clear()
        for store in stores:
            store.dispose()

    def _get_store(self, tenant_code):
        path = self.store_path(tenant_code)
        with self._lock:
            self._evict_idle()
            store = self._stores.get(tenant_code)
            if store is not None:
                store.touch()
                self._stores.move_to_end(tenant_code)
                return store

            if not os.path.exists(path):
                logger.error(f"Tenant store file not found: {path}")
                raise StoreUnavailableError(tenant_code, 'store file not found')

            return self._open(tenant_code, path)

    def _open(self, tenant_code, path):
        engine = sqlite_engine(path, timeout=self.timeout, echo=self.echo)
        try:
            TenantBase.metadata.create_all(engine)
            run_migrations(engine, TENANT_MIGRATIONS, store_name=tenant_code)
        except SchemaMigrationError:
            engine.dispose()
            raise
        except SQLAlchemyError as e:
            engine.dispose()
            logger.error(f"Could not open tenant store {tenant_code}: {e}")
            raise StoreUnavailableError(tenant_code, str(e)) from e

        store = TenantStore(tenant_code, engine)
        self._stores[tenant_code] = store
        self._stores.move_to_end(tenant_code)

        while len(self._stores) > self.max_size:
            old_code, old_store = self._stores.popitem(last=False)
            old_store.dispose()
            logger.debug(f"Evicted least recently used tenant store {old_code}")

        return store

    def _evict_idle(self):
        if not self.idle_seconds:
            return
        now = time.monotonic()
        idle = [code for code, store in self._stores.items() if now - store.last_used > self.idle_seconds]
        for code in idle:
            self._stores.pop(code).dispose()
            logger.debug(f"Evicted idle tenant store {code}")


def init_tenant_stores(app):
    """Attach a TenantStoreRegistry to the app."""
    registry = TenantStoreRegistry(
        app.config['DATA_DIR'],
        max_size=app.config.get('TENANT_STORE_CACHE_SIZE', 64),
        idle_seconds=app.config.get('TENANT_STORE_IDLE_SECONDS', 1800),
        timeout=app.config.get('SQLITE_TIMEOUT', 30.0),
        echo=app.config.get('SQLALCHEMY_ECHO', False),
    )
    app.extensions['tenant_stores'] = registry
    return registry


def get_tenant_stores():
    """Get the registry of the current app."""
    return current_app.extensions['tenant_stores']
