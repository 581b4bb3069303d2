"""
Unit tests for the tenant store registry.
"""

import os

import pytest
from sqlalchemy import inspect

from restopos.exceptions import BusinessLogicError, StoreUnavailableError
from restopos.tenant_db import TenantStoreRegistry, validate_tenant_code


@pytest.fixture
def registry(tmp_path):
    registry = TenantStoreRegistry(str(tmp_path), max_size=2, idle_seconds=0, timeout=5)
    yield registry
    registry.dispose_all()


class TestTenantCodes:
    @pytest.mark.parametrize('code', ['../x', 'a/b', '', 'A', 'CODE.db', 'X' * 33])
    def test_unsafe_codes_rejected(self, registry, code):
        with pytest.raises(BusinessLogicError):
            registry.store_path(code)

    def test_valid_code(self):
        assert validate_tenant_code('ALPHA_1') == 'ALPHA_1'

    def test_store_path_stays_in_tenants_dir(self, registry, tmp_path):
        assert registry.store_path('ALPHA') == os.path.join(str(tmp_path), 'tenants', 'ALPHA.db')


class TestStoreLifecycle:
    """Create, open, evict and delete tenant stores."""

    def test_create_store_builds_schema(self, registry):
        engine = registry.create_store('ALPHA')

        tables = set(inspect(engine).get_table_names())
        assert {'sales', 'sale_items', 'products', 'categories', 'delivery_boys',
                'held_sales', 'settings', 'users', 'schema_migrations'} <= tables
        assert registry.exists('ALPHA')
        assert 'ALPHA' in registry

    def test_missing_store_is_unavailable(self, registry):
        with pytest.raises(StoreUnavailableError):
            registry.open_session('GHOST')
        assert not registry.exists('GHOST')

    def test_lru_bound(self, registry):
        for code in ('AA', 'BB', 'CC'):
            registry.create_store(code)

        assert len(registry) == 2
        assert 'AA' not in registry

        # Evicted stores reopen from disk
        session = registry.open_session('AA')
        session.close()
        assert 'AA' in registry
        assert 'BB' not in registry

    def test_recently_used_store_survives(self, registry):
        registry.create_store('AA')
        registry.create_store('BB')
        registry.open_session('AA').close()
        registry.create_store('CC')

        assert 'AA' in registry
        assert 'BB' not in registry

    def test_evict(self, registry):
        registry.create_store('AA')
        assert registry.evict('AA') is True
        assert registry.evict('AA') is False
        assert registry.exists('AA')

    def test_delete_store_removes_file(self, registry):
        registry.create_store('AA')
        registry.delete_store('AA')

        assert not registry.exists('AA')
        assert 'AA' not in registry
        with pytest.raises(StoreUnavailableError):
            registry.open_session('AA')

    def test_idle_stores_evicted(self, tmp_path):
        registry = TenantStoreRegistry(str(tmp_path), max_size=5, idle_seconds=1)
        try:
            registry.create_store('AA')
            registry._stores['AA'].last_used -= 10
            registry.create_store('BB')
            registry.open_session('BB').close()
            assert 'AA' not in registry
        finally:
            registry.dispose_all()
