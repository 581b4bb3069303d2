"""
Unit tests for typed tenant settings.
"""

from decimal import Decimal

import pytest

from restopos.exceptions import BusinessLogicError
from restopos.models import Setting
from restopos.services.settings_service import TenantSettings, load_settings, update_settings


class TestTenantSettings:
    """Validation on the settings dataclass."""

    def test_defaults(self):
        settings = TenantSettings()
        assert settings.currency == 'USD'
        assert settings.vat_percentage == Decimal('0')
        assert settings.receipt_auto_print is False

    def test_unknown_key_rejected(self):
        with pytest.raises(BusinessLogicError) as exc:
            TenantSettings().with_updates({'theme': 'dark'})
        assert exc.value.payload == {'unknown_keys': ['theme']}

    @pytest.mark.parametrize('key,value', [
        ('vat_percentage', '101'),
        ('vat_percentage', 'abc'),
        ('currency', 'XYZ'),
        ('language', 'fr'),
        ('receipt_paper_size', '110mm'),
        ('receipt_auto_print', 'maybe'),
        ('restaurant_name', '  '),
    ])
    def test_invalid_values_rejected(self, key, value):
        with pytest.raises(BusinessLogicError):
            TenantSettings().with_updates({key: value})

    def test_storage_round_trip_of_typed_values(self):
        settings = TenantSettings().with_updates({'vat_percentage': '5', 'receipt_auto_print': True, 'currency': 'eur'})
        stored = settings.to_storage()

        assert stored['vat_percentage'] == '5'
        assert stored['receipt_auto_print'] == 'true'
        assert TenantSettings.from_storage(stored) == settings

    def test_invalid_stored_value_falls_back_to_default(self):
        settings = TenantSettings.from_storage({'currency': 'XYZ', 'language': 'ar'})
        assert settings.currency == 'USD'
        assert settings.language == 'ar'


class TestSettingsPersistence:
    """Settings stored in the tenant store."""

    def test_seeded_at_provisioning(self, store_session, tenant_a):
        settings = load_settings(store_session)
        assert settings.restaurant_name == tenant_a.restaurant_name
        assert store_session.query(Setting).count() == len(TenantSettings.keys())

    def test_update_persists(self, store_session):
        update_settings(store_session, {'vat_percentage': 15, 'trn': '300-123'})

        settings = load_settings(store_session)
        assert settings.vat_percentage == Decimal('15')
        assert settings.trn == '300-123'

    def test_rejected_update_changes_nothing(self, store_session):
        with pytest.raises(BusinessLogicError):
            update_settings(store_session, {'trn': '1', 'currency': 'XYZ'})

        assert load_settings(store_session).trn == ''
