"""
Typed tenant settings.

Settings are persisted as string key/value rows in the tenant store but are
only read and written through ``TenantSettings``, which enumerates the
recognized keys and validates values at write time.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, asdict, fields, replace
from decimal import Decimal, InvalidOperation
from typing import Any, Dict

from restopos.exceptions import BusinessLogicError
from restopos.models import Setting

logger = logging.getLogger(__name__)

CURRENCIES = ('USD', 'EUR', 'GBP', 'SAR', 'AED', 'PKR', 'INR')
LANGUAGES = ('en', 'ar', 'ur')
RECEIPT_PAPER_SIZES = ('80mm', '58mm')

TRUE_VALUES = ('true', '1', 'yes', 'on')
FALSE_VALUES = ('false', '0', 'no', 'off', '')


@dataclass(frozen=True)
class TenantSettings:
    """Recognized per-tenant settings.

    restaurant_*, trn: printed on receipts (trn is the tax registration number).
    vat_percentage: default VAT applied by the POS to new carts (0-100).
    currency: ISO code used to format amounts.
    language: UI language.
    receipt_paper_size: thermal roll width used by the receipt layout.
    receipt_auto_print: print the receipt as soon as a sale is committed.
    """
    restaurant_name: str = 'My POS'
    restaurant_logo: str = ''
    restaurant_address: str = ''
    restaurant_phone: str = ''
    restaurant_email: str = ''
    trn: str = ''
    vat_percentage: Decimal = Decimal('0')
    currency: str = 'USD'
    language: str = 'en'
    receipt_paper_size: str = '80mm'
    receipt_auto_print: bool = False

    @classmethod
    def keys(cls):
        return tuple(f.name for f in fields(cls))

    @classmethod
    def from_storage(cls, rows: Dict[str, str]) -> 'TenantSettings':
        """Build from stored strings. Invalid stored values fall back to defaults."""
        settings = cls()
        for key in cls.keys():
            if key not in rows or rows[key] is None:
                continue
            try:
                settings = replace(settings, **{key: _coerce(key, rows[key])})
            except BusinessLogicError as e:
                logger.warning(f"Ignoring stored setting {key}={rows[key]!r}: {e.message}")
        return settings

    def with_updates(self, updates: Dict[str, Any]) -> 'TenantSettings':
        """Return a validated copy with ``updates`` applied."""
        unknown = sorted(set(updates) - set(self.keys()))
        if unknown:
            raise BusinessLogicError(f"Unknown setting(s): {', '.join(unknown)}", payload={'unknown_keys': unknown})
        coerced = {key: _coerce(key, value) for key, value in updates.items()}
        return replace(self, **coerced)

    def to_storage(self) -> Dict[str, str]:
        rv = {}
        for key, value in asdict(self).items():
            if isinstance(value, bool):
                rv[key] = 'true' if value else 'false'
            else:
                rv[key] = str(value)
        return rv

    def to_dict(self) -> Dict[str, Any]:
        rv = asdict(self)
        rv['vat_percentage'] = float(self.vat_percentage)
        return rv


def _coerce(key: str, value: Any):
    """Validate and convert one setting value."""
    if key == 'vat_percentage':
        try:
            number = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError):
            raise BusinessLogicError('vat_percentage must be a number')
        if not number.is_finite() or number < 0 or number > 100:
            raise BusinessLogicError('vat_percentage must be between 0 and 100')
        return number

    if key == 'receipt_auto_print':
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in TRUE_VALUES:
            return True
        if text in FALSE_VALUES:
            return False
        raise BusinessLogicError('receipt_auto_print must be true or false')

    if value is None:
        value = ''
    if not isinstance(value, (str, int, float)) or isinstance(value, bool):
        raise BusinessLogicError(f'{key} must be a string')
    text = str(value).strip()

    if key == 'restaurant_name' and not text:
        raise BusinessLogicError('restaurant_name cannot be empty')
    if key == 'currency':
        text = text.upper()
        if text not in CURRENCIES:
            raise BusinessLogicError(f"currency must be one of {', '.join(CURRENCIES)}")
    if key == 'language' and text not in LANGUAGES:
        raise BusinessLogicError(f"language must be one of {', '.join(LANGUAGES)}")
    if key == 'receipt_paper_size' and text not in RECEIPT_PAPER_SIZES:
        raise BusinessLogicError(f"receipt_paper_size must be one of {', '.join(RECEIPT_PAPER_SIZES)}")
    if key == 'restaurant_email' and text and '@' not in text:
        raise BusinessLogicError('restaurant_email is not a valid email address')
    return text


def load_settings(session) -> TenantSettings:
    """Read the tenant's settings, filling gaps with defaults."""
    rows = {row.key: row.value for row in session.query(Setting).all()}
    return TenantSettings.from_storage(rows)


def save_settings(session, settings: TenantSettings) -> None:
    """Upsert every recognized key. Does not commit."""
    existing = {row.key: row for row in session.query(Setting).all()}
    for key, value in settings.to_storage().items():
        row = existing.get(key)
        if row is None:
            session.add(Setting(key=key, value=value))
        elif row.value != value:
            row.value = value


def update_settings(session, updates: Dict[str, Any]) -> TenantSettings:
    """Validate and persist a partial settings update."""
    if not isinstance(updates, dict) or not updates:
        raise BusinessLogicError('No settings provided')

    settings = load_settings(session).with_updates(updates)
    try:
        save_settings(session, settings)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"Updated settings: {', '.join(sorted(updates))}")
    return settings


def seed_default_settings(session, restaurant_name: str = None) -> TenantSettings:
    """Write default settings into a freshly created store."""
    settings = TenantSettings()
    if restaurant_name:
        settings = settings.with_updates({'restaurant_name': restaurant_name})
    save_settings(session, settings)
    session.commit()
    return settings
