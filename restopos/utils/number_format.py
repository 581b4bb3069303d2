"""Number parsing and serialization helpers for money and quantities."""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from datetime import date, datetime
from typing import Optional, Union

from restopos.exceptions import BusinessLogicError

CENT = Decimal('0.01')


def parse_decimal(value, field: str, default: Optional[Decimal] = None, minimum: Optional[Decimal] = None) -> Decimal:
    """
    Parse a request value into a Decimal.

    Raises:
        BusinessLogicError: if the value is missing (and no default), not numeric,
            or below ``minimum``.
    """
    if value is None or value == '':
        if default is not None:
            return default
        raise BusinessLogicError(f'{field} is required')

    if isinstance(value, bool):
        raise BusinessLogicError(f'{field} must be a number')

    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise BusinessLogicError(f'{field} must be a number')

    if not number.is_finite():
        raise BusinessLogicError(f'{field} must be a number')

    if minimum is not None and number < minimum:
        raise BusinessLogicError(f'{field} must be at least {minimum}')

    return number


def parse_optional_int(value, field: str) -> Optional[int]:
    """Parse an optional integer id (None, '' and null map to None)."""
    if value is None or value == '':
        return None
    if isinstance(value, bool):
        raise BusinessLogicError(f'{field} must be an integer')
    try:
        return int(value)
    except (ValueError, TypeError):
        raise BusinessLogicError(f'{field} must be an integer')


def quantize_money(value: Union[Decimal, int, float]) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def as_float(value) -> Optional[float]:
    """Serialize a Decimal/number for JSON output."""
    if value is None:
        return None
    return float(value)


def iso(value: Optional[Union[date, datetime]]) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return value.isoformat()
