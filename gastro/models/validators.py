"""Model-level validation utilities for data integrity.

Reusable validators for ``@validates`` hooks so invalid values are rejected
regardless of which service or endpoint writes them.
"""

from decimal import Decimal

# Stock is kept in purchase units; recipe-unit sales need a fine scale
STOCK_SCALE = 8
STOCK_QUANTUM = Decimal(1).scaleb(-STOCK_SCALE)


def non_negative(key: str, value):
    """Validate that a numeric value is >= 0."""
    if value is not None:
        v = Decimal(str(value)) if not isinstance(value, Decimal) else value
        if v < 0:
            raise ValueError(f"{key} cannot be negative, got {value}")
    return value


def positive(key: str, value):
    """Validate that a numeric value is > 0."""
    if value is not None:
        v = Decimal(str(value)) if not isinstance(value, Decimal) else value
        if v <= 0:
            raise ValueError(f"{key} must be positive, got {value}")
    return value


def not_blank(key: str, value):
    """Validate that a string value has visible characters."""
    if value is not None and not str(value).strip():
        raise ValueError(f"{key} cannot be blank")
    return value
