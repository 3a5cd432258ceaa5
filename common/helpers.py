"""
Jewelcraft - Shared Helpers
============================
Pure utility functions with NO database or module dependencies.
"""

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

MONEY_QUANT = Decimal("0.01")


def now_utc() -> datetime:
    """Returns current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


def to_decimal(value) -> Optional[Decimal]:
    """
    Convert user/DB input to Decimal without float noise.
    Returns None for None, blank strings and non-numeric input.
    """
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, bool):
        return None
    try:
        d = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    return d if d.is_finite() else None


def safe_decimal(value, default: Decimal = Decimal("0")) -> Decimal:
    """Like to_decimal() but falls back to default."""
    d = to_decimal(value)
    return default if d is None else d


def round_money(value) -> Decimal:
    """Round to 2 decimal places, half-up (reporting precision)."""
    return safe_decimal(value).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def format_money(value, symbol: str = "₹") -> str:
    """Format amount with thousands separators and 2 decimals."""
    if value is None:
        return f"{symbol}0.00"
    return f"{symbol}{round_money(value):,.2f}"


def format_weight(value) -> str:
    """Format weight, removing unnecessary trailing zeros."""
    if value is None:
        return ""
    try:
        d = Decimal(str(value))
        normalized = d.normalize()
        if normalized.as_tuple().exponent > 0:
            return str(int(d))
        return "{:f}".format(normalized)
    except (InvalidOperation, ValueError):
        return str(value)
