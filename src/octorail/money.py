"""Price helpers. Prices travel as decimal strings and are only parsed to sum."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP


_CENTS = Decimal("0.01")
ZERO = Decimal("0")


def parse_price(value: object) -> Decimal:
    """Parse a price string into a Decimal, falling back to zero."""
    if value is None or isinstance(value, bool):
        return ZERO
    raw = str(value).strip().lstrip("$").strip()
    try:
        amount = Decimal(raw)
    except (InvalidOperation, ValueError):
        return ZERO
    if not amount.is_finite():
        return ZERO
    return amount


def is_valid_price(value: str) -> bool:
    """True when value is a finite, non-negative decimal."""
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return False
    return amount.is_finite() and amount >= 0


def format_usdc(amount: Decimal) -> str:
    """Format a USDC amount with two decimal places."""
    return str(amount.quantize(_CENTS, rounding=ROUND_HALF_UP))
