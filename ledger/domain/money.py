"""
Money helpers. All ledger amounts are Decimal with two places.
"""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value) -> Decimal:
    """Coerce value to a two-place Decimal (half-up)."""
    if isinstance(value, float):
        value = str(value)
    try:
        return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f"Invalid money amount: {value!r}")


def to_centavos(amount: Decimal) -> int:
    """Convert amount to integer minor units."""
    return int((to_money(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))
