"""
Fixed-point money helpers.

All amounts are Decimal with 2 fractional digits, rounded half-up.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

from .errors import InvalidDiscount

Number = Union[Decimal, int, float, str]

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


def to_decimal(value: Number) -> Decimal:
    """Convert a number to Decimal without binary float artifacts."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def round2(value: Number) -> Decimal:
    """Round to 2 decimals using round-half-up."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def clamp_non_negative(value: Number) -> Decimal:
    """Clamp negative amounts to zero."""
    amount = to_decimal(value)
    return amount if amount > 0 else ZERO


def apply_discount_percent(base: Number, percent: Number) -> Decimal:
    """
    Apply a percentage discount to a base amount.

    Raises InvalidDiscount if percent is outside 0-100.
    """
    pct = to_decimal(percent)
    if pct < 0 or pct > HUNDRED:
        raise InvalidDiscount(pct)
    discounted = round2(to_decimal(base) * (1 - pct / HUNDRED))
    return clamp_non_negative(discounted)


def within_tolerance(a: Number, b: Number, tolerance: Number = CENT) -> bool:
    """Check whether two amounts differ by no more than tolerance."""
    return abs(to_decimal(a) - to_decimal(b)) <= to_decimal(tolerance)
