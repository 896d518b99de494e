# backend/marketpos/money.py
"""
Currency arithmetic.

Every subtotal, tax, total and change value is the output of
round_currency(): two decimal places, round-half-up (never banker's
rounding). Amounts are persisted as integer cents and exposed as Decimal.

Floats are converted through their shortest repr, so 19.005 is treated as
the decimal 19.005 rather than its binary approximation 19.00499999...
"""
from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal("0.01")
HUNDRED = Decimal(100)
# Tax rates are stored in ten-thousandths of a percent (50000 = 5%)
RATE_STEP = Decimal("0.0001")


def to_decimal(amount) -> Decimal:
    if isinstance(amount, Decimal):
        value = amount
    elif isinstance(amount, bool):
        raise ValueError("amount must be a number")
    elif isinstance(amount, int):
        value = Decimal(amount)
    elif isinstance(amount, float):
        value = Decimal(repr(amount))
    elif isinstance(amount, str):
        try:
            value = Decimal(amount.strip())
        except InvalidOperation:
            raise ValueError(f"invalid amount: {amount!r}")
    else:
        raise ValueError("amount must be a number")

    if not value.is_finite():
        raise ValueError("amount must be finite")
    return value


def round_currency(amount) -> Decimal:
    try:
        return to_decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # quantize overflows the context precision for huge magnitudes
        raise ValueError(f"amount out of range: {amount!r}")


def to_cents(amount) -> int:
    return int(round_currency(amount) * HUNDRED)


def from_cents(cents: int | None) -> Decimal | None:
    if cents is None:
        return None
    return (Decimal(int(cents)) / HUNDRED).quantize(CENT)


def rate_to_units(rate) -> int:
    """
    Tax rate (percent) as an integer count of RATE_STEP units.

    Rates are never rounded: one with more than four decimal places is
    rejected rather than stored as something other than what was charged.
    """
    value = to_decimal(rate)
    if value.normalize().as_tuple().exponent < -4:
        raise ValueError(f"tax rate allows at most 4 decimal places: {rate!r}")
    return int(value / RATE_STEP)


def rate_from_units(units: int | None) -> Decimal | None:
    if units is None:
        return None
    rate = (Decimal(int(units)) * RATE_STEP).normalize()
    if rate.as_tuple().exponent > -2:
        return rate.quantize(CENT)
    return rate


def compute_tax(subtotal, tax_percent) -> Decimal:
    """Tax on a subtotal at a store-level percentage rate, rounded."""
    return round_currency(to_decimal(subtotal) * to_decimal(tax_percent) / HUNDRED)
