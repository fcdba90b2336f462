"""Money helpers shared by the payments service.

Amounts are stored and exposed as ``Decimal`` in major units (dollars) with two
decimal places. Processors expect integer minor units (cents).
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

MINOR_UNITS_PER_MAJOR: int = 100
CENT = Decimal("0.01")


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """Coerce a numeric input to Decimal without float artifacts."""
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"Not a valid amount: {value!r}") from exc


def quantize_money(value: Decimal) -> Decimal:
    """Round to cents, half-up."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_minor_units(amount: Decimal) -> int:
    """Convert a major-unit amount to integer cents (round half-up)."""
    return int(quantize_money(amount) * MINOR_UNITS_PER_MAJOR)

