"""
Platform fee calculation.

Pure functions with no I/O; the fee rate is always passed in by the caller
(``settings.PLATFORM_FEE_BPS`` in production).
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from libs.common.currency import CENT, to_decimal

BPS_DENOMINATOR = Decimal(10_000)


@dataclass(frozen=True)
class FeeBreakdown:
    gross: Decimal
    fee: Decimal
    net: Decimal


def compute_fee(amount, fee_rate_bps: int) -> FeeBreakdown:
    """
    Split a gross amount into platform fee and landlord net.

    fee = round_half_up(amount * fee_rate_bps / 10000) to the cent
    net = amount - fee

    Raises:
        ValueError: negative amount, or a rate outside 0..10000 bps.
    """
    if fee_rate_bps < 0 or fee_rate_bps > BPS_DENOMINATOR:
        raise ValueError(f"fee_rate_bps out of range: {fee_rate_bps}")

    gross = to_decimal(amount)
    if gross < 0:
        raise ValueError("amount must not be negative")

    fee = (gross * Decimal(fee_rate_bps) / BPS_DENOMINATOR).quantize(
        CENT, rounding=ROUND_HALF_UP
    )
    return FeeBreakdown(gross=gross, fee=fee, net=gross - fee)
