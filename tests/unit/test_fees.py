"""Unit tests for platform fee calculation."""

from decimal import Decimal

import pytest
from services.payments_service.services.fees import compute_fee


@pytest.mark.unit
def test_default_rate_on_monthly_rent():
    fees = compute_fee(Decimal("1200.00"), 290)

    assert fees.gross == Decimal("1200.00")
    assert fees.fee == Decimal("34.80")
    assert fees.net == Decimal("1165.20")


@pytest.mark.unit
@pytest.mark.parametrize(
    "amount, expected_fee",
    [
        ("5.00", "0.15"),  # exactly 0.145, half-up
        ("0.17", "0.00"),  # 0.00493 rounds down
        ("10.00", "0.29"),
        ("999.99", "29.00"),
    ],
)
def test_fee_rounds_half_up_to_the_cent(amount, expected_fee):
    fees = compute_fee(Decimal(amount), 290)

    assert fees.fee == Decimal(expected_fee)
    assert fees.fee + fees.net == Decimal(amount)


@pytest.mark.unit
def test_string_and_int_amounts_are_accepted():
    assert compute_fee("100", 290).fee == Decimal("2.90")
    assert compute_fee(100, 290).fee == Decimal("2.90")


@pytest.mark.unit
def test_rate_bounds():
    zero = compute_fee(Decimal("50.00"), 0)
    full = compute_fee(Decimal("50.00"), 10_000)

    assert zero.fee == Decimal("0.00")
    assert zero.net == Decimal("50.00")
    assert full.fee == Decimal("50.00")
    assert full.net == Decimal("0.00")


@pytest.mark.unit
@pytest.mark.parametrize("rate", [-1, 10_001])
def test_rate_out_of_range_is_rejected(rate):
    with pytest.raises(ValueError):
        compute_fee(Decimal("10.00"), rate)


@pytest.mark.unit
def test_negative_amount_is_rejected():
    with pytest.raises(ValueError):
        compute_fee(Decimal("-1.00"), 290)
