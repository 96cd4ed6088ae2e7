"""Unit tests for EMI calculation"""

import pytest
from decimal import Decimal

from loan_tracker.domain.emi import compute_emi, monthly_rate, to_money


def test_compute_emi_standard_amortization():
    """120000 at 12% over 12 months"""
    assert compute_emi(120000, 12, 12) == Decimal("10661.85")


def test_compute_emi_two_months():
    assert compute_emi(Decimal("10000"), Decimal("12"), 2) == Decimal("5075.12")


def test_compute_emi_single_month_repays_principal_plus_one_month_interest():
    assert compute_emi(1000, 12, 1) == Decimal("1010.00")


def test_compute_emi_zero_rate_falls_back_to_straight_division():
    assert compute_emi(1200, 0, 12) == Decimal("100.00")


def test_compute_emi_is_rounded_to_cents():
    emi = compute_emi(Decimal("54321.09"), Decimal("7.35"), 37)
    assert emi == emi.quantize(Decimal("0.01"))


def test_compute_emi_covers_principal_over_tenure():
    """Total of installments can never be below the principal at a positive rate"""
    emi = compute_emi(50000, Decimal("0.01"), 360)
    assert emi * 360 >= Decimal("50000")


def test_monthly_rate():
    assert monthly_rate(12) == Decimal("0.01")


def test_to_money_rounds_half_up():
    assert to_money(Decimal("2.675")) == Decimal("2.68")
    assert to_money("2.665") == Decimal("2.67")
    assert to_money(3) == Decimal("3.00")


RATES = [Decimal("0.01"), Decimal("1"), Decimal("7.125"), Decimal("12"), Decimal("25"), Decimal("50")]
TENURES = [1, 12, 60, 120, 360]


@pytest.mark.parametrize("tenure", TENURES)
def test_emi_rises_with_rate(tenure):
    emis = [compute_emi(100000, rate, tenure) for rate in RATES]
    assert all(lower < higher for lower, higher in zip(emis, emis[1:]))


@pytest.mark.parametrize("rate", RATES)
def test_emi_falls_with_tenure(rate):
    emis = [compute_emi(100000, rate, tenure) for tenure in TENURES]
    assert all(longer < shorter for shorter, longer in zip(emis, emis[1:]))
