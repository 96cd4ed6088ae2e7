"""Equal monthly installment (EMI) calculation"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

CENT = Decimal("0.01")

Number = Union[Decimal, int, float, str]


def to_money(value: Number) -> Decimal:
    """Convert a number to a Decimal rounded to currency precision (half-up)"""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def monthly_rate(annual_rate_percent: Number) -> Decimal:
    """Annual percentage rate -> monthly fraction (12% -> 0.01)"""
    return Decimal(str(annual_rate_percent)) / Decimal("1200")


def compute_emi(principal: Number, annual_rate_percent: Number, tenure_months: int) -> Decimal:
    """
    Calculate the equal monthly installment for a fully amortizing loan.

    Formula: EMI = P * r * (1 + r)^n / ((1 + r)^n - 1)
    - P = principal
    - r = monthly rate (annual_rate_percent / 1200)
    - n = tenure in months

    Inputs are expected to be validated by the caller. A zero rate, which
    validation currently rules out, falls back to straight division.

    Example:
        compute_emi(120000, 12, 12) -> Decimal("10661.85")
    """
    principal = Decimal(str(principal))
    r = monthly_rate(annual_rate_percent)

    if r == 0:
        return to_money(principal / Decimal(tenure_months))

    growth = (Decimal("1") + r) ** tenure_months
    emi = principal * r * growth / (growth - Decimal("1"))
    return to_money(emi)
