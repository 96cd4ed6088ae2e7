"""Unit tests for input validation"""

import pytest
from decimal import Decimal

from loan_tracker.domain import validation
from loan_tracker.domain.exceptions import InvalidArgument, ValidationError
from loan_tracker.domain.models import EmploymentStatus


@pytest.mark.parametrize("amount", ["1000", "10000000", "2500.50", 5000])
def test_valid_amounts(amount):
    assert validation.validate_amount(amount) == Decimal(str(amount)).quantize(Decimal("0.01"))


@pytest.mark.parametrize("amount", ["999.99", "10000000.01", "1500.123", "abc", "NaN", True])
def test_invalid_amounts(amount):
    with pytest.raises(ValidationError):
        validation.validate_amount(amount)


@pytest.mark.parametrize("tenure", [0, 361, -1, 12.5, True])
def test_invalid_tenure(tenure):
    with pytest.raises(ValidationError):
        validation.validate_tenure(tenure)


def test_valid_tenure_bounds():
    assert validation.validate_tenure(1) == 1
    assert validation.validate_tenure(360) == 360


def test_employment_status():
    assert validation.validate_employment_status("SELF_EMPLOYED") == EmploymentStatus.SELF_EMPLOYED
    with pytest.raises(ValidationError):
        validation.validate_employment_status("FREELANCE")


def test_text_length_limits():
    assert validation.validate_text(None, "reason", 500) is None
    assert validation.validate_text("x" * 500, "reason", 500) == "x" * 500
    with pytest.raises(ValidationError):
        validation.validate_text("x" * 501, "reason", 500)


@pytest.mark.parametrize("rate", ["0", "0.001", "50.01", "-1"])
def test_invalid_interest_rates(rate):
    with pytest.raises(ValidationError):
        validation.validate_interest_rate(rate)


def test_interest_rate_bounds():
    assert validation.validate_interest_rate("0.01") == Decimal("0.01")
    assert validation.validate_interest_rate(50) == Decimal("50.00")


def test_payment_amount_must_be_positive():
    with pytest.raises(InvalidArgument):
        validation.validate_payment_amount(0, Decimal("100.00"))


def test_payment_amount_cannot_exceed_principal_left():
    with pytest.raises(InvalidArgument) as exc_info:
        validation.validate_payment_amount("100.01", Decimal("100.00"))

    assert exc_info.value.details["principal_left"] == "100.00"


def test_payment_amount_equal_to_principal_left():
    assert validation.validate_payment_amount("100", Decimal("100.00")) == Decimal("100.00")


def test_interest_rate_keeps_sub_cent_precision():
    assert validation.validate_interest_rate("7.125") == Decimal("7.125")
    assert validation.validate_interest_rate("7.12345") == Decimal("7.1235")
