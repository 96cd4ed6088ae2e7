"""Input bounds checked before any workflow logic runs"""

from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP, InvalidOperation as DecimalError
from typing import Optional

from loan_tracker.domain.emi import Number, to_money
from loan_tracker.domain.exceptions import InvalidArgument, ValidationError
from loan_tracker.domain.models import EmploymentStatus

MIN_AMOUNT = Decimal("1000")
MAX_AMOUNT = Decimal("10000000")
MIN_TENURE = 1
MAX_TENURE = 360
MIN_RATE = Decimal("0.01")
MAX_RATE = Decimal("50")
# Stored precision of loan.interest_rate
RATE_STEP = Decimal("0.0001")

REASON_MAX = 500
ADDRESS_MAX = 200
NOTES_MAX = 1000
REJECTION_REASON_MAX = 500
PAYMENT_METHOD_MAX = 50


def _decimal(value: Number, field: str) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (DecimalError, ValueError) as e:
        raise ValidationError(f"{field} must be a number", {field: str(value)}) from e
    if not result.is_finite():
        raise ValidationError(f"{field} must be a finite number", {field: str(value)})
    return result


def _at_most_cents(value: Decimal, field: str) -> Decimal:
    if value != value.quantize(Decimal("0.01"), rounding=ROUND_DOWN):
        raise ValidationError(f"{field} cannot have more than 2 decimal places", {field: str(value)})
    return to_money(value)


def validate_amount(amount: Number) -> Decimal:
    value = _at_most_cents(_decimal(amount, "amount"), "amount")
    if not MIN_AMOUNT <= value <= MAX_AMOUNT:
        raise ValidationError(
            f"Loan amount must be between {MIN_AMOUNT:,} and {MAX_AMOUNT:,}",
            {"amount": str(value)},
        )
    return value


def validate_tenure(tenure_months: int) -> int:
    if isinstance(tenure_months, bool) or not isinstance(tenure_months, int):
        raise ValidationError("Tenure must be a whole number of months", {"tenure_months": tenure_months})
    if not MIN_TENURE <= tenure_months <= MAX_TENURE:
        raise ValidationError(
            f"Tenure must be between {MIN_TENURE} and {MAX_TENURE} months",
            {"tenure_months": tenure_months},
        )
    return tenure_months


def validate_employment_status(employment_status: str) -> EmploymentStatus:
    try:
        return EmploymentStatus(employment_status)
    except ValueError as e:
        raise ValidationError(
            "Unknown employment status",
            {"employment_status": employment_status},
        ) from e


def validate_text(value: Optional[str], field: str, max_length: int) -> Optional[str]:
    if value is None:
        return None
    if len(value) > max_length:
        raise ValidationError(f"{field} cannot exceed {max_length} characters")
    return value


def validate_interest_rate(rate: Number) -> Decimal:
    """Annual % in [MIN_RATE, MAX_RATE], rounded half-up to the stored precision"""
    value = _decimal(rate, "interest_rate")
    if not MIN_RATE <= value <= MAX_RATE:
        raise ValidationError(
            f"Interest rate must be between {MIN_RATE}% and {MAX_RATE}%",
            {"interest_rate": str(value)},
        )
    return value.quantize(RATE_STEP, rounding=ROUND_HALF_UP)


def validate_payment_amount(amount: Number, principal_left: Decimal) -> Decimal:
    """Payment must be positive and not exceed the outstanding principal"""
    value = _at_most_cents(_decimal(amount, "amount"), "amount")
    if value <= 0:
        raise InvalidArgument("Payment amount must be positive", {"amount": str(value)})
    if value > principal_left:
        raise InvalidArgument(
            "Payment amount cannot exceed remaining principal",
            {"amount": str(value), "principal_left": str(principal_left)},
        )
    return value
