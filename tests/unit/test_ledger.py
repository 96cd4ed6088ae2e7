"""Unit tests for the loan ledger"""

import pytest
from datetime import date
from decimal import Decimal

from loan_tracker.domain.exceptions import InvalidArgument, InvalidOperation
from loan_tracker.domain.ledger import LoanLedger


def make_ledger(**overrides) -> LoanLedger:
    fields = dict(
        total_amount=Decimal("10000.00"),
        principal_left=Decimal("10000.00"),
        interest_rate=Decimal("12"),
        tenure_months=10,
        emi=Decimal("1000.00"),
        approval_date=date(2026, 1, 15),
        next_payment_date=date(2026, 2, 15),
    )
    fields.update(overrides)
    return LoanLedger(**fields)


def test_open_sets_terms_and_first_due_date():
    ledger = LoanLedger.open(Decimal("120000"), Decimal("12"), 12, approval_date=date(2026, 1, 15))

    assert ledger.total_amount == Decimal("120000.00")
    assert ledger.principal_left == ledger.total_amount
    assert ledger.emi == Decimal("10661.85")
    assert ledger.next_payment_date == date(2026, 2, 15)
    assert ledger.is_paid is False


def test_open_clamps_due_date_to_month_end():
    ledger = LoanLedger.open(5000, 10, 6, approval_date=date(2026, 1, 31))
    assert ledger.next_payment_date == date(2026, 2, 28)


def test_seven_payments_then_final_payment_clears_loan():
    ledger = make_ledger()

    for _ in range(7):
        ledger.apply_payment(1000)

    assert ledger.principal_left == Decimal("3000.00")
    assert ledger.is_paid is False
    assert ledger.next_payment_date == date(2026, 9, 15)

    ledger.apply_payment(3000)

    assert ledger.principal_left == Decimal("0.00")
    assert ledger.is_paid is True
    # Due date stays put once the loan is paid off
    assert ledger.next_payment_date == date(2026, 9, 15)


def test_due_date_advances_one_month_regardless_of_amount():
    ledger = make_ledger()
    ledger.apply_payment(Decimal("250.50"))
    assert ledger.next_payment_date == date(2026, 3, 15)
    assert ledger.principal_left == Decimal("9749.50")


def test_overpayment_floors_balance_at_zero():
    ledger = make_ledger(principal_left=Decimal("500.00"))
    ledger.apply_payment(1000)
    assert ledger.principal_left == Decimal("0.00")
    assert ledger.is_paid is True


def test_payment_on_paid_loan_rejected():
    ledger = make_ledger(principal_left=Decimal("0.00"), is_paid=True)
    with pytest.raises(InvalidOperation):
        ledger.apply_payment(100)


@pytest.mark.parametrize("amount", [0, -5, Decimal("-0.01")])
def test_non_positive_payment_rejected(amount):
    ledger = make_ledger()
    with pytest.raises(InvalidArgument):
        ledger.apply_payment(amount)
    assert ledger.principal_left == Decimal("10000.00")


def test_overdue_only_after_due_date():
    ledger = make_ledger()

    assert ledger.is_overdue(date(2026, 2, 15)) is False
    assert ledger.days_overdue(date(2026, 2, 15)) == 0
    assert ledger.is_overdue(date(2026, 2, 16)) is True
    assert ledger.days_overdue(date(2026, 2, 20)) == 5


def test_paid_loan_never_overdue():
    ledger = make_ledger(principal_left=Decimal("0.00"), is_paid=True)
    assert ledger.is_overdue(date(2030, 1, 1)) is False
    assert ledger.days_overdue(date(2030, 1, 1)) == 0


def test_progress_properties():
    ledger = make_ledger()
    ledger.apply_payment(Decimal("2500"))

    assert ledger.total_paid == Decimal("2500.00")
    assert ledger.completion_percentage == 25
    assert ledger.remaining_tenure == 8
    assert ledger.installments_paid == 2
