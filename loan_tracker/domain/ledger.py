"""Loan ledger - principal balance, payment application and overdue detection"""

import math
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from dateutil.relativedelta import relativedelta

from loan_tracker.domain.emi import Number, compute_emi, to_money
from loan_tracker.domain.exceptions import InvalidArgument, InvalidOperation

ZERO = Decimal("0.00")


@dataclass
class LoanLedger:
    """
    Mutable financial state of an approved loan.

    Invariants:
    - 0 <= principal_left <= total_amount
    - is_paid is True exactly when principal_left == 0, and never reverts
    - emi, total_amount, interest_rate and tenure_months never change
    """

    total_amount: Decimal
    principal_left: Decimal
    interest_rate: Decimal
    tenure_months: int
    emi: Decimal
    approval_date: date
    next_payment_date: date
    is_paid: bool = False

    @classmethod
    def open(
        cls,
        amount: Number,
        interest_rate: Number,
        tenure_months: int,
        approval_date: Optional[date] = None,
    ) -> "LoanLedger":
        """Create the ledger for a freshly approved application"""
        approval_date = approval_date or date.today()
        amount = to_money(amount)
        return cls(
            total_amount=amount,
            principal_left=amount,
            interest_rate=Decimal(str(interest_rate)),
            tenure_months=tenure_months,
            emi=compute_emi(amount, interest_rate, tenure_months),
            approval_date=approval_date,
            next_payment_date=approval_date + relativedelta(months=1),
        )

    def apply_payment(self, amount: Number) -> Decimal:
        """
        Reduce the outstanding principal by one payment.

        The due date moves forward exactly one calendar month per payment,
        whatever the amount, unless the payment clears the balance.

        Returns the new principal_left.

        Raises:
            InvalidOperation: loan is already paid off
            InvalidArgument: amount is not positive
        """
        if self.is_paid:
            raise InvalidOperation("Loan is already fully paid")

        amount = to_money(amount)
        if amount <= 0:
            raise InvalidArgument("Payment amount must be positive", {"amount": str(amount)})

        self.principal_left = max(ZERO, self.principal_left - amount)

        if self.principal_left == 0:
            self.is_paid = True
        else:
            self.next_payment_date = self.next_payment_date + relativedelta(months=1)

        return self.principal_left

    def is_overdue(self, today: Optional[date] = None) -> bool:
        today = today or date.today()
        return not self.is_paid and today > self.next_payment_date

    def days_overdue(self, today: Optional[date] = None) -> int:
        today = today or date.today()
        if not self.is_overdue(today):
            return 0
        return (today - self.next_payment_date).days

    @property
    def total_paid(self) -> Decimal:
        return self.total_amount - self.principal_left

    @property
    def completion_percentage(self) -> int:
        """Share of principal repaid, rounded to a whole percent"""
        ratio = self.total_paid / self.total_amount * 100
        return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    @property
    def remaining_tenure(self) -> int:
        """Installments still needed at the fixed EMI"""
        if self.principal_left <= 0:
            return 0
        return math.ceil(self.principal_left / self.emi)

    @property
    def installments_paid(self) -> int:
        """Whole EMIs covered by the repaid principal"""
        return int(self.total_paid // self.emi)
