"""Amortization schedule generation for approved loans"""

from decimal import Decimal
from typing import List

from dateutil.relativedelta import relativedelta

from loan_tracker.domain.emi import monthly_rate, to_money
from loan_tracker.domain.ledger import ZERO, LoanLedger
from loan_tracker.domain.models import InstallmentRow, InstallmentStatus


def generate_schedule(loan: LoanLedger) -> List[InstallmentRow]:
    """
    Derive the per-installment principal/interest breakdown of a loan.

    The schedule is recomputed from the loan snapshot on every call and is
    never persisted, so identical loan state always yields identical rows.

    Rules:
    - Row i (1-based) is due approval_date + i months
    - Interest is charged on the remaining balance at the monthly rate
    - Principal is the EMI minus that interest
    - Last installment absorbs the rounding remainder so that principal
      components sum to exactly total_amount

    Row status is PAID for the first floor(total_paid / emi) rows and
    PENDING afterwards. This assumes one EMI-sized payment per month in
    order and does not replay the actual transaction history.

    Example:
        10000 at 12% over 2 months, EMI 5075.12
        row 1: interest 100.00, principal 4975.12, balance 5024.88
        row 2: interest  50.25, principal 5024.88, balance 0.00 (installment 5075.13)
    """
    rate = monthly_rate(loan.interest_rate)
    paid_rows = loan.installments_paid
    remaining = loan.total_amount

    schedule = []
    for i in range(1, loan.tenure_months + 1):
        interest = to_money(remaining * rate)

        if i == loan.tenure_months:
            principal = remaining
        else:
            principal = min(max(ZERO, loan.emi - interest), remaining)

        remaining = remaining - principal

        schedule.append(
            InstallmentRow(
                installment_number=i,
                due_date=loan.approval_date + relativedelta(months=i),
                emi_amount=loan.emi if i < loan.tenure_months else principal + interest,
                principal_component=principal,
                interest_component=interest,
                remaining_principal=remaining,
                status=InstallmentStatus.PAID if i <= paid_rows else InstallmentStatus.PENDING,
            )
        )

    return schedule


def total_interest(schedule: List[InstallmentRow]) -> Decimal:
    """Interest payable over the full schedule"""
    return sum((row.interest_component for row in schedule), ZERO)
