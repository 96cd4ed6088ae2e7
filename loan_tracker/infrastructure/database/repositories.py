"""Data access layer for applications, loans and payment transactions"""

import secrets
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import case, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from loan_tracker.domain.emi import to_money
from loan_tracker.domain.exceptions import ConflictError
from loan_tracker.domain.ledger import LoanLedger
from loan_tracker.domain.models import ApplicationStatus, TransactionStatus, TransactionType
from loan_tracker.infrastructure.database.models import LoanApplication, Loan, LoanTransaction


def _flush(db: Session, conflict_message: str) -> None:
    """Flush pending writes, turning uniqueness violations into ConflictError"""
    try:
        db.flush()
    except IntegrityError as e:
        raise ConflictError(conflict_message, retryable=True) from e


class ApplicationRepository:
    """Repository for loan applications"""

    def __init__(self, db: Session):
        self.db = db

    def create_application(
        self,
        owner_id: str,
        amount: Decimal,
        tenure_months: int,
        employment_status: str,
        reason: Optional[str],
        address: Optional[str],
    ) -> LoanApplication:
        """Persist a new PENDING application holding the owner's active slot"""
        db_application = LoanApplication(
            owner_id=owner_id,
            amount=amount,
            tenure_months=tenure_months,
            employment_status=employment_status,
            reason=reason,
            address=address,
            status=ApplicationStatus.PENDING.value,
            active_owner_id=owner_id,
        )
        self.db.add(db_application)
        _flush(self.db, "Owner already has an active application")
        return db_application

    def get_application_by_id(self, application_id: uuid.UUID) -> Optional[LoanApplication]:
        return self.db.get(LoanApplication, application_id)

    def get_active_application(self, owner_id: str) -> Optional[LoanApplication]:
        """PENDING or VERIFIED application for the owner, if any"""
        return (
            self.db.query(LoanApplication)
            .filter(
                LoanApplication.owner_id == owner_id,
                LoanApplication.status.in_([s.value for s in ApplicationStatus if s.is_active]),
            )
            .first()
        )

    def list_applications(
        self,
        owner_id: Optional[str] = None,
        status: Optional[ApplicationStatus] = None,
        verifier_scope: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[LoanApplication]:
        """
        Fetch applications newest first.

        verifier_scope restricts results to PENDING applications plus those
        the given verifier has already reviewed.
        """
        query = self.db.query(LoanApplication)
        if owner_id is not None:
            query = query.filter(LoanApplication.owner_id == owner_id)
        if verifier_scope is not None:
            query = query.filter(
                or_(
                    LoanApplication.status == ApplicationStatus.PENDING.value,
                    LoanApplication.verifier_id == verifier_scope,
                )
            )
        if status is not None:
            query = query.filter(LoanApplication.status == status.value)
        return (
            query.order_by(LoanApplication.submitted_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def compare_and_set_status(
        self,
        application_id: uuid.UUID,
        expected: ApplicationStatus,
        new: ApplicationStatus,
        **fields: Any,
    ) -> bool:
        """
        Move an application to a new status only if it is still in `expected`.

        Returns False when another writer changed the status first.
        """
        values: Dict[str, Any] = {"status": new.value, **fields}
        if new.is_terminal:
            values["active_owner_id"] = None
        updated = (
            self.db.query(LoanApplication)
            .filter(
                LoanApplication.id == application_id,
                LoanApplication.status == expected.value,
            )
            .update(values, synchronize_session="evaluate")
        )
        return updated == 1

    def count_by_status(self) -> Dict[str, int]:
        rows = (
            self.db.query(LoanApplication.status, func.count(LoanApplication.id))
            .group_by(LoanApplication.status)
            .all()
        )
        counts = {s.value: 0 for s in ApplicationStatus}
        counts.update({status: count for status, count in rows})
        return counts

    def amount_totals(self) -> Dict[str, Decimal]:
        total, average = self.db.query(
            func.coalesce(func.sum(LoanApplication.amount), 0),
            func.coalesce(func.avg(LoanApplication.amount), 0),
        ).one()
        return {"total_amount": to_money(total), "average_amount": to_money(average)}

    def count_submitted_since(self, since: datetime) -> int:
        return (
            self.db.query(func.count(LoanApplication.id))
            .filter(LoanApplication.submitted_at >= since)
            .scalar()
        )


class LoanRepository:
    """Repository for loans"""

    def __init__(self, db: Session):
        self.db = db

    def create_loan(self, application: LoanApplication, ledger: LoanLedger) -> Loan:
        """Persist a loan opened from an approved application"""
        db_loan = Loan(
            application_id=application.id,
            owner_id=application.owner_id,
            interest_rate=ledger.interest_rate,
            tenure_months=ledger.tenure_months,
            emi=ledger.emi,
            total_amount=ledger.total_amount,
            principal_left=ledger.principal_left,
            approval_date=ledger.approval_date,
            next_payment_date=ledger.next_payment_date,
            is_paid=ledger.is_paid,
            active_owner_id=application.owner_id,
        )
        self.db.add(db_loan)
        _flush(self.db, "A loan already exists for this application or owner")
        return db_loan

    def save_loan(self, loan: Loan) -> Loan:
        """Flush ledger changes, failing if another writer updated the loan first"""
        try:
            self.db.flush()
        except StaleDataError as e:
            raise ConflictError("Loan was modified concurrently", retryable=True) from e
        return loan

    def get_loan_by_id(self, loan_id: uuid.UUID) -> Optional[Loan]:
        return self.db.get(Loan, loan_id)

    def get_active_loan(self, owner_id: str) -> Optional[Loan]:
        return (
            self.db.query(Loan)
            .filter(Loan.owner_id == owner_id, Loan.is_paid.is_(False))
            .first()
        )

    def list_loans(
        self,
        owner_id: Optional[str] = None,
        is_paid: Optional[bool] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[Loan]:
        query = self.db.query(Loan)
        if owner_id is not None:
            query = query.filter(Loan.owner_id == owner_id)
        if is_paid is not None:
            query = query.filter(Loan.is_paid.is_(is_paid))
        return query.order_by(Loan.approval_date.desc()).offset(offset).limit(limit).all()

    def list_overdue(self, today: date, limit: int = 20, offset: int = 0) -> List[Loan]:
        """Unpaid loans whose due date has passed, oldest first"""
        return (
            self.db.query(Loan)
            .filter(Loan.is_paid.is_(False), Loan.next_payment_date < today)
            .order_by(Loan.next_payment_date.asc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def list_due_between(self, start: date, end: date, limit: int = 20, offset: int = 0) -> List[Loan]:
        """Unpaid loans due within [start, end]"""
        return (
            self.db.query(Loan)
            .filter(
                Loan.is_paid.is_(False),
                Loan.next_payment_date >= start,
                Loan.next_payment_date <= end,
            )
            .order_by(Loan.next_payment_date.asc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def count_overdue(self, today: date) -> int:
        return (
            self.db.query(func.count(Loan.id))
            .filter(Loan.is_paid.is_(False), Loan.next_payment_date < today)
            .scalar()
        )

    def count_due_between(self, start: date, end: date) -> int:
        return (
            self.db.query(func.count(Loan.id))
            .filter(
                Loan.is_paid.is_(False),
                Loan.next_payment_date >= start,
                Loan.next_payment_date <= end,
            )
            .scalar()
        )

    def portfolio_totals(self) -> Dict[str, Any]:
        """Aggregate counts and money totals across all loans"""
        total, paid, disbursed, outstanding, borrowers = self.db.query(
            func.count(Loan.id),
            func.coalesce(func.sum(case((Loan.is_paid.is_(True), 1), else_=0)), 0),
            func.coalesce(func.sum(Loan.total_amount), 0),
            func.coalesce(func.sum(Loan.principal_left), 0),
            func.count(func.distinct(Loan.owner_id)),
        ).one()
        disbursed = to_money(disbursed)
        outstanding = to_money(outstanding)
        return {
            "total_loans": total,
            "paid_loans": paid,
            "active_loans": total - paid,
            "cash_disbursed": disbursed,
            "cash_received": disbursed - outstanding,
            "borrowers": borrowers,
        }


class TransactionRepository:
    """Repository for append-only payment records"""

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def new_reference(paid_at: datetime) -> str:
        return f"TXN-{int(paid_at.timestamp() * 1000)}-{secrets.token_hex(5).upper()}"

    def create_transaction(
        self,
        loan_id: uuid.UUID,
        amount: Decimal,
        payment_method: str,
        paid_at: datetime,
    ) -> LoanTransaction:
        """Record a completed EMI payment"""
        db_transaction = LoanTransaction(
            loan_id=loan_id,
            reference=self.new_reference(paid_at),
            amount=amount,
            transaction_type=TransactionType.EMI.value,
            status=TransactionStatus.COMPLETED.value,
            payment_method=payment_method,
            month_year=paid_at.strftime("%Y-%m"),
            paid_at=paid_at,
        )
        self.db.add(db_transaction)
        _flush(self.db, "Duplicate transaction reference")
        return db_transaction

    def list_for_loan(self, loan_id: uuid.UUID, limit: int = 20, offset: int = 0) -> List[LoanTransaction]:
        return (
            self.db.query(LoanTransaction)
            .filter(LoanTransaction.loan_id == loan_id)
            .order_by(LoanTransaction.paid_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def total_completed(self, loan_id: uuid.UUID) -> Decimal:
        total = (
            self.db.query(func.coalesce(func.sum(LoanTransaction.amount), 0))
            .filter(
                LoanTransaction.loan_id == loan_id,
                LoanTransaction.status == TransactionStatus.COMPLETED.value,
                LoanTransaction.transaction_type == TransactionType.EMI.value,
            )
            .scalar()
        )
        return to_money(total)
