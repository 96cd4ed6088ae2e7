"""Application-to-loan workflow: submission, review, approval and repayment"""

import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Iterator, List, Optional, Tuple

from sqlalchemy.orm import Session

from loan_tracker.config import settings
from loan_tracker.domain import validation
from loan_tracker.domain.emi import Number
from loan_tracker.domain.exceptions import (
    ConflictError,
    Forbidden,
    InvalidOperation,
    MissingArgument,
    NotFound,
)
from loan_tracker.domain.installments import generate_schedule
from loan_tracker.domain.ledger import LoanLedger
from loan_tracker.domain.models import ApplicationStatus, Caller, InstallmentRow, Role
from loan_tracker.domain.state_machine import ReviewStage, check_transition
from loan_tracker.infrastructure.database.models import LoanApplication, Loan, LoanTransaction
from loan_tracker.infrastructure.database.repositories import (
    ApplicationRepository,
    LoanRepository,
    TransactionRepository,
)
from loan_tracker.infrastructure.observability.logging import log_application_transition, log_event
from loan_tracker.infrastructure.observability.metrics import (
    applications_submitted_counter,
    record_loan_created,
    record_payment,
    record_transition,
    workflow_conflict_counter,
)

PENDING_APPLICATION_EXISTS = "You already have a pending application. Please wait for it to be processed."
ACTIVE_LOAN_EXISTS = "You already have an active loan. Please complete it before applying for a new one."


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ApprovalResult:
    """Outcome of an admin decision; loan is set only when approved"""

    application: LoanApplication
    loan: Optional[Loan] = None


@dataclass
class PaymentResult:
    loan: Loan
    transaction: LoanTransaction

    @property
    def paid_off(self) -> bool:
        return self.loan.is_paid


class LoanWorkflow:
    """
    Orchestrates the multi-party approval flow and the loan ledger.

    Each mutating operation is one unit of work on the session: it either
    commits every change or rolls back and re-raises the original error.
    """

    def __init__(
        self,
        db: Session,
        today: Callable[[], date] = date.today,
        now: Callable[[], datetime] = _utcnow,
        request_id: Optional[str] = None,
    ):
        self.db = db
        self.today = today
        self.now = now
        self.request_id = request_id
        self.applications = ApplicationRepository(db)
        self.loans = LoanRepository(db)
        self.transactions = TransactionRepository(db)

    @contextmanager
    def _unit_of_work(self) -> Iterator[None]:
        try:
            yield
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    # Submission

    def _ensure_can_submit(self, owner_id: str) -> None:
        """One active application and one unpaid loan per customer"""
        if self.applications.get_active_application(owner_id) is not None:
            raise ConflictError(PENDING_APPLICATION_EXISTS, details={"reason": "pending application exists"})
        if self.loans.get_active_loan(owner_id) is not None:
            raise ConflictError(ACTIVE_LOAN_EXISTS, details={"reason": "active loan exists"})

    def submit_application(
        self,
        owner_id: str,
        amount: Number,
        tenure_months: int,
        employment_status: str,
        reason: Optional[str] = None,
        address: Optional[str] = None,
    ) -> LoanApplication:
        amount = validation.validate_amount(amount)
        tenure_months = validation.validate_tenure(tenure_months)
        employment = validation.validate_employment_status(employment_status)
        reason = validation.validate_text(reason, "reason", validation.REASON_MAX)
        address = validation.validate_text(address, "address", validation.ADDRESS_MAX)

        self._ensure_can_submit(owner_id)

        try:
            with self._unit_of_work():
                application = self.applications.create_application(
                    owner_id=owner_id,
                    amount=amount,
                    tenure_months=tenure_months,
                    employment_status=employment.value,
                    reason=reason,
                    address=address,
                )
        except ConflictError:
            # Lost a race with a concurrent submission; report the specific cause
            workflow_conflict_counter.labels(operation="submit").inc()
            self._ensure_can_submit(owner_id)
            raise

        applications_submitted_counter.inc()
        log_event(
            "application_submitted",
            "Application submitted",
            request_id=self.request_id,
            application_id=str(application.id),
            owner_id=owner_id,
            amount=amount,
            tenure_months=tenure_months,
        )
        return application

    def update_application(
        self,
        application_id: uuid.UUID,
        owner_id: str,
        reason: Optional[str] = None,
        address: Optional[str] = None,
    ) -> LoanApplication:
        """Owner edits free-text fields while the application is still PENDING"""
        reason = validation.validate_text(reason, "reason", validation.REASON_MAX)
        address = validation.validate_text(address, "address", validation.ADDRESS_MAX)

        application = self.applications.get_application_by_id(application_id)
        if application is None or application.owner_id != owner_id:
            raise NotFound("Application not found")
        if application.status != ApplicationStatus.PENDING.value:
            raise InvalidOperation("Can only update pending applications", {"status": application.status})

        with self._unit_of_work():
            if reason is not None:
                application.reason = reason
            if address is not None:
                application.address = address
            self.db.flush()

        log_event("application_updated", "Application updated", request_id=self.request_id, application_id=str(application_id))
        return application

    # Review

    def _review(
        self,
        application: LoanApplication,
        stage: ReviewStage,
        target: ApplicationStatus,
        **fields,
    ) -> None:
        expected = ApplicationStatus(application.status)
        if not self.applications.compare_and_set_status(application.id, expected, target, **fields):
            workflow_conflict_counter.labels(operation=stage.value).inc()
            raise ConflictError(
                "Application was modified concurrently, reload and retry",
                retryable=True,
                details={"application_id": str(application.id)},
            )
        self.db.refresh(application)

    def verify_application(
        self,
        application_id: uuid.UUID,
        verifier_id: str,
        outcome: str,
        notes: Optional[str] = None,
        rejection_reason: Optional[str] = None,
    ) -> LoanApplication:
        notes = validation.validate_text(notes, "notes", validation.NOTES_MAX)
        rejection_reason = validation.validate_text(
            rejection_reason, "rejection_reason", validation.REJECTION_REASON_MAX
        )

        application = self._get_application(application_id)
        from_status = application.status
        target = check_transition(ApplicationStatus(from_status), outcome, ReviewStage.VERIFY)

        fields = {"verifier_id": verifier_id, "verification_notes": notes}
        if target == ApplicationStatus.REJECTED:
            fields["rejection_reason"] = rejection_reason

        with self._unit_of_work():
            self._review(application, ReviewStage.VERIFY, target, **fields)

        record_transition(ReviewStage.VERIFY.value, target.value)
        log_application_transition(str(application_id), verifier_id, from_status, target.value, self.request_id)
        return application

    def approve_application(
        self,
        application_id: uuid.UUID,
        admin_id: str,
        outcome: str,
        interest_rate: Optional[Number] = None,
        rejection_reason: Optional[str] = None,
    ) -> ApprovalResult:
        """
        Final admin decision on a VERIFIED application.

        Approval and loan creation share one unit of work: a failure to open
        the loan (including a duplicate loan for the application) rolls the
        status change back as well.
        """
        rejection_reason = validation.validate_text(
            rejection_reason, "rejection_reason", validation.REJECTION_REASON_MAX
        )

        application = self._get_application(application_id)
        from_status = application.status
        target = check_transition(ApplicationStatus(from_status), outcome, ReviewStage.APPROVE)

        if target == ApplicationStatus.REJECTED:
            with self._unit_of_work():
                self._review(
                    application,
                    ReviewStage.APPROVE,
                    target,
                    admin_id=admin_id,
                    rejection_reason=rejection_reason,
                )
            record_transition(ReviewStage.APPROVE.value, target.value)
            log_application_transition(str(application_id), admin_id, from_status, target.value, self.request_id)
            return ApprovalResult(application=application)

        if interest_rate is None:
            raise MissingArgument("Interest rate is required for approval")
        rate = validation.validate_interest_rate(interest_rate)

        with self._unit_of_work():
            self._review(application, ReviewStage.APPROVE, target, admin_id=admin_id)
            ledger = LoanLedger.open(
                amount=application.amount,
                interest_rate=rate,
                tenure_months=application.tenure_months,
                approval_date=self.today(),
            )
            loan = self.loans.create_loan(application, ledger)

        record_transition(ReviewStage.APPROVE.value, target.value)
        record_loan_created(loan.total_amount)
        log_application_transition(str(application_id), admin_id, from_status, target.value, self.request_id)
        log_event(
            "loan_created",
            "Loan created",
            request_id=self.request_id,
            loan_id=str(loan.id),
            application_id=str(application_id),
            emi=loan.emi,
            interest_rate=rate,
            next_payment_date=loan.next_payment_date.isoformat(),
        )
        return ApprovalResult(application=application, loan=loan)

    # Repayment

    def apply_payment(
        self,
        loan_id: uuid.UUID,
        owner_id: str,
        amount: Number,
        payment_method: Optional[str] = None,
    ) -> PaymentResult:
        payment_method = validation.validate_text(
            payment_method or settings.default_payment_method,
            "payment_method",
            validation.PAYMENT_METHOD_MAX,
        )

        loan = self._get_loan(loan_id)
        if loan.owner_id != owner_id:
            raise Forbidden("You can only make payments for your own loans")

        ledger = loan.to_ledger()
        if ledger.is_paid:
            raise InvalidOperation("Loan is already fully paid", {"loan_id": str(loan_id)})
        amount = validation.validate_payment_amount(amount, ledger.principal_left)

        try:
            with self._unit_of_work():
                transaction = self.transactions.create_transaction(
                    loan_id=loan.id,
                    amount=amount,
                    payment_method=payment_method,
                    paid_at=self.now(),
                )
                ledger.apply_payment(amount)
                loan.sync_from_ledger(ledger)
                self.loans.save_loan(loan)
        except ConflictError:
            workflow_conflict_counter.labels(operation="payment").inc()
            raise

        record_payment(amount, loan.is_paid)
        log_event(
            "payment_applied",
            "Loan fully paid" if loan.is_paid else "Payment applied",
            request_id=self.request_id,
            loan_id=str(loan_id),
            transaction_reference=transaction.reference,
            amount=amount,
            principal_left=loan.principal_left,
            is_paid=loan.is_paid,
        )
        return PaymentResult(loan=loan, transaction=transaction)

    def get_schedule(self, loan_id: uuid.UUID, caller: Optional[Caller] = None) -> Tuple[Loan, List[InstallmentRow]]:
        """Derived amortization schedule; nothing is written"""
        loan = self._get_loan(loan_id)
        if caller is not None:
            self._check_loan_access(loan, caller)
        return loan, generate_schedule(loan.to_ledger())

    # Reads

    def _get_application(self, application_id: uuid.UUID) -> LoanApplication:
        application = self.applications.get_application_by_id(application_id)
        if application is None:
            raise NotFound("Application not found", {"application_id": str(application_id)})
        return application

    def _get_loan(self, loan_id: uuid.UUID) -> Loan:
        loan = self.loans.get_loan_by_id(loan_id)
        if loan is None:
            raise NotFound("Loan not found", {"loan_id": str(loan_id)})
        return loan

    @staticmethod
    def _check_application_access(application: LoanApplication, caller: Caller) -> None:
        if caller.role.is_admin:
            return
        if caller.role == Role.USER and application.owner_id == caller.user_id:
            return
        if caller.role == Role.VERIFIER and (
            application.status == ApplicationStatus.PENDING.value
            or application.verifier_id == caller.user_id
        ):
            return
        raise Forbidden("Access denied")

    @staticmethod
    def _check_loan_access(loan: Loan, caller: Caller) -> None:
        if caller.role.is_admin:
            return
        if caller.role == Role.USER and loan.owner_id == caller.user_id:
            return
        raise Forbidden("Access denied")

    def get_application(self, application_id: uuid.UUID, caller: Caller) -> LoanApplication:
        application = self._get_application(application_id)
        self._check_application_access(application, caller)
        return application

    def list_applications(
        self,
        caller: Caller,
        status: Optional[ApplicationStatus] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[LoanApplication]:
        """Applications visible to the caller's role"""
        if caller.role == Role.USER:
            return self.applications.list_applications(owner_id=caller.user_id, status=status, limit=limit, offset=offset)
        if caller.role == Role.VERIFIER:
            return self.applications.list_applications(
                verifier_scope=caller.user_id, status=status, limit=limit, offset=offset
            )
        return self.applications.list_applications(status=status, limit=limit, offset=offset)

    def list_owner_applications(self, owner_id: str, limit: int = 20, offset: int = 0) -> List[LoanApplication]:
        return self.applications.list_applications(owner_id=owner_id, limit=limit, offset=offset)

    def get_loan(self, loan_id: uuid.UUID, caller: Caller) -> Loan:
        loan = self._get_loan(loan_id)
        self._check_loan_access(loan, caller)
        return loan

    def get_active_loan(self, owner_id: str) -> Loan:
        loan = self.loans.get_active_loan(owner_id)
        if loan is None:
            raise NotFound("No active loan found")
        return loan

    def list_loans(
        self,
        caller: Caller,
        is_paid: Optional[bool] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[Loan]:
        if caller.role == Role.VERIFIER:
            raise Forbidden("Verifiers do not have access to loan information")
        owner_id = caller.user_id if caller.role == Role.USER else None
        return self.loans.list_loans(owner_id=owner_id, is_paid=is_paid, limit=limit, offset=offset)

    def list_transactions(
        self,
        loan_id: uuid.UUID,
        caller: Caller,
        limit: int = 20,
        offset: int = 0,
    ) -> List[LoanTransaction]:
        loan = self.get_loan(loan_id, caller)
        return self.transactions.list_for_loan(loan.id, limit=limit, offset=offset)

    def list_overdue_loans(self, limit: int = 20, offset: int = 0) -> List[Loan]:
        return self.loans.list_overdue(self.today(), limit=limit, offset=offset)

    def list_upcoming_payments(self, days: Optional[int] = None, limit: int = 20, offset: int = 0) -> List[Loan]:
        """Unpaid loans falling due within the next `days` days (today included)"""
        days = settings.upcoming_payment_window_days if days is None else days
        start = self.today()
        return self.loans.list_due_between(start, start + timedelta(days=days), limit=limit, offset=offset)

    def ledger_balance_matches(self, loan_id: uuid.UUID) -> bool:
        """Completed EMI payments account for exactly the principal repaid"""
        loan = self._get_loan(loan_id)
        paid = self.transactions.total_completed(loan.id)
        return loan.total_amount - paid == loan.principal_left
