"""SQLAlchemy ORM models for applications, loans and payment transactions"""

import uuid
from sqlalchemy import (
    Column,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

from loan_tracker.domain.ledger import LoanLedger
from loan_tracker.domain.models import ApplicationStatus

Base = declarative_base()

Money = Numeric(14, 2)


class LoanApplication(Base):
    """Customer loan request moving through verification and approval"""

    __tablename__ = "loan_application"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(Text, nullable=False, index=True)
    amount = Column(Money, nullable=False)
    tenure_months = Column(Integer, nullable=False)
    employment_status = Column(String(20), nullable=False)
    reason = Column(String(500), nullable=True)
    address = Column(String(200), nullable=True)
    status = Column(String(20), nullable=False, default=ApplicationStatus.PENDING.value, index=True)

    # Owner id while PENDING/VERIFIED, NULL once terminal: one active application per owner
    active_owner_id = Column(Text, nullable=True, unique=True)

    verifier_id = Column(Text, nullable=True, index=True)
    verification_notes = Column(String(1000), nullable=True)
    admin_id = Column(Text, nullable=True, index=True)
    rejection_reason = Column(String(500), nullable=True)

    submitted_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    loan = relationship("Loan", back_populates="application", uselist=False)

    __table_args__ = (Index("ix_loan_application_owner_status", "owner_id", "status"),)


class Loan(Base):
    """Approved loan and its ledger state"""

    __tablename__ = "loan"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    application_id = Column(Uuid, ForeignKey("loan_application.id"), nullable=False, unique=True)
    owner_id = Column(Text, nullable=False, index=True)
    interest_rate = Column(Numeric(7, 4), nullable=False)
    tenure_months = Column(Integer, nullable=False)
    emi = Column(Money, nullable=False)
    total_amount = Column(Money, nullable=False)
    principal_left = Column(Money, nullable=False)
    approval_date = Column(Date, nullable=False)
    next_payment_date = Column(Date, nullable=False, index=True)
    is_paid = Column(Boolean, nullable=False, default=False, index=True)

    # Owner id while unpaid, NULL once paid off: one active loan per owner
    active_owner_id = Column(Text, nullable=True, unique=True)

    # Optimistic lock: concurrent payments on one loan cannot both commit
    version = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    __mapper_args__ = {"version_id_col": version}

    application = relationship("LoanApplication", back_populates="loan")
    transactions = relationship(
        "LoanTransaction",
        back_populates="loan",
        order_by="LoanTransaction.paid_at.desc()",
    )

    def to_ledger(self) -> LoanLedger:
        """Snapshot the persisted state as a domain ledger"""
        return LoanLedger(
            total_amount=self.total_amount,
            principal_left=self.principal_left,
            interest_rate=self.interest_rate,
            tenure_months=self.tenure_months,
            emi=self.emi,
            approval_date=self.approval_date,
            next_payment_date=self.next_payment_date,
            is_paid=self.is_paid,
        )

    def sync_from_ledger(self, ledger: LoanLedger) -> None:
        """Write back the fields a payment may change"""
        self.principal_left = ledger.principal_left
        self.next_payment_date = ledger.next_payment_date
        self.is_paid = ledger.is_paid
        if ledger.is_paid:
            self.active_owner_id = None


class LoanTransaction(Base):
    """Append-only payment record against a loan"""

    __tablename__ = "loan_transaction"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    loan_id = Column(Uuid, ForeignKey("loan.id"), nullable=False, index=True)
    reference = Column(String(100), nullable=False, unique=True)
    amount = Column(Money, nullable=False)
    transaction_type = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False)
    payment_method = Column(String(50), nullable=False)
    month_year = Column(String(7), nullable=False, index=True)
    paid_at = Column(DateTime(timezone=True), nullable=False)

    loan = relationship("Loan", back_populates="transactions")
