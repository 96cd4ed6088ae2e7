"""Pydantic schemas for API request/response validation"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Any, Dict, Generic, List, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer

from loan_tracker.domain.models import EmploymentStatus

T = TypeVar("T")

# Money travels as a JSON number with cent precision
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class ApiResponse(BaseModel, Generic[T]):
    """Uniform success envelope"""

    success: bool = True
    message: str
    data: Optional[T] = None


class ErrorResponse(BaseModel):
    """Uniform failure envelope"""

    success: bool = False
    message: str
    error: str
    details: Dict[str, Any] = {}


# Requests


class ApplicationCreate(BaseModel):
    """Request body for POST /v1/applications"""

    amount: Decimal = Field(..., ge=1000, le=10_000_000, decimal_places=2, description="Requested principal")
    tenure_months: int = Field(..., ge=1, le=360, description="Loan duration in months")
    employment_status: EmploymentStatus
    reason: Optional[str] = Field(None, max_length=500)
    address: Optional[str] = Field(None, max_length=200)


class ApplicationUpdate(BaseModel):
    """Request body for PATCH /v1/applications/{id}"""

    reason: Optional[str] = Field(None, max_length=500)
    address: Optional[str] = Field(None, max_length=200)


class VerifyRequest(BaseModel):
    """Request body for POST /v1/applications/{id}/verify"""

    outcome: Literal["VERIFIED", "REJECTED"]
    notes: Optional[str] = Field(None, max_length=1000)
    rejection_reason: Optional[str] = Field(None, max_length=500)


class ApproveRequest(BaseModel):
    """Request body for POST /v1/applications/{id}/approve"""

    outcome: Literal["APPROVED", "REJECTED"]
    interest_rate: Optional[Decimal] = Field(None, ge=Decimal("0.01"), le=50, description="Annual %")
    rejection_reason: Optional[str] = Field(None, max_length=500)


class PaymentRequest(BaseModel):
    """Request body for POST /v1/loans/{id}/payments"""

    amount: Decimal = Field(..., decimal_places=2)
    payment_method: Optional[str] = Field(None, max_length=50)


# Responses


class ApplicationSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    owner_id: str
    amount: Money
    tenure_months: int
    employment_status: str
    reason: Optional[str] = None
    address: Optional[str] = None
    status: str
    verifier_id: Optional[str] = None
    verification_notes: Optional[str] = None
    admin_id: Optional[str] = None
    rejection_reason: Optional[str] = None
    submitted_at: datetime
    updated_at: datetime


class LoanSchema(BaseModel):
    """Loan with derived repayment progress"""

    id: uuid.UUID
    application_id: uuid.UUID
    owner_id: str
    interest_rate: Money
    tenure_months: int
    emi: Money
    total_amount: Money
    principal_left: Money
    remaining_amount: Money
    approval_date: date
    next_payment_date: Optional[date] = None
    is_paid: bool
    total_paid: Money
    completion_percentage: int
    remaining_tenure: int
    is_overdue: bool
    days_overdue: int

    @classmethod
    def from_loan(cls, loan, today: Optional[date] = None) -> "LoanSchema":
        """Build from an ORM loan, deriving progress and overdue state as of `today`"""
        ledger = loan.to_ledger()
        return cls(
            id=loan.id,
            application_id=loan.application_id,
            owner_id=loan.owner_id,
            interest_rate=ledger.interest_rate,
            tenure_months=ledger.tenure_months,
            emi=ledger.emi,
            total_amount=ledger.total_amount,
            principal_left=ledger.principal_left,
            remaining_amount=ledger.principal_left,
            approval_date=ledger.approval_date,
            # Due date carries no meaning once the loan is paid off
            next_payment_date=None if ledger.is_paid else ledger.next_payment_date,
            is_paid=ledger.is_paid,
            total_paid=ledger.total_paid,
            completion_percentage=ledger.completion_percentage,
            remaining_tenure=ledger.remaining_tenure,
            is_overdue=ledger.is_overdue(today),
            days_overdue=ledger.days_overdue(today),
        )


class TransactionSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    loan_id: uuid.UUID
    reference: str
    amount: Money
    transaction_type: str
    status: str
    payment_method: str
    month_year: str
    paid_at: datetime


class InstallmentSchema(BaseModel):
    """Single row in an amortization schedule"""

    model_config = ConfigDict(from_attributes=True)

    installment_number: int
    due_date: date
    emi_amount: Money
    principal_component: Money
    interest_component: Money
    remaining_principal: Money
    status: str


class LoanTermsSchema(BaseModel):
    id: uuid.UUID
    total_amount: Money
    emi: Money
    interest_rate: Money
    tenure_months: int


class ScheduleResponse(BaseModel):
    loan: LoanTermsSchema
    schedule: List[InstallmentSchema]
    total_interest: Money


class ApprovalResponse(BaseModel):
    application: ApplicationSchema
    loan: Optional[LoanSchema] = None


class PaymentResponse(BaseModel):
    loan: LoanSchema
    transaction: TransactionSchema
    paid_off: bool


class ApplicationStatsResponse(BaseModel):
    total_applications: int
    by_status: Dict[str, int]
    total_amount: Money
    average_amount: Money
    recent_applications: int


class LoanStatsResponse(BaseModel):
    total_loans: int
    paid_loans: int
    active_loans: int
    cash_disbursed: Money
    cash_received: Money
    borrowers: int
    overdue_loans: int
    upcoming_payments: int


class DashboardStatsResponse(BaseModel):
    borrowers: int
    cash_disbursed: Money
    cash_received: Money
    repaid_loans: int
    active_loans: int
    overdue_loans: int
    total_applications: int
    pending_applications: int
    verified_applications: int
    approved_applications: int
    rejected_applications: int
