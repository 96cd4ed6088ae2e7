"""/v1/loans - loan views, amortization schedules and EMI payments"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from loan_tracker.api.dependencies import admin_or_above, customer_only, get_caller, get_workflow
from loan_tracker.api.v1.schemas import (
    ApiResponse,
    InstallmentSchema,
    LoanSchema,
    LoanStatsResponse,
    LoanTermsSchema,
    PaymentRequest,
    PaymentResponse,
    ScheduleResponse,
    TransactionSchema,
)
from loan_tracker.config import settings
from loan_tracker.domain.installments import total_interest
from loan_tracker.domain.models import Caller
from loan_tracker.services.stats import loan_stats
from loan_tracker.services.workflow import LoanWorkflow

router = APIRouter()

PageLimit = Query(settings.default_page_size, ge=1, le=settings.max_page_size)


@router.get("/loans", response_model=ApiResponse[List[LoanSchema]])
def list_loans(
    is_paid: Optional[bool] = Query(None),
    limit: int = PageLimit,
    offset: int = Query(0, ge=0),
    caller: Caller = Depends(get_caller),
    workflow: LoanWorkflow = Depends(get_workflow),
):
    loans = workflow.list_loans(caller, is_paid=is_paid, limit=limit, offset=offset)
    today = workflow.today()
    return ApiResponse(
        message="Loans retrieved successfully",
        data=[LoanSchema.from_loan(loan, today) for loan in loans],
    )


@router.get("/loans/active", response_model=ApiResponse[LoanSchema])
def get_active_loan(
    caller: Caller = Depends(customer_only),
    workflow: LoanWorkflow = Depends(get_workflow),
):
    loan = workflow.get_active_loan(caller.user_id)
    return ApiResponse(
        message="Active loan retrieved successfully",
        data=LoanSchema.from_loan(loan, workflow.today()),
    )


@router.get("/loans/overdue", response_model=ApiResponse[List[LoanSchema]])
def list_overdue_loans(
    limit: int = PageLimit,
    offset: int = Query(0, ge=0),
    caller: Caller = Depends(admin_or_above),
    workflow: LoanWorkflow = Depends(get_workflow),
):
    loans = workflow.list_overdue_loans(limit=limit, offset=offset)
    today = workflow.today()
    return ApiResponse(
        message="Overdue loans retrieved successfully",
        data=[LoanSchema.from_loan(loan, today) for loan in loans],
    )


@router.get("/loans/upcoming", response_model=ApiResponse[List[LoanSchema]])
def list_upcoming_payments(
    days: int = Query(settings.upcoming_payment_window_days, ge=0, le=90),
    limit: int = PageLimit,
    offset: int = Query(0, ge=0),
    caller: Caller = Depends(admin_or_above),
    workflow: LoanWorkflow = Depends(get_workflow),
):
    loans = workflow.list_upcoming_payments(days=days, limit=limit, offset=offset)
    today = workflow.today()
    return ApiResponse(
        message="Upcoming payments retrieved successfully",
        data=[LoanSchema.from_loan(loan, today) for loan in loans],
    )


@router.get("/loans/stats", response_model=ApiResponse[LoanStatsResponse])
def get_loan_stats(
    caller: Caller = Depends(admin_or_above),
    workflow: LoanWorkflow = Depends(get_workflow),
):
    return ApiResponse(
        message="Loan statistics retrieved successfully",
        data=LoanStatsResponse(**loan_stats(workflow.db, workflow.today())),
    )


@router.get("/loans/{loan_id}", response_model=ApiResponse[LoanSchema])
def get_loan(
    loan_id: uuid.UUID,
    caller: Caller = Depends(get_caller),
    workflow: LoanWorkflow = Depends(get_workflow),
):
    loan = workflow.get_loan(loan_id, caller)
    return ApiResponse(
        message="Loan retrieved successfully",
        data=LoanSchema.from_loan(loan, workflow.today()),
    )


@router.get("/loans/{loan_id}/schedule", response_model=ApiResponse[ScheduleResponse])
def get_schedule(
    loan_id: uuid.UUID,
    caller: Caller = Depends(get_caller),
    workflow: LoanWorkflow = Depends(get_workflow),
):
    """Amortization schedule derived from the loan terms; rows already covered are marked PAID"""
    loan, rows = workflow.get_schedule(loan_id, caller)
    schedule = [
        InstallmentSchema(
            installment_number=row.installment_number,
            due_date=row.due_date,
            emi_amount=row.emi_amount,
            principal_component=row.principal_component,
            interest_component=row.interest_component,
            remaining_principal=row.remaining_principal,
            status=row.status.value,
        )
        for row in rows
    ]
    return ApiResponse(
        message="Schedule generated successfully",
        data=ScheduleResponse(
            loan=LoanTermsSchema(
                id=loan.id,
                total_amount=loan.total_amount,
                emi=loan.emi,
                interest_rate=loan.interest_rate,
                tenure_months=loan.tenure_months,
            ),
            schedule=schedule,
            total_interest=total_interest(rows),
        ),
    )


@router.get("/loans/{loan_id}/transactions", response_model=ApiResponse[List[TransactionSchema]])
def list_transactions(
    loan_id: uuid.UUID,
    limit: int = PageLimit,
    offset: int = Query(0, ge=0),
    caller: Caller = Depends(get_caller),
    workflow: LoanWorkflow = Depends(get_workflow),
):
    transactions = workflow.list_transactions(loan_id, caller, limit=limit, offset=offset)
    return ApiResponse(
        message="Transactions retrieved successfully",
        data=[TransactionSchema.model_validate(t) for t in transactions],
    )


@router.post("/loans/{loan_id}/payments", response_model=ApiResponse[PaymentResponse], status_code=201)
def make_payment(
    loan_id: uuid.UUID,
    body: PaymentRequest,
    caller: Caller = Depends(customer_only),
    workflow: LoanWorkflow = Depends(get_workflow),
):
    """Record an EMI payment against the caller's own loan"""
    result = workflow.apply_payment(
        loan_id,
        owner_id=caller.user_id,
        amount=body.amount,
        payment_method=body.payment_method,
    )
    message = "Loan fully paid" if result.paid_off else "Payment successful"
    return ApiResponse(
        message=message,
        data=PaymentResponse(
            loan=LoanSchema.from_loan(result.loan, workflow.today()),
            transaction=TransactionSchema.model_validate(result.transaction),
            paid_off=result.paid_off,
        ),
    )
