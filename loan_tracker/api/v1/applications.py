"""/v1/applications - submission, review and approval of loan applications"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from loan_tracker.api.dependencies import (
    admin_or_above,
    customer_only,
    get_caller,
    get_workflow,
    verifier_or_above,
)
from loan_tracker.api.v1.schemas import (
    ApiResponse,
    ApplicationCreate,
    ApplicationSchema,
    ApplicationStatsResponse,
    ApplicationUpdate,
    ApprovalResponse,
    ApproveRequest,
    LoanSchema,
    VerifyRequest,
)
from loan_tracker.config import settings
from loan_tracker.domain.models import ApplicationStatus, Caller
from loan_tracker.services.stats import application_stats
from loan_tracker.services.workflow import LoanWorkflow

router = APIRouter()

PageLimit = Query(settings.default_page_size, ge=1, le=settings.max_page_size)


@router.post("/applications", response_model=ApiResponse[ApplicationSchema], status_code=201)
def submit_application(
    body: ApplicationCreate,
    caller: Caller = Depends(customer_only),
    workflow: LoanWorkflow = Depends(get_workflow),
):
    """Submit a new loan application; the customer may hold only one active application"""
    application = workflow.submit_application(
        owner_id=caller.user_id,
        amount=body.amount,
        tenure_months=body.tenure_months,
        employment_status=body.employment_status.value,
        reason=body.reason,
        address=body.address,
    )
    return ApiResponse(
        message="Application submitted successfully",
        data=ApplicationSchema.model_validate(application),
    )


@router.get("/applications", response_model=ApiResponse[List[ApplicationSchema]])
def list_applications(
    status: Optional[ApplicationStatus] = Query(None),
    limit: int = PageLimit,
    offset: int = Query(0, ge=0),
    caller: Caller = Depends(get_caller),
    workflow: LoanWorkflow = Depends(get_workflow),
):
    applications = workflow.list_applications(caller, status=status, limit=limit, offset=offset)
    return ApiResponse(
        message="Applications retrieved successfully",
        data=[ApplicationSchema.model_validate(a) for a in applications],
    )


@router.get("/applications/stats", response_model=ApiResponse[ApplicationStatsResponse])
def get_application_stats(
    caller: Caller = Depends(admin_or_above),
    workflow: LoanWorkflow = Depends(get_workflow),
):
    return ApiResponse(
        message="Application statistics retrieved successfully",
        data=ApplicationStatsResponse(**application_stats(workflow.db, workflow.now())),
    )


@router.get("/applications/owner/{owner_id}", response_model=ApiResponse[List[ApplicationSchema]])
def list_owner_applications(
    owner_id: str,
    limit: int = PageLimit,
    offset: int = Query(0, ge=0),
    caller: Caller = Depends(admin_or_above),
    workflow: LoanWorkflow = Depends(get_workflow),
):
    applications = workflow.list_owner_applications(owner_id, limit=limit, offset=offset)
    return ApiResponse(
        message="User applications retrieved successfully",
        data=[ApplicationSchema.model_validate(a) for a in applications],
    )


@router.get("/applications/{application_id}", response_model=ApiResponse[ApplicationSchema])
def get_application(
    application_id: uuid.UUID,
    caller: Caller = Depends(get_caller),
    workflow: LoanWorkflow = Depends(get_workflow),
):
    application = workflow.get_application(application_id, caller)
    return ApiResponse(
        message="Application retrieved successfully",
        data=ApplicationSchema.model_validate(application),
    )


@router.patch("/applications/{application_id}", response_model=ApiResponse[ApplicationSchema])
def update_application(
    application_id: uuid.UUID,
    body: ApplicationUpdate,
    caller: Caller = Depends(customer_only),
    workflow: LoanWorkflow = Depends(get_workflow),
):
    application = workflow.update_application(
        application_id,
        caller.user_id,
        reason=body.reason,
        address=body.address,
    )
    return ApiResponse(
        message="Application updated successfully",
        data=ApplicationSchema.model_validate(application),
    )


@router.post("/applications/{application_id}/verify", response_model=ApiResponse[ApplicationSchema])
def verify_application(
    application_id: uuid.UUID,
    body: VerifyRequest,
    caller: Caller = Depends(verifier_or_above),
    workflow: LoanWorkflow = Depends(get_workflow),
):
    """Verifier decision on a PENDING application"""
    application = workflow.verify_application(
        application_id,
        verifier_id=caller.user_id,
        outcome=body.outcome,
        notes=body.notes,
        rejection_reason=body.rejection_reason,
    )
    return ApiResponse(
        message=f"Application {body.outcome.lower()} successfully",
        data=ApplicationSchema.model_validate(application),
    )


@router.post("/applications/{application_id}/approve", response_model=ApiResponse[ApprovalResponse])
def approve_application(
    application_id: uuid.UUID,
    body: ApproveRequest,
    caller: Caller = Depends(admin_or_above),
    workflow: LoanWorkflow = Depends(get_workflow),
):
    """
    Admin decision on a VERIFIED application.

    Approval opens the loan in the same transaction; rejection records the reason.
    """
    result = workflow.approve_application(
        application_id,
        admin_id=caller.user_id,
        outcome=body.outcome,
        interest_rate=body.interest_rate,
        rejection_reason=body.rejection_reason,
    )
    loan = LoanSchema.from_loan(result.loan, workflow.today()) if result.loan else None
    message = (
        "Application approved and loan created successfully"
        if loan
        else "Application rejected successfully"
    )
    return ApiResponse(
        message=message,
        data=ApprovalResponse(
            application=ApplicationSchema.model_validate(result.application),
            loan=loan,
        ),
    )
