"""/v1/stats - admin dashboard aggregates"""

from fastapi import APIRouter, Depends

from loan_tracker.api.dependencies import admin_or_above, get_workflow
from loan_tracker.api.v1.schemas import ApiResponse, DashboardStatsResponse
from loan_tracker.domain.models import Caller
from loan_tracker.services.stats import dashboard_stats
from loan_tracker.services.workflow import LoanWorkflow

router = APIRouter()


@router.get("/stats/dashboard", response_model=ApiResponse[DashboardStatsResponse])
def get_dashboard_stats(
    caller: Caller = Depends(admin_or_above),
    workflow: LoanWorkflow = Depends(get_workflow),
):
    stats = dashboard_stats(workflow.db, today=workflow.today(), now=workflow.now())
    return ApiResponse(message="Dashboard statistics retrieved successfully", data=DashboardStatsResponse(**stats))
