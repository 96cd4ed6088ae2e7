"""Read-side aggregates for dashboards, recomputed from the tables on every call"""

from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from loan_tracker.config import settings
from loan_tracker.infrastructure.database.repositories import ApplicationRepository, LoanRepository


def application_stats(db: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Counts by status, requested amount totals and recent submissions"""
    now = now or datetime.now(timezone.utc)
    repo = ApplicationRepository(db)
    by_status = repo.count_by_status()
    since = now - timedelta(days=settings.recent_application_window_days)
    return {
        "total_applications": sum(by_status.values()),
        "by_status": by_status,
        **repo.amount_totals(),
        "recent_applications": repo.count_submitted_since(since),
    }


def loan_stats(db: Session, today: Optional[date] = None) -> Dict[str, Any]:
    """Portfolio totals plus overdue and soon-due counts"""
    today = today or date.today()
    repo = LoanRepository(db)
    window_end = today + timedelta(days=settings.upcoming_payment_window_days)
    return {
        **repo.portfolio_totals(),
        "overdue_loans": repo.count_overdue(today),
        "upcoming_payments": repo.count_due_between(today, window_end),
    }


def dashboard_stats(db: Session, today: Optional[date] = None, now: Optional[datetime] = None) -> Dict[str, Any]:
    applications = application_stats(db, now)
    loans = loan_stats(db, today)
    return {
        "borrowers": loans["borrowers"],
        "cash_disbursed": loans["cash_disbursed"],
        "cash_received": loans["cash_received"],
        "repaid_loans": loans["paid_loans"],
        "active_loans": loans["active_loans"],
        "overdue_loans": loans["overdue_loans"],
        "total_applications": applications["total_applications"],
        "pending_applications": applications["by_status"]["PENDING"],
        "verified_applications": applications["by_status"]["VERIFIED"],
        "approved_applications": applications["by_status"]["APPROVED"],
        "rejected_applications": applications["by_status"]["REJECTED"],
    }
