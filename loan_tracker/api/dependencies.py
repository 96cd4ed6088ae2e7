"""Dependency injection for FastAPI endpoints"""

from typing import Callable, Optional

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from loan_tracker.domain.exceptions import Forbidden
from loan_tracker.domain.models import Caller, Role
from loan_tracker.infrastructure.database.session import get_db
from loan_tracker.services.workflow import LoanWorkflow


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_caller(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
) -> Caller:
    """
    Identity asserted by the upstream authentication gateway.

    Authentication happens before requests reach this service; the gateway
    forwards the caller's id and role as headers.
    """
    if not x_user_id or not x_user_role:
        raise HTTPException(status_code=401, detail="Authentication required")
    try:
        role = Role(x_user_role.upper())
    except ValueError:
        raise HTTPException(status_code=401, detail="Unknown role")
    return Caller(user_id=x_user_id, role=role)


def require_roles(*roles: Role) -> Callable[..., Caller]:
    """Dependency factory gating an endpoint to the given roles"""

    def dependency(caller: Caller = Depends(get_caller)) -> Caller:
        if caller.role not in roles:
            raise Forbidden("Insufficient permissions", {"role": caller.role.value})
        return caller

    return dependency


customer_only = require_roles(Role.USER)
verifier_or_above = require_roles(Role.VERIFIER, Role.ADMIN, Role.SUPER_ADMIN)
admin_or_above = require_roles(Role.ADMIN, Role.SUPER_ADMIN)


def get_workflow(request: Request, db: Session = Depends(get_db)) -> LoanWorkflow:
    """Provide a workflow bound to the request's database session"""
    return LoanWorkflow(db, request_id=get_request_id(request))
