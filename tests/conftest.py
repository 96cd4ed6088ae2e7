"""Pytest fixtures for testing"""

import pytest
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Callable, Dict, Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from loan_tracker.api.main import create_app
from loan_tracker.infrastructure.database.models import Base
from loan_tracker.infrastructure.database.session import get_db
from loan_tracker.services.workflow import LoanWorkflow


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)

# Fixed clock so due dates and overdue checks are deterministic
TODAY = date(2026, 1, 15)
NOW = datetime(2026, 1, 15, 10, 30, tzinfo=timezone.utc)


@pytest.fixture
def session_factory() -> Generator[sessionmaker, None, None]:
    """Fresh schema per test; yields the factory so tests can open concurrent sessions"""
    Base.metadata.create_all(bind=engine)
    try:
        yield TestingSessionLocal
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """Create test database and session"""
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def make_workflow(db: Session) -> Callable[..., LoanWorkflow]:
    """Build workflows pinned to a given day (TODAY unless overridden)"""

    def factory(today: date = TODAY, session: Session = None) -> LoanWorkflow:
        return LoanWorkflow(session or db, today=lambda: today, now=lambda: NOW)

    return factory


@pytest.fixture
def workflow(make_workflow) -> LoanWorkflow:
    return make_workflow()


@pytest.fixture
def approved_loan(workflow: LoanWorkflow):
    """Loan of 120000 at 12% over 12 months, approved on TODAY for user_1"""
    application = workflow.submit_application("user_1", Decimal("120000"), 12, "EMPLOYED", reason="Home repair")
    workflow.verify_application(application.id, "verifier_1", "VERIFIED", notes="Documents checked")
    return workflow.approve_application(application.id, "admin_1", "APPROVED", interest_rate=Decimal("12")).loan


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


def auth_headers(user_id: str, role: str = "USER") -> Dict[str, str]:
    """Identity headers normally injected by the authentication gateway"""
    return {"X-User-Id": user_id, "X-User-Role": role}


@pytest.fixture
def headers() -> Callable[..., Dict[str, str]]:
    return auth_headers
