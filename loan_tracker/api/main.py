"""FastAPI application factory"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from loan_tracker.api.errors import register_exception_handlers
from loan_tracker.api.middleware import RequestIDMiddleware, MetricsMiddleware
from loan_tracker.api.v1 import applications, loans, stats
from loan_tracker.infrastructure.database.session import init_db
from loan_tracker.infrastructure.observability.logging import setup_logging
from loan_tracker.config import settings

# Setup structured logging
setup_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Loan Tracker",
        description="Loan application workflow and repayment ledger service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(applications.router, prefix="/v1", tags=["applications"])
    app.include_router(loans.router, prefix="/v1", tags=["loans"])
    app.include_router(stats.router, prefix="/v1", tags=["stats"])

    return app


app = create_app()
