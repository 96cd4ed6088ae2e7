"""Database session management with connection pooling"""

from typing import Any, Dict, Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from loan_tracker.config import settings


def engine_kwargs(database_url: str) -> Dict[str, Any]:
    """Dialect-specific engine options for SQLite vs server databases"""
    if database_url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    # Pooled server connections, recycled hourly to avoid stale sockets
    return {
        "pool_pre_ping": True,
        "pool_size": 10,
        "max_overflow": 10,
        "pool_recycle": 3600,
    }


engine = create_engine(settings.database_url, **engine_kwargs(settings.database_url))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def init_db() -> None:
    """Create tables that do not exist yet"""
    from loan_tracker.infrastructure.database.models import Base

    Base.metadata.create_all(bind=engine)


def get_db() -> Iterator[Session]:
    """Dependency injection for database sessions"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
