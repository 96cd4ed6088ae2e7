"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional
from pythonjsonlogger.json import JsonFormatter

from loan_tracker.config import settings

logger = logging.getLogger("loan_tracker.workflow")


class CustomJsonFormatter(JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    root = logging.getLogger()
    root.setLevel(level)

    # Remove existing handlers
    root.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    root.addHandler(handler)


def log_event(step: str, message: str, request_id: Optional[str] = None, **fields: Any) -> None:
    """Log a workflow step with structured fields for analysis"""
    extra: Dict[str, Any] = {"step": step}
    if request_id:
        extra["request_id"] = request_id
    for key, value in fields.items():
        extra[key] = str(value) if isinstance(value, Decimal) else value
    logger.info(message, extra=extra)


def log_application_transition(
    application_id: str,
    actor_id: str,
    from_status: str,
    to_status: str,
    request_id: Optional[str] = None,
) -> None:
    """Log a reviewer decision on an application"""
    log_event(
        "application_transition",
        f"Application {to_status.lower()}",
        request_id=request_id,
        application_id=application_id,
        actor_id=actor_id,
        from_status=from_status,
        to_status=to_status,
    )
