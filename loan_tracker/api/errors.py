"""Map domain errors and request validation failures onto the response envelope"""

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from loan_tracker.api.dependencies import get_request_id
from loan_tracker.api.v1.schemas import ErrorResponse
from loan_tracker.domain.exceptions import (
    ConflictError,
    DomainException,
    Forbidden,
    InvalidOperation,
    InvalidStateTransition,
    NotFound,
    ValidationError,
)

logger = logging.getLogger("loan_tracker.api")

STATUS_CODES = {
    ValidationError: 400,
    InvalidOperation: 400,
    Forbidden: 403,
    NotFound: 404,
    InvalidStateTransition: 409,
    ConflictError: 409,
}

HTTP_ERROR_CODES = {
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}


def status_for(exc: DomainException) -> int:
    """Most specific status code registered for the exception's class"""
    for cls in type(exc).__mro__:
        if cls in STATUS_CODES:
            return STATUS_CODES[cls]
    return 500


def error_response(status_code: int, message: str, error: str, details=None) -> JSONResponse:
    body = ErrorResponse(message=message, error=error, details=details or {})
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    status_code = status_for(exc)
    details = dict(exc.details)
    if isinstance(exc, ConflictError):
        details["retryable"] = exc.retryable
    logger.warning(
        f"Domain error: {exc}",
        extra={"request_id": get_request_id(request), "error": exc.code, "status": status_code},
    )
    return error_response(status_code, exc.message, exc.code, details)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(
        400,
        "Validation failed",
        ValidationError.code,
        {"errors": jsonable_encoder(exc.errors())},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(
        exc.status_code,
        str(exc.detail),
        HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR"),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unexpected error: {exc}", extra={"request_id": get_request_id(request)})
    return error_response(500, "Internal server error", "INTERNAL_ERROR")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainException, domain_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
