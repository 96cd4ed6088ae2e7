"""Domain-specific exceptions"""

from typing import Any, Dict, Optional


class DomainException(Exception):
    """Base exception for domain layer"""

    code = "DOMAIN_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class ValidationError(DomainException):
    """Input is malformed or out of range"""

    code = "VALIDATION_ERROR"


class InvalidArgument(ValidationError):
    """An argument is well-formed but not acceptable for the operation"""

    code = "INVALID_ARGUMENT"


class MissingArgument(ValidationError):
    """A conditionally required argument was not supplied"""

    code = "MISSING_ARGUMENT"


class InvalidStateTransition(DomainException):
    """Application status does not allow the requested transition"""

    code = "INVALID_STATE_TRANSITION"

    def __init__(self, current: str, target: str, message: Optional[str] = None):
        super().__init__(
            message or f"Cannot move application from {current} to {target}",
            {"current_status": current, "target_status": target},
        )
        self.current = current
        self.target = target


class ConflictError(DomainException):
    """Uniqueness or active-resource invariant would be violated"""

    code = "CONFLICT"

    def __init__(self, message: str, retryable: bool = False, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.retryable = retryable


class InvalidOperation(DomainException):
    """Operation is not valid for the entity's current state"""

    code = "INVALID_OPERATION"


class Forbidden(DomainException):
    """Caller does not own the resource or lacks the role"""

    code = "FORBIDDEN"


class NotFound(DomainException):
    """Requested entity does not exist"""

    code = "NOT_FOUND"
