"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum


class ApplicationStatus(str, Enum):
    """Lifecycle of a loan application"""

    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

    @property
    def is_active(self) -> bool:
        return self in (ApplicationStatus.PENDING, ApplicationStatus.VERIFIED)

    @property
    def is_terminal(self) -> bool:
        return self in (ApplicationStatus.APPROVED, ApplicationStatus.REJECTED)


class EmploymentStatus(str, Enum):
    EMPLOYED = "EMPLOYED"
    SELF_EMPLOYED = "SELF_EMPLOYED"
    UNEMPLOYED = "UNEMPLOYED"
    STUDENT = "STUDENT"
    RETIRED = "RETIRED"


class Role(str, Enum):
    """Caller roles supplied by the identity gate"""

    USER = "USER"
    VERIFIER = "VERIFIER"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"

    @property
    def is_admin(self) -> bool:
        return self in (Role.ADMIN, Role.SUPER_ADMIN)


class TransactionType(str, Enum):
    EMI = "EMI"


class TransactionStatus(str, Enum):
    COMPLETED = "COMPLETED"


class InstallmentStatus(str, Enum):
    PAID = "PAID"
    PENDING = "PENDING"


@dataclass(frozen=True)
class Caller:
    """Identity of whoever invokes a workflow operation"""

    user_id: str
    role: Role


@dataclass(frozen=True)
class InstallmentRow:
    """Single row of an amortization schedule"""

    installment_number: int
    due_date: date
    emi_amount: Decimal
    principal_component: Decimal
    interest_component: Decimal
    remaining_principal: Decimal
    status: InstallmentStatus
