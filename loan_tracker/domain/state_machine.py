"""Application approval state machine"""

from enum import Enum
from typing import Dict, FrozenSet, Tuple

from loan_tracker.domain.exceptions import InvalidStateTransition, ValidationError
from loan_tracker.domain.models import ApplicationStatus


class ReviewStage(str, Enum):
    """Which actor action drives a transition"""

    VERIFY = "verify"
    APPROVE = "approve"


# (from, to) -> stage allowed to perform it. Anything absent is forbidden.
TRANSITIONS: Dict[Tuple[ApplicationStatus, ApplicationStatus], ReviewStage] = {
    (ApplicationStatus.PENDING, ApplicationStatus.VERIFIED): ReviewStage.VERIFY,
    (ApplicationStatus.PENDING, ApplicationStatus.REJECTED): ReviewStage.VERIFY,
    (ApplicationStatus.VERIFIED, ApplicationStatus.APPROVED): ReviewStage.APPROVE,
    (ApplicationStatus.VERIFIED, ApplicationStatus.REJECTED): ReviewStage.APPROVE,
}


def outcomes_for(stage: ReviewStage) -> FrozenSet[ApplicationStatus]:
    """Statuses a stage may move an application into"""
    return frozenset(target for (_, target), owner in TRANSITIONS.items() if owner == stage)


def source_status(stage: ReviewStage) -> ApplicationStatus:
    """The single status a stage acts on"""
    return next(source for (source, _), owner in TRANSITIONS.items() if owner == stage)


def allowed_targets(current: ApplicationStatus) -> FrozenSet[ApplicationStatus]:
    """Statuses reachable from `current` by any stage"""
    return frozenset(target for (source, target) in TRANSITIONS if source == current)


def check_transition(
    current: ApplicationStatus,
    target: ApplicationStatus,
    stage: ReviewStage,
) -> ApplicationStatus:
    """
    Validate a requested transition against the table.

    Raises:
        ValidationError: target is not an outcome this stage can produce
        InvalidStateTransition: current status does not allow the move

    Returns the target status on success.
    """
    current = ApplicationStatus(current)
    try:
        target = ApplicationStatus(target)
    except ValueError as e:
        raise ValidationError(f"Unknown application status: {target}") from e

    if target not in outcomes_for(stage):
        allowed = sorted(s.value for s in outcomes_for(stage))
        raise ValidationError(
            f"Outcome of {stage.value} must be one of {', '.join(allowed)}",
            {"outcome": target.value},
        )

    if target not in allowed_targets(current) or TRANSITIONS[(current, target)] != stage:
        if current.is_terminal:
            message = f"Application is already {current.value} and cannot be changed"
        else:
            message = f"Application must be {source_status(stage).value} to {stage.value}, found {current.value}"
        raise InvalidStateTransition(current.value, target.value, message)

    return target