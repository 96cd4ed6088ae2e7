"""Unit tests for the application approval state machine"""

import pytest

from loan_tracker.domain.exceptions import InvalidStateTransition, ValidationError
from loan_tracker.domain.models import ApplicationStatus
from loan_tracker.domain.state_machine import (
    ReviewStage,
    allowed_targets,
    check_transition,
    outcomes_for,
    source_status,
)


@pytest.mark.parametrize(
    "current,target,stage",
    [
        (ApplicationStatus.PENDING, "VERIFIED", ReviewStage.VERIFY),
        (ApplicationStatus.PENDING, "REJECTED", ReviewStage.VERIFY),
        (ApplicationStatus.VERIFIED, "APPROVED", ReviewStage.APPROVE),
        (ApplicationStatus.VERIFIED, "REJECTED", ReviewStage.APPROVE),
    ],
)
def test_allowed_transitions(current, target, stage):
    assert check_transition(current, target, stage) == ApplicationStatus(target)


def test_approve_requires_verified():
    with pytest.raises(InvalidStateTransition) as exc_info:
        check_transition(ApplicationStatus.PENDING, "APPROVED", ReviewStage.APPROVE)

    assert exc_info.value.details["current_status"] == "PENDING"
    assert exc_info.value.details["target_status"] == "APPROVED"


def test_verify_requires_pending():
    with pytest.raises(InvalidStateTransition):
        check_transition(ApplicationStatus.VERIFIED, "VERIFIED", ReviewStage.VERIFY)


@pytest.mark.parametrize("terminal", [ApplicationStatus.APPROVED, ApplicationStatus.REJECTED])
@pytest.mark.parametrize(
    "target,stage",
    [("VERIFIED", ReviewStage.VERIFY), ("APPROVED", ReviewStage.APPROVE), ("REJECTED", ReviewStage.APPROVE)],
)
def test_terminal_states_are_final(terminal, target, stage):
    with pytest.raises(InvalidStateTransition) as exc_info:
        check_transition(terminal, target, stage)

    assert "cannot be changed" in exc_info.value.message


def test_outcome_outside_stage_is_validation_error():
    """Verifiers cannot approve and admins cannot verify"""
    with pytest.raises(ValidationError):
        check_transition(ApplicationStatus.PENDING, "APPROVED", ReviewStage.VERIFY)
    with pytest.raises(ValidationError):
        check_transition(ApplicationStatus.VERIFIED, "VERIFIED", ReviewStage.APPROVE)


def test_unknown_outcome_is_validation_error():
    with pytest.raises(ValidationError):
        check_transition(ApplicationStatus.PENDING, "ON_HOLD", ReviewStage.VERIFY)


def test_table_helpers():
    assert outcomes_for(ReviewStage.VERIFY) == {ApplicationStatus.VERIFIED, ApplicationStatus.REJECTED}
    assert source_status(ReviewStage.APPROVE) == ApplicationStatus.VERIFIED
    assert allowed_targets(ApplicationStatus.APPROVED) == frozenset()
    assert allowed_targets(ApplicationStatus.PENDING) == {ApplicationStatus.VERIFIED, ApplicationStatus.REJECTED}
