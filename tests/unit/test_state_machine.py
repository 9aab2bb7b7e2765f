# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for table-driven status transitions."""

import pytest

from src.domains.assignment.lifecycle import ASSIGNMENT_LIFECYCLE, GRADING_LIFECYCLE
from src.domains.common import ErrorCode, InvalidTransition
from src.domains.enrollment.lifecycle import ENROLLMENT_LIFECYCLE
from src.domains.fee_receipt.calculations import RECEIPT_LIFECYCLE
from src.domains.quiz.scoring import ATTEMPT_LIFECYCLE
from src.models.assignment import AssignmentStatus, GradingStatus
from src.models.enrollment import EnrollmentStatus
from src.models.fee_receipt import ReceiptStatus
from src.models.quiz import AttemptStatus


class TestStateMachine:
    """Tests for the generic StateMachine."""

    def test_allowed_transition_returns_target(self):
        result = ASSIGNMENT_LIFECYCLE.require(AssignmentStatus.DRAFT, AssignmentStatus.PUBLISHED)

        assert result == AssignmentStatus.PUBLISHED

    def test_illegal_transition_raises_with_states(self):
        with pytest.raises(InvalidTransition) as exc_info:
            ASSIGNMENT_LIFECYCLE.require(AssignmentStatus.DRAFT, AssignmentStatus.CLOSED)

        error = exc_info.value
        assert error.code == ErrorCode.INVALID_TRANSITION
        assert error.details == {"entity": "assignment", "current": "DRAFT", "requested": "CLOSED"}
        assert error.message == "Cannot change assignment status from DRAFT to CLOSED"

    def test_check_returns_none_when_allowed(self):
        assert ASSIGNMENT_LIFECYCLE.check(AssignmentStatus.PUBLISHED, AssignmentStatus.CLOSED) is None

    def test_terminal_state(self):
        assert ASSIGNMENT_LIFECYCLE.is_terminal(AssignmentStatus.CLOSED)
        assert not ASSIGNMENT_LIFECYCLE.is_terminal(AssignmentStatus.DRAFT)

    def test_states_lists_every_status(self):
        assert ASSIGNMENT_LIFECYCLE.states == frozenset(AssignmentStatus)


class TestEnrollmentLifecycle:
    """Tests for the enrollment transition table."""

    @pytest.mark.parametrize(
        "current,requested",
        [
            (EnrollmentStatus.PENDING, EnrollmentStatus.ENROLLED),
            (EnrollmentStatus.ENROLLED, EnrollmentStatus.SUSPENDED),
            (EnrollmentStatus.ENROLLED, EnrollmentStatus.DROPPED),
            (EnrollmentStatus.ENROLLED, EnrollmentStatus.COMPLETED),
            (EnrollmentStatus.SUSPENDED, EnrollmentStatus.ENROLLED),
        ],
    )
    def test_allowed(self, current, requested):
        assert ENROLLMENT_LIFECYCLE.can_transition(current, requested)

    @pytest.mark.parametrize(
        "current,requested",
        [
            (EnrollmentStatus.PENDING, EnrollmentStatus.COMPLETED),
            (EnrollmentStatus.SUSPENDED, EnrollmentStatus.COMPLETED),
            (EnrollmentStatus.DROPPED, EnrollmentStatus.ENROLLED),
            (EnrollmentStatus.COMPLETED, EnrollmentStatus.ENROLLED),
        ],
    )
    def test_rejected(self, current, requested):
        assert not ENROLLMENT_LIFECYCLE.can_transition(current, requested)

    def test_dropped_and_completed_are_terminal(self):
        assert ENROLLMENT_LIFECYCLE.is_terminal(EnrollmentStatus.DROPPED)
        assert ENROLLMENT_LIFECYCLE.is_terminal(EnrollmentStatus.COMPLETED)


class TestOtherLifecycles:
    """Spot checks for receipt, attempt and grading tables."""

    def test_cancelled_receipt_is_terminal(self):
        assert RECEIPT_LIFECYCLE.is_terminal(ReceiptStatus.CANCELLED)
        assert RECEIPT_LIFECYCLE.is_terminal(ReceiptStatus.REFUNDED)

    def test_paid_receipt_can_only_be_refunded(self):
        assert RECEIPT_LIFECYCLE.allowed_targets(ReceiptStatus.PAID) == frozenset({ReceiptStatus.REFUNDED})

    def test_finished_attempt_cannot_be_abandoned(self):
        assert not ATTEMPT_LIFECYCLE.can_transition(AttemptStatus.COMPLETED, AttemptStatus.ABANDONED)

    def test_regrade_returns_manual_grade_to_not_graded(self):
        assert GRADING_LIFECYCLE.can_transition(GradingStatus.MANUAL_GRADED, GradingStatus.NOT_GRADED)
        assert not GRADING_LIFECYCLE.can_transition(GradingStatus.AUTO_GRADED, GradingStatus.NOT_GRADED)
