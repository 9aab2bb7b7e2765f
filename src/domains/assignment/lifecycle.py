# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Assignment, submission and grading lifecycle rules.

Everything here is a pure function of its arguments; "now" is always
passed in by the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional, Protocol

from src.domains.common import BusinessRuleError, StateMachine
from src.models.assignment import (
    AssignmentStatistics,
    AssignmentStatus,
    GradingStatus,
    StudentSubmissionStatus,
)
from src.models.common import CleanupFrequency
from src.utils.datetime import ensure_utc, whole_minutes_between

ASSIGNMENT_LIFECYCLE: StateMachine[AssignmentStatus] = StateMachine(
    "assignment",
    {
        AssignmentStatus.DRAFT: {AssignmentStatus.PUBLISHED},
        AssignmentStatus.PUBLISHED: {AssignmentStatus.CLOSED},
        AssignmentStatus.CLOSED: set(),
    },
)

# Content state of a student's working copy. LATE and GRADED are derived.
SUBMISSION_LIFECYCLE: StateMachine[StudentSubmissionStatus] = StateMachine(
    "submission",
    {
        StudentSubmissionStatus.NOT_STARTED: {
            StudentSubmissionStatus.DRAFT_SAVED,
            StudentSubmissionStatus.SUBMITTED,
        },
        StudentSubmissionStatus.DRAFT_SAVED: {
            StudentSubmissionStatus.DRAFT_SAVED,
            StudentSubmissionStatus.SUBMITTED,
        },
        StudentSubmissionStatus.SUBMITTED: set(),
    },
)

GRADING_LIFECYCLE: StateMachine[GradingStatus] = StateMachine(
    "grading",
    {
        GradingStatus.NOT_GRADED: {GradingStatus.MANUAL_GRADED, GradingStatus.AUTO_GRADED},
        GradingStatus.MANUAL_GRADED: {GradingStatus.MANUAL_GRADED, GradingStatus.NOT_GRADED},
        GradingStatus.AUTO_GRADED: {GradingStatus.MANUAL_GRADED},
    },
)

GRADED_STATUSES = frozenset({GradingStatus.MANUAL_GRADED, GradingStatus.AUTO_GRADED})

# Fields whose meaning changes for work already handed in.
FROZEN_AFTER_SUBMISSION = ("submission_type", "max_score", "grading_rubric")


class SubmissionRecord(Protocol):
    """Attributes of a stored submission the rules below read."""

    is_final: bool
    is_late: bool
    attempt_number: int
    grading_status: str
    adjusted_score: Optional[float]


@dataclass(frozen=True)
class LatePenalty:
    """Outcome of applying the late penalty to a raw score."""

    raw_score: float
    penalty: float
    effective_score: float


# =============================================================================
# Assignment rules
# =============================================================================


def check_assignment_edit(
    status: AssignmentStatus,
    has_submissions: bool,
    changed_fields: Iterable[str],
) -> None:
    """Reject edits to closed assignments and to frozen grading fields.

    Raises:
        BusinessRuleError: If the edit is not allowed.
    """
    if status == AssignmentStatus.CLOSED:
        raise BusinessRuleError("Cannot edit closed assignment")
    if not has_submissions:
        return
    frozen = sorted(set(changed_fields) & set(FROZEN_AFTER_SUBMISSION))
    if frozen:
        raise BusinessRuleError(
            f"Cannot change {', '.join(frozen)} after students have submitted"
        )


def check_can_delete(status: AssignmentStatus, total_submissions: int) -> None:
    if status != AssignmentStatus.DRAFT:
        raise BusinessRuleError("Only draft assignments can be deleted")
    if total_submissions > 0:
        raise BusinessRuleError("Cannot delete assignment with submissions")


def check_can_submit(
    assignment: Any,
    now: datetime,
    *,
    is_final: bool,
    latest_final_attempt: int = 0,
) -> bool:
    """Decide whether a student may hand in work right now.

    Args:
        assignment: Stored assignment (status, publish_at, due_date,
            close_date, allow_late_submission, max_submissions).
        now: Current instant.
        is_final: Final submission (drafts skip the lateness and attempt
            checks).
        latest_final_attempt: Attempt number of the student's latest final
            submission, 0 if none.

    Returns:
        True when the submission is late.

    Raises:
        BusinessRuleError: With the reason the submission is refused.
    """
    if AssignmentStatus(assignment.status) != AssignmentStatus.PUBLISHED:
        raise BusinessRuleError("Assignment is not available for submission")
    if assignment.publish_at is not None and now < ensure_utc(assignment.publish_at):
        raise BusinessRuleError("Assignment is not yet open for submission")
    if assignment.close_date is not None and now > ensure_utc(assignment.close_date):
        raise BusinessRuleError("Submission period has closed")

    is_late = now > ensure_utc(assignment.due_date)
    if not is_final:
        return is_late
    if is_late and not assignment.allow_late_submission:
        raise BusinessRuleError("Late submissions are not allowed")
    if latest_final_attempt >= assignment.max_submissions:
        raise BusinessRuleError("Maximum submissions reached")
    return is_late


# =============================================================================
# Derived submission fields
# =============================================================================


def calculate_late_minutes(due_date: datetime, submitted_at: datetime) -> int:
    """Whole minutes past the due date, 0 when on time."""
    return max(0, whole_minutes_between(due_date, submitted_at))


def apply_late_penalty(score: float, penalty_percentage: float, late_minutes: int) -> LatePenalty:
    """Apply the flat late penalty.

    Any lateness costs the full percentage once; how late does not matter.
    The adjusted score never drops below zero.
    """
    late_units = 1 if late_minutes > 0 else 0
    penalty = round(score * penalty_percentage / 100 * late_units, 2)
    return LatePenalty(
        raw_score=score,
        penalty=penalty,
        effective_score=max(0.0, round(score - penalty, 2)),
    )


def calculate_auto_delete_after(due_date: datetime, frequency: CleanupFrequency) -> Optional[datetime]:
    """Retention deadline for submissions, None when not time-based."""
    days = CleanupFrequency(frequency).days
    if days is None:
        return None
    return ensure_utc(due_date) + timedelta(days=days)


def working_copy_state(
    draft: Optional[SubmissionRecord],
    latest_final: Optional[SubmissionRecord],
    max_submissions: int,
) -> StudentSubmissionStatus:
    """Content state a new save starts from.

    An open draft wins. Without one, a student whose latest final
    submission used the last allowed attempt is SUBMITTED for good.
    """
    if draft is not None:
        return StudentSubmissionStatus.DRAFT_SAVED
    if latest_final is not None and latest_final.attempt_number >= max_submissions:
        return StudentSubmissionStatus.SUBMITTED
    return StudentSubmissionStatus.NOT_STARTED


def determine_student_status(submission: Optional[SubmissionRecord]) -> StudentSubmissionStatus:
    """Student-facing status of an assignment given the latest submission."""
    if submission is None:
        return StudentSubmissionStatus.NOT_STARTED
    if GradingStatus(submission.grading_status) in GRADED_STATUSES:
        return StudentSubmissionStatus.GRADED
    if submission.is_late:
        return StudentSubmissionStatus.LATE
    if submission.is_final:
        return StudentSubmissionStatus.SUBMITTED
    return StudentSubmissionStatus.DRAFT_SAVED


def check_score(score: float, max_score: float) -> None:
    if score > max_score:
        raise BusinessRuleError(f"Score cannot exceed maximum of {max_score:g}")


# =============================================================================
# Statistics
# =============================================================================


def grading_summary(submissions: Iterable[SubmissionRecord]) -> tuple[int, Optional[float]]:
    """Graded count and average adjusted score over final submissions."""
    scores = [
        s.adjusted_score
        for s in submissions
        if s.is_final
        and GradingStatus(s.grading_status) in GRADED_STATUSES
        and s.adjusted_score is not None
    ]
    if not scores:
        return 0, None
    return len(scores), round(sum(scores) / len(scores), 2)


def calculate_statistics(assignment_id: Any, submissions: list[SubmissionRecord]) -> AssignmentStatistics:
    """Aggregate submission figures for one assignment."""
    finals = [s for s in submissions if s.is_final]
    graded = [
        s for s in finals
        if GradingStatus(s.grading_status) in GRADED_STATUSES
    ]
    scores = [s.adjusted_score for s in graded if s.adjusted_score is not None]
    return AssignmentStatistics(
        assignment_id=assignment_id,
        total_submissions=len(finals),
        graded_count=len(graded),
        pending_count=len(finals) - len(graded),
        late_count=sum(1 for s in finals if s.is_late),
        average_score=round(sum(scores) / len(scores), 2) if scores else None,
        highest_score=max(scores) if scores else None,
        lowest_score=min(scores) if scores else None,
    )
