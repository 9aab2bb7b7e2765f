# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Assignment and submission request/response models.

Request schemas define the wire contract for creating, editing, publishing
and closing assignments, and for submitting, drafting and grading student
work. Cross-field rules (date ordering, rubric totals, text-or-file) are
declared with @rule and evaluated by validate_payload().
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.models.common import (
    SCORE_TOLERANCE,
    CleanupFrequency,
    FileExtension,
    RequestModel,
    UtcDatetime,
    ValidationContext,
    rule,
    within_tolerance,
)

DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024
MAX_FILE_SIZE = 100 * 1024 * 1024


class AssignmentStatus(str, Enum):
    """Assignment lifecycle state."""

    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    CLOSED = "CLOSED"


class SubmissionType(str, Enum):
    """What students hand in."""

    FILE = "FILE"
    TEXT = "TEXT"


class GradingStatus(str, Enum):
    """Grading sub-state of a submission."""

    NOT_GRADED = "NOT_GRADED"
    AUTO_GRADED = "AUTO_GRADED"
    MANUAL_GRADED = "MANUAL_GRADED"


class StudentSubmissionStatus(str, Enum):
    """Student-facing status of an assignment."""

    NOT_STARTED = "NOT_STARTED"
    DRAFT_SAVED = "DRAFT_SAVED"
    SUBMITTED = "SUBMITTED"
    LATE = "LATE"
    GRADED = "GRADED"


# =============================================================================
# Rubric
# =============================================================================


class RubricLevel(BaseModel):
    """One performance level of a rubric criterion."""

    level: str = Field(..., min_length=1, max_length=50)
    points: float = Field(..., ge=0)
    description: str | None = Field(default=None, max_length=500)


class RubricItem(BaseModel):
    """A weighted grading criterion.

    Attributes:
        id: Stable identifier referenced by rubric scores.
        criteria: Short criterion title.
        description: Optional explanation shown to graders.
        max_points: Points this criterion contributes to max_score.
        levels: Optional descriptive performance levels.
    """

    id: UUID
    criteria: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=500)
    max_points: float = Field(..., gt=0)
    levels: list[RubricLevel] | None = Field(default=None, max_length=10)


class RubricScore(BaseModel):
    """Points awarded for one rubric criterion."""

    rubric_item_id: UUID
    points_awarded: float = Field(..., ge=0)
    comment: str | None = Field(default=None, max_length=500)


def rubric_total(items: list[RubricItem]) -> float:
    """Sum of max_points across rubric items."""
    return sum(item.max_points for item in items)


# =============================================================================
# Assignment requests
# =============================================================================


class _AssignmentDates(RequestModel):
    publish_at: UtcDatetime | None = None
    due_date: UtcDatetime | None = None
    close_date: UtcDatetime | None = None

    @rule("publish_at", "Publish date must be before or equal to due date")
    def publish_before_due(self, context: ValidationContext) -> bool:
        if self.publish_at is None or self.due_date is None:
            return True
        return self.publish_at <= self.due_date

    @rule("close_date", "Due date must be before or equal to close date")
    def due_before_close(self, context: ValidationContext) -> bool:
        if self.due_date is None or self.close_date is None:
            return True
        return self.due_date <= self.close_date


class CreateAssignmentRequest(_AssignmentDates):
    """Request to create a draft assignment."""

    class_id: UUID
    teacher_id: UUID
    branch_id: UUID
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    instructions: str | None = Field(default=None, max_length=10000)
    submission_type: SubmissionType = SubmissionType.FILE
    max_file_size: int = Field(default=DEFAULT_MAX_FILE_SIZE, gt=0, le=MAX_FILE_SIZE)
    allowed_extensions: list[FileExtension] | None = Field(default=None, max_length=20)
    max_submissions: int = Field(default=1, ge=1, le=10)
    allow_late_submission: bool = False
    late_penalty_percentage: float = Field(default=0, ge=0, le=100)
    max_score: float = Field(..., gt=0, le=10000)
    grading_rubric: list[RubricItem] | None = Field(default=None, max_length=20)
    show_rubric_to_students: bool = False
    due_date: UtcDatetime
    clean_submissions_after: CleanupFrequency = CleanupFrequency.DAYS_90
    clean_instructions_after: CleanupFrequency = CleanupFrequency.DAYS_30

    @rule("grading_rubric", "Rubric total points must equal max score")
    def rubric_matches_max_score(self, context: ValidationContext) -> bool:
        if not self.grading_rubric:
            return True
        return within_tolerance(rubric_total(self.grading_rubric), self.max_score, SCORE_TOLERANCE)


class UpdateAssignmentRequest(_AssignmentDates):
    """Partial update of an assignment; only sent fields are applied."""

    not_null_fields: ClassVar[tuple[str, ...]] = (
        "title",
        "submission_type",
        "max_file_size",
        "max_submissions",
        "allow_late_submission",
        "late_penalty_percentage",
        "max_score",
        "show_rubric_to_students",
        "due_date",
        "clean_submissions_after",
        "clean_instructions_after",
    )

    id: UUID
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    instructions: str | None = Field(default=None, max_length=10000)
    submission_type: SubmissionType | None = None
    max_file_size: int | None = Field(default=None, gt=0, le=MAX_FILE_SIZE)
    allowed_extensions: list[FileExtension] | None = Field(default=None, max_length=20)
    max_submissions: int | None = Field(default=None, ge=1, le=10)
    allow_late_submission: bool | None = None
    late_penalty_percentage: float | None = Field(default=None, ge=0, le=100)
    max_score: float | None = Field(default=None, gt=0, le=10000)
    grading_rubric: list[RubricItem] | None = Field(default=None, max_length=20)
    show_rubric_to_students: bool | None = None
    clean_submissions_after: CleanupFrequency | None = None
    clean_instructions_after: CleanupFrequency | None = None

    @rule("grading_rubric", "Rubric total points must equal max score")
    def rubric_matches_max_score(self, context: ValidationContext) -> bool:
        if not self.grading_rubric or self.max_score is None:
            return True
        return within_tolerance(rubric_total(self.grading_rubric), self.max_score, SCORE_TOLERANCE)

    def changes(self) -> dict[str, Any]:
        """Sent fields other than the identifier.

        Rubric items are dumped whole so they compare equal to the stored
        rubric even when optional keys were left out.
        """
        data = self.model_dump(exclude_unset=True, exclude={"id"})
        if self.grading_rubric is not None:
            data["grading_rubric"] = [item.model_dump() for item in self.grading_rubric]
        return data


class PublishAssignmentRequest(RequestModel):
    id: UUID
    notify_students: bool = False


class CloseAssignmentRequest(RequestModel):
    id: UUID
    reason: str | None = Field(default=None, max_length=500)


class ListAssignmentsParams(RequestModel):
    """Filters and paging for assignment lists."""

    class_id: UUID | None = None
    teacher_id: UUID | None = None
    branch_id: UUID | None = None
    status: AssignmentStatus | None = None
    submission_type: SubmissionType | None = None
    due_date_from: UtcDatetime | None = None
    due_date_to: UtcDatetime | None = None
    search: str | None = Field(default=None, max_length=100)
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)
    sort_by: Literal["due_date", "created_at", "title"] = "due_date"
    sort_order: Literal["asc", "desc"] = "desc"

    @rule("due_date_to", "From date must be before or equal to To date")
    def date_range_ordered(self, context: ValidationContext) -> bool:
        if self.due_date_from is None or self.due_date_to is None:
            return True
        return self.due_date_from <= self.due_date_to


# =============================================================================
# Submission requests
# =============================================================================


class _SubmissionContent(RequestModel):
    assignment_id: UUID
    student_id: UUID
    class_id: UUID
    submission_text: str | None = Field(default=None, max_length=50000)
    submission_file_id: UUID | None = None

    @property
    def has_text(self) -> bool:
        return bool(self.submission_text and self.submission_text.strip())

    @property
    def has_file(self) -> bool:
        return self.submission_file_id is not None

    @rule("submission_text", "Cannot submit both text and file - choose one")
    def text_or_file_not_both(self, context: ValidationContext) -> bool:
        return not (self.has_text and self.has_file)


class SubmitAssignmentRequest(_SubmissionContent):
    """Submit work, either as a final attempt or as a draft."""

    is_final: bool = True

    @rule("submission_text", "Final submission must include either text or file")
    def final_has_content(self, context: ValidationContext) -> bool:
        if not self.is_final:
            return True
        return self.has_text or self.has_file


class SaveDraftRequest(_SubmissionContent):
    """Save work in progress without submitting it."""


class GradeSubmissionRequest(RequestModel):
    submission_id: UUID
    graded_by: UUID
    score: float = Field(..., ge=0)
    feedback: str | None = Field(default=None, max_length=5000)
    private_notes: str | None = Field(default=None, max_length=2000)
    rubric_scores: list[RubricScore] | None = None


class UpdateGradeRequest(RequestModel):
    submission_id: UUID
    graded_by: UUID
    score: float | None = Field(default=None, ge=0)
    feedback: str | None = Field(default=None, max_length=5000)
    private_notes: str | None = Field(default=None, max_length=2000)


class RegradeRequest(RequestModel):
    submission_id: UUID
    student_id: UUID
    reason: str = Field(..., min_length=10, max_length=1000)


class SubmissionFilters(RequestModel):
    assignment_id: UUID | None = None
    student_id: UUID | None = None
    class_id: UUID | None = None
    grading_status: GradingStatus | None = None
    is_late: bool | None = None
    is_final: bool | None = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)


# =============================================================================
# Responses
# =============================================================================


class AssignmentResponse(BaseModel):
    """Assignment as returned to callers."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    class_id: UUID
    teacher_id: UUID
    branch_id: UUID
    title: str
    description: str | None = None
    instructions: str | None = None
    submission_type: SubmissionType
    max_file_size: int
    allowed_extensions: list[str] | None = None
    max_submissions: int
    allow_late_submission: bool
    late_penalty_percentage: float
    max_score: float
    grading_rubric: list[RubricItem] | None = None
    show_rubric_to_students: bool
    publish_at: datetime | None = None
    due_date: datetime
    close_date: datetime | None = None
    status: AssignmentStatus
    is_visible: bool
    clean_submissions_after: CleanupFrequency
    clean_instructions_after: CleanupFrequency
    total_submissions: int = 0
    graded_count: int = 0
    average_score: float | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class SubmissionResponse(BaseModel):
    """Submission as returned to callers."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    assignment_id: UUID
    student_id: UUID
    class_id: UUID
    submission_text: str | None = None
    submission_file_id: UUID | None = None
    is_final: bool
    attempt_number: int
    submitted_at: datetime | None = None
    is_late: bool
    late_minutes: int
    grading_status: GradingStatus
    score: float | None = None
    adjusted_score: float | None = None
    late_penalty_applied: float | None = None
    feedback: str | None = None
    graded_by: UUID | None = None
    graded_at: datetime | None = None
    rubric_scores: list[RubricScore] | None = None
    regrade_requested: bool = False
    regrade_reason: str | None = None
    auto_delete_after: datetime | None = None


class AssignmentStatistics(BaseModel):
    """Aggregate figures for one assignment."""

    assignment_id: UUID
    total_submissions: int
    graded_count: int
    pending_count: int
    late_count: int
    average_score: float | None = None
    highest_score: float | None = None
    lowest_score: float | None = None
