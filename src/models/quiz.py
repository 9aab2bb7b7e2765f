# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Quiz, question and attempt request/response models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import ClassVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.models.common import (
    CleanupFrequency,
    RequestModel,
    UtcDatetime,
    ValidationContext,
    rule,
)
from src.models.assignment import GradingStatus


class QuestionType(str, Enum):
    """Supported question formats."""

    MCQ_SINGLE = "MCQ_SINGLE"
    MCQ_MULTI = "MCQ_MULTI"


class AttemptStatus(str, Enum):
    """Lifecycle of a single quiz attempt."""

    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    TIMEOUT = "TIMEOUT"
    ABANDONED = "ABANDONED"


class StudentQuizStatus(str, Enum):
    """Student-facing status of a quiz."""

    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    PASSED = "PASSED"
    FAILED = "FAILED"
    TIMED_OUT = "TIMED_OUT"


# =============================================================================
# Quiz requests
# =============================================================================


class _QuizScoring(RequestModel):
    available_from: UtcDatetime | None = None
    available_to: UtcDatetime | None = None
    max_score: float | None = Field(default=None, gt=0, le=10000)
    passing_score: float | None = Field(default=None, ge=0)

    @rule("available_from", "Available from must be before available to")
    def window_ordered(self, context: ValidationContext) -> bool:
        if self.available_from is None or self.available_to is None:
            return True
        return self.available_from < self.available_to

    @rule("passing_score", "Passing score cannot exceed max score")
    def passing_within_max(self, context: ValidationContext) -> bool:
        if self.passing_score is None or self.max_score is None:
            return True
        return self.passing_score <= self.max_score


class CreateQuizRequest(_QuizScoring):
    """Request to create a quiz."""

    class_id: UUID
    teacher_id: UUID
    branch_id: UUID
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    instructions: str | None = Field(default=None, max_length=10000)
    available_from: UtcDatetime
    available_to: UtcDatetime
    time_limit_minutes: int | None = Field(default=None, gt=0, le=480)
    submission_window_minutes: int = Field(default=5, ge=0, le=60)
    shuffle_questions: bool = False
    shuffle_options: bool = False
    show_correct_answers: bool = False
    show_score_immediately: bool = True
    allow_multiple_attempts: bool = False
    max_attempts: int = Field(default=1, ge=1, le=10)
    require_webcam: bool = False
    max_score: float = Field(..., gt=0, le=10000)
    clean_attempts_after: CleanupFrequency = CleanupFrequency.DAYS_90
    clean_questions_after: CleanupFrequency = CleanupFrequency.NEVER

    @rule("max_attempts", "Max attempts must be 1 when multiple attempts are not allowed")
    def single_attempt_unless_allowed(self, context: ValidationContext) -> bool:
        return self.allow_multiple_attempts or self.max_attempts == 1


class UpdateQuizRequest(_QuizScoring):
    """Partial update of a quiz."""

    not_null_fields: ClassVar[tuple[str, ...]] = (
        "title",
        "available_from",
        "available_to",
        "max_score",
        "submission_window_minutes",
        "shuffle_questions",
        "shuffle_options",
        "show_correct_answers",
        "show_score_immediately",
        "allow_multiple_attempts",
        "max_attempts",
        "require_webcam",
        "is_active",
        "clean_attempts_after",
        "clean_questions_after",
    )

    id: UUID
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    instructions: str | None = Field(default=None, max_length=10000)
    time_limit_minutes: int | None = Field(default=None, gt=0, le=480)
    submission_window_minutes: int | None = Field(default=None, ge=0, le=60)
    shuffle_questions: bool | None = None
    shuffle_options: bool | None = None
    show_correct_answers: bool | None = None
    show_score_immediately: bool | None = None
    allow_multiple_attempts: bool | None = None
    max_attempts: int | None = Field(default=None, ge=1, le=10)
    require_webcam: bool | None = None
    is_active: bool | None = None
    clean_attempts_after: CleanupFrequency | None = None
    clean_questions_after: CleanupFrequency | None = None


class CreateQuestionRequest(RequestModel):
    """A multiple-choice question added to a quiz."""

    quiz_id: UUID
    question_text: str = Field(..., min_length=1, max_length=2000)
    question_type: QuestionType = QuestionType.MCQ_SINGLE
    options: dict[str, str] = Field(..., min_length=2, max_length=10)
    correct_answers: list[str] = Field(..., min_length=1, max_length=10)
    points: float = Field(default=1, gt=0, le=1000)
    negative_points: float = Field(default=0, ge=0, le=1000)
    explanation: str | None = Field(default=None, max_length=2000)
    question_order: int = Field(..., ge=1)
    topic: str | None = Field(default=None, max_length=100)

    @rule("options", "Option keys must be 1-5 characters and texts 1-1000 characters")
    def options_well_formed(self, context: ValidationContext) -> bool:
        return all(
            1 <= len(key) <= 5 and 1 <= len(text) <= 1000
            for key, text in self.options.items()
        )

    @rule("correct_answers", "All correct answers must be valid option keys")
    def answers_are_options(self, context: ValidationContext) -> bool:
        return all(answer in self.options for answer in self.correct_answers)

    @rule("correct_answers", "Single choice question must have exactly one correct answer")
    def single_choice_has_one_answer(self, context: ValidationContext) -> bool:
        if self.question_type != QuestionType.MCQ_SINGLE:
            return True
        return len(self.correct_answers) == 1


class StartAttemptRequest(RequestModel):
    quiz_id: UUID
    student_id: UUID
    class_id: UUID


class QuestionResponseInput(BaseModel):
    question_id: UUID
    selected_answers: list[str] = Field(default_factory=list)
    time_spent_seconds: int | None = Field(default=None, ge=0)


class SubmitAttemptRequest(RequestModel):
    """Final answers for an in-progress attempt."""

    attempt_id: UUID
    responses: list[QuestionResponseInput] = Field(..., min_length=1)

    @rule("responses", "Selected answer keys must be at most 5 characters")
    def answer_keys_short(self, context: ValidationContext) -> bool:
        return all(
            len(answer) <= 5
            for response in self.responses
            for answer in response.selected_answers
        )


class AbandonAttemptRequest(RequestModel):
    attempt_id: UUID
    reason: str | None = Field(default=None, max_length=500)


class QuizFilters(RequestModel):
    class_id: UUID | None = None
    teacher_id: UUID | None = None
    branch_id: UUID | None = None
    is_active: bool | None = None
    search: str | None = Field(default=None, max_length=100)
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)


class AttemptFilters(RequestModel):
    quiz_id: UUID | None = None
    student_id: UUID | None = None
    class_id: UUID | None = None
    attempt_status: AttemptStatus | None = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)


# =============================================================================
# Responses
# =============================================================================


class QuizResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    class_id: UUID
    teacher_id: UUID
    branch_id: UUID
    title: str
    description: str | None = None
    instructions: str | None = None
    available_from: datetime
    available_to: datetime
    time_limit_minutes: int | None = None
    submission_window_minutes: int
    shuffle_questions: bool
    shuffle_options: bool
    show_correct_answers: bool
    show_score_immediately: bool
    allow_multiple_attempts: bool
    max_attempts: int
    require_webcam: bool
    max_score: float
    passing_score: float | None = None
    is_active: bool
    total_questions: int = 0
    clean_attempts_after: CleanupFrequency
    clean_questions_after: CleanupFrequency
    created_at: datetime | None = None


class QuestionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    quiz_id: UUID
    question_text: str
    question_type: QuestionType
    options: dict[str, str]
    correct_answers: list[str]
    points: float
    negative_points: float
    explanation: str | None = None
    question_order: int
    topic: str | None = None


class AttemptResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    quiz_id: UUID
    student_id: UUID
    class_id: UUID
    attempt_number: int
    attempt_status: AttemptStatus
    started_at: datetime
    submitted_at: datetime | None = None
    time_taken_seconds: int | None = None
    score: float | None = None
    max_score: float
    percentage: float | None = None
    passed: bool | None = None
    grading_status: GradingStatus
    auto_delete_after: datetime | None = None


class StudentQuestionView(BaseModel):
    """A question as shown during an attempt, without answers or explanation."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    question_text: str
    question_type: QuestionType
    options: dict[str, str]
    points: float
    negative_points: float
    question_order: int


class AttemptStart(BaseModel):
    """A started (or resumed) attempt and the questions to answer."""

    attempt: AttemptResponse
    questions: list[StudentQuestionView]
    resumed: bool = False


class AnswerResult(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    question_id: UUID
    selected_answers: list[str]
    is_correct: bool
    points_earned: float
    points_deducted: float


class AttemptResult(BaseModel):
    """A submitted attempt with its per-question outcome."""

    attempt: AttemptResponse
    answers: list[AnswerResult]
