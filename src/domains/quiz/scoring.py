# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Quiz attempt rules: eligibility, timing and auto-scoring.

Scoring is all-or-nothing per question. A single-choice question is
correct when exactly one option is selected and it is a correct one; a
multiple-choice question is correct when the selected set equals the set
of correct answers. A wrong (non-empty) answer deducts the question's
negative points; an empty answer scores zero either way. The attempt
total is clamped to [0, max_score].
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional, Sequence

from src.domains.common import BusinessRuleError, StateMachine
from src.models.quiz import AttemptStatus, QuestionType, StudentQuestionView, StudentQuizStatus
from src.utils.datetime import ensure_utc

ATTEMPT_LIFECYCLE: StateMachine[AttemptStatus] = StateMachine(
    "quiz attempt",
    {
        AttemptStatus.IN_PROGRESS: {
            AttemptStatus.COMPLETED,
            AttemptStatus.TIMEOUT,
            AttemptStatus.ABANDONED,
        },
        AttemptStatus.COMPLETED: set(),
        AttemptStatus.TIMEOUT: set(),
        AttemptStatus.ABANDONED: set(),
    },
)

# Attempts that count against max_attempts.
USED_ATTEMPT_STATUSES = frozenset({AttemptStatus.COMPLETED, AttemptStatus.TIMEOUT})


@dataclass(frozen=True)
class ResponsePoints:
    earned: float
    deducted: float
    is_correct: bool


@dataclass(frozen=True)
class AttemptScore:
    """Totals for a scored attempt."""

    score: float
    percentage: float
    passed: Optional[bool]


def calculate_response_points(
    selected: Sequence[str],
    correct: Sequence[str],
    question_type: QuestionType,
    points: float,
    negative_points: float,
) -> ResponsePoints:
    """Score one answer."""
    if not selected:
        return ResponsePoints(earned=0, deducted=0, is_correct=False)

    if QuestionType(question_type) == QuestionType.MCQ_SINGLE:
        is_correct = len(selected) == 1 and selected[0] in correct
    else:
        is_correct = set(selected) == set(correct)

    if is_correct:
        return ResponsePoints(earned=points, deducted=0, is_correct=True)
    return ResponsePoints(earned=0, deducted=negative_points, is_correct=False)


def total_score(
    results: Iterable[ResponsePoints],
    max_score: float,
    passing_score: Optional[float],
) -> AttemptScore:
    """Combine per-answer points into the attempt score."""
    raw = sum(r.earned - r.deducted for r in results)
    score = round(min(max(raw, 0.0), max_score), 2)
    percentage = round(score / max_score * 100, 2) if max_score > 0 else 0.0
    passed = None if passing_score is None else score >= passing_score
    return AttemptScore(score=score, percentage=percentage, passed=passed)


# =============================================================================
# Eligibility and timing
# =============================================================================


def used_attempts(attempts: Iterable[Any]) -> int:
    return sum(1 for a in attempts if AttemptStatus(a.attempt_status) in USED_ATTEMPT_STATUSES)


def remaining_attempts(max_attempts: int, attempts: Iterable[Any]) -> int:
    return max(0, max_attempts - used_attempts(attempts))


def check_can_attempt(quiz: Any, attempts: Sequence[Any], now: datetime) -> Optional[Any]:
    """Decide whether a student may start the quiz.

    Returns:
        The in-progress attempt to resume, or None when a new attempt may
        be started.

    Raises:
        BusinessRuleError: With the reason the attempt is refused.
    """
    if not quiz.is_active:
        raise BusinessRuleError("Quiz is not active")
    if now < ensure_utc(quiz.available_from):
        raise BusinessRuleError("Quiz has not started yet")
    if now > ensure_utc(quiz.available_to):
        raise BusinessRuleError("Quiz has ended")

    for attempt in attempts:
        if AttemptStatus(attempt.attempt_status) == AttemptStatus.IN_PROGRESS:
            return attempt

    if used_attempts(attempts) >= quiz.max_attempts:
        raise BusinessRuleError("Maximum attempts reached")
    return None


def attempt_deadline(
    started_at: datetime,
    time_limit_minutes: Optional[int],
    submission_window_minutes: int,
) -> Optional[datetime]:
    """Last instant a submission counts as on time, None without a limit."""
    if time_limit_minutes is None:
        return None
    return ensure_utc(started_at) + timedelta(minutes=time_limit_minutes + submission_window_minutes)


def remaining_seconds(
    started_at: datetime,
    time_limit_minutes: Optional[int],
    submission_window_minutes: int,
    now: datetime,
) -> Optional[int]:
    """Seconds left in an attempt (never negative), None without a limit."""
    deadline = attempt_deadline(started_at, time_limit_minutes, submission_window_minutes)
    if deadline is None:
        return None
    return max(0, int((deadline - now).total_seconds()))


def completion_status(quiz: Any, started_at: datetime, now: datetime) -> AttemptStatus:
    """COMPLETED, or TIMEOUT when submitted after limit plus window."""
    deadline = attempt_deadline(started_at, quiz.time_limit_minutes, quiz.submission_window_minutes)
    if deadline is not None and now > deadline:
        return AttemptStatus.TIMEOUT
    return AttemptStatus.COMPLETED


def determine_student_quiz_status(attempt: Optional[Any]) -> StudentQuizStatus:
    """Student-facing status given the latest attempt."""
    if attempt is None:
        return StudentQuizStatus.NOT_STARTED
    status = AttemptStatus(attempt.attempt_status)
    if status == AttemptStatus.IN_PROGRESS:
        return StudentQuizStatus.IN_PROGRESS
    if status == AttemptStatus.TIMEOUT:
        return StudentQuizStatus.TIMED_OUT
    if status == AttemptStatus.ABANDONED:
        return StudentQuizStatus.NOT_STARTED
    if attempt.passed is True:
        return StudentQuizStatus.PASSED
    if attempt.passed is False:
        return StudentQuizStatus.FAILED
    return StudentQuizStatus.COMPLETED


# =============================================================================
# Question presentation
# =============================================================================


def prepare_questions(
    questions: Sequence[Any],
    shuffle_questions: bool,
    shuffle_options: bool,
    rng: Optional[random.Random] = None,
) -> list[StudentQuestionView]:
    """Order (or shuffle) questions and strip answers for students.

    Shuffled options keep their keys, so stored correct answers still
    match what the student selects.
    """
    rng = rng or random.Random()
    ordered = sorted(questions, key=lambda q: q.question_order)
    if shuffle_questions:
        rng.shuffle(ordered)

    views = []
    for question in ordered:
        view = StudentQuestionView.model_validate(question)
        if shuffle_options:
            items = list(view.options.items())
            rng.shuffle(items)
            view = view.model_copy(update={"options": dict(items)})
        views.append(view)
    return views
