# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for quiz eligibility, timing and scoring."""

import random
from datetime import timedelta
from types import SimpleNamespace
from uuid import uuid4

import pytest

from src.domains.common import BusinessRuleError
from src.domains.quiz.scoring import (
    ResponsePoints,
    attempt_deadline,
    calculate_response_points,
    check_can_attempt,
    completion_status,
    determine_student_quiz_status,
    prepare_questions,
    remaining_attempts,
    remaining_seconds,
    total_score,
)
from src.models.quiz import AttemptStatus, QuestionType, StudentQuizStatus
from tests.conftest import NOW


def quiz(**overrides) -> SimpleNamespace:
    values = {
        "is_active": True,
        "available_from": NOW - timedelta(days=1),
        "available_to": NOW + timedelta(days=1),
        "max_attempts": 1,
        "time_limit_minutes": 30,
        "submission_window_minutes": 5,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def attempt(status: AttemptStatus, passed=None) -> SimpleNamespace:
    return SimpleNamespace(attempt_status=status.value, passed=passed)


class TestResponsePoints:
    """Tests for per-question scoring."""

    def test_single_choice_correct(self):
        result = calculate_response_points(["b"], ["b"], QuestionType.MCQ_SINGLE, 2, 0.5)

        assert result == ResponsePoints(earned=2, deducted=0, is_correct=True)

    def test_single_choice_with_two_selections_is_wrong(self):
        result = calculate_response_points(["a", "b"], ["b"], QuestionType.MCQ_SINGLE, 2, 0.5)

        assert result.is_correct is False
        assert result.deducted == 0.5

    def test_multi_choice_needs_exact_set(self):
        exact = calculate_response_points(["c", "a"], ["a", "c"], QuestionType.MCQ_MULTI, 3, 1)
        partial = calculate_response_points(["a"], ["a", "c"], QuestionType.MCQ_MULTI, 3, 1)

        assert exact.earned == 3
        assert partial.earned == 0
        assert partial.deducted == 1

    def test_empty_answer_is_not_penalised(self):
        result = calculate_response_points([], ["a"], "MCQ_SINGLE", 2, 1)

        assert result == ResponsePoints(earned=0, deducted=0, is_correct=False)


class TestTotalScore:
    """Tests for attempt totals."""

    def test_score_and_percentage(self):
        results = [ResponsePoints(2, 0, True), ResponsePoints(0, 0.5, False), ResponsePoints(2, 0, True)]

        score = total_score(results, max_score=5, passing_score=3)

        assert score.score == 3.5
        assert score.percentage == 70
        assert score.passed is True

    def test_negative_total_clamped_to_zero(self):
        score = total_score([ResponsePoints(0, 2, False)], max_score=10, passing_score=None)

        assert score.score == 0
        assert score.passed is None

    def test_total_clamped_to_max_score(self):
        score = total_score([ResponsePoints(8, 0, True), ResponsePoints(8, 0, True)], max_score=10, passing_score=5)

        assert score.score == 10
        assert score.percentage == 100


class TestCheckCanAttempt:
    """Tests for attempt eligibility."""

    def test_first_attempt_allowed(self):
        assert check_can_attempt(quiz(), [], NOW) is None

    def test_in_progress_attempt_is_resumed(self):
        current = attempt(AttemptStatus.IN_PROGRESS)

        assert check_can_attempt(quiz(), [current], NOW) is current

    def test_inactive_quiz_refused(self):
        with pytest.raises(BusinessRuleError, match="Quiz is not active"):
            check_can_attempt(quiz(is_active=False), [], NOW)

    def test_outside_window_refused(self):
        with pytest.raises(BusinessRuleError, match="not started yet"):
            check_can_attempt(quiz(available_from=NOW + timedelta(minutes=1)), [], NOW)
        with pytest.raises(BusinessRuleError, match="Quiz has ended"):
            check_can_attempt(quiz(available_to=NOW - timedelta(minutes=1)), [], NOW)

    def test_abandoned_attempts_do_not_count(self):
        attempts = [attempt(AttemptStatus.ABANDONED), attempt(AttemptStatus.ABANDONED)]

        assert check_can_attempt(quiz(), attempts, NOW) is None
        assert remaining_attempts(1, attempts) == 1

    def test_timed_out_attempts_count(self):
        with pytest.raises(BusinessRuleError, match="Maximum attempts reached"):
            check_can_attempt(quiz(), [attempt(AttemptStatus.TIMEOUT)], NOW)


class TestTiming:
    """Tests for time limits and the submission window."""

    def test_deadline_includes_submission_window(self):
        assert attempt_deadline(NOW, 30, 5) == NOW + timedelta(minutes=35)

    def test_no_deadline_without_time_limit(self):
        assert attempt_deadline(NOW, None, 5) is None
        assert remaining_seconds(NOW, None, 5, NOW) is None

    def test_remaining_seconds_never_negative(self):
        assert remaining_seconds(NOW, 30, 5, NOW + timedelta(minutes=10)) == 25 * 60
        assert remaining_seconds(NOW, 30, 5, NOW + timedelta(hours=1)) == 0

    def test_submission_inside_window_completes(self):
        assert completion_status(quiz(), NOW, NOW + timedelta(minutes=34)) == AttemptStatus.COMPLETED

    def test_submission_after_window_times_out(self):
        assert completion_status(quiz(), NOW, NOW + timedelta(minutes=36)) == AttemptStatus.TIMEOUT

    @pytest.mark.parametrize(
        "latest,expected",
        [
            (None, StudentQuizStatus.NOT_STARTED),
            (attempt(AttemptStatus.IN_PROGRESS), StudentQuizStatus.IN_PROGRESS),
            (attempt(AttemptStatus.TIMEOUT), StudentQuizStatus.TIMED_OUT),
            (attempt(AttemptStatus.COMPLETED, passed=True), StudentQuizStatus.PASSED),
            (attempt(AttemptStatus.COMPLETED, passed=False), StudentQuizStatus.FAILED),
            (attempt(AttemptStatus.COMPLETED), StudentQuizStatus.COMPLETED),
        ],
    )
    def test_student_quiz_status(self, latest, expected):
        assert determine_student_quiz_status(latest) == expected


class TestPrepareQuestions:
    """Tests for the student view of questions."""

    def questions(self):
        return [
            SimpleNamespace(
                id=uuid4(),
                question_text=f"Question {order}",
                question_type="MCQ_SINGLE",
                options={"a": "One", "b": "Two", "c": "Three"},
                correct_answers=["a"],
                points=1.0,
                negative_points=0.0,
                explanation="Because",
                question_order=order,
            )
            for order in (3, 1, 2)
        ]

    def test_ordered_without_answers(self):
        views = prepare_questions(self.questions(), shuffle_questions=False, shuffle_options=False)

        assert [v.question_order for v in views] == [1, 2, 3]
        assert "correct_answers" not in views[0].model_dump()
        assert "explanation" not in views[0].model_dump()

    def test_shuffled_options_keep_their_keys(self):
        views = prepare_questions(
            self.questions(),
            shuffle_questions=True,
            shuffle_options=True,
            rng=random.Random(7),
        )

        assert sorted(v.question_order for v in views) == [1, 2, 3]
        for view in views:
            assert view.options == {"a": "One", "b": "Two", "c": "Three"}
