# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Quiz service.

This module provides the QuizService class for:
- Quiz authoring and question management
- Starting, resuming, submitting and abandoning attempts
- Automatic scoring of submitted attempts
"""

from __future__ import annotations

import asyncio
import logging
import random
from datetime import timedelta
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.common import (
    STAFF_ROLES,
    Actor,
    AuthorizationError,
    BaseService,
    BusinessRuleError,
    NotFoundError,
    OperationResult,
    Role,
    ValidationFailedError,
    column_values,
)
from src.domains.quiz.scoring import (
    ATTEMPT_LIFECYCLE,
    calculate_response_points,
    check_can_attempt,
    completion_status,
    prepare_questions,
    total_score,
)
from src.infrastructure.database.models.base import new_id
from src.infrastructure.database.models.quiz import Quiz, QuizAttempt, QuizAttemptAnswer, QuizQuestion
from src.models.assignment import GradingStatus
from src.models.common import CleanupFrequency, FieldError, Page
from src.models.quiz import (
    AbandonAttemptRequest,
    AnswerResult,
    AttemptFilters,
    AttemptResponse,
    AttemptResult,
    AttemptStart,
    AttemptStatus,
    CreateQuestionRequest,
    CreateQuizRequest,
    QuestionResponse,
    QuizFilters,
    QuizResponse,
    StartAttemptRequest,
    SubmitAttemptRequest,
    UpdateQuizRequest,
)
from src.utils.datetime import Clock, ensure_utc

logger = logging.getLogger(__name__)

# Fields that change the meaning of attempts already taken.
FROZEN_AFTER_ATTEMPTS = ("max_score",)


class QuizService(BaseService):
    """Service for quizzes and quiz attempts.

    Attributes:
        db: Async database session.
        clock: Time source for availability and time limits.
        rng: Random source used when shuffling questions and options.
    """

    def __init__(
        self,
        db: AsyncSession,
        clock: Optional[Clock] = None,
        read_retry_attempts: int = 1,
        rng: Optional[random.Random] = None,
        session_lock: Optional[asyncio.Lock] = None,
    ) -> None:
        super().__init__(db, clock, read_retry_attempts, session_lock)
        self.rng = rng or random.Random()

    # =========================================================================
    # Quiz authoring
    # =========================================================================

    async def create_quiz(self, payload: Any, actor: Actor) -> OperationResult[QuizResponse]:
        return await self._run_write("create_quiz", lambda: self._create_quiz(payload, actor))

    async def update_quiz(self, payload: Any, actor: Actor) -> OperationResult[QuizResponse]:
        return await self._run_write("update_quiz", lambda: self._update_quiz(payload, actor))

    async def add_question(self, payload: Any, actor: Actor) -> OperationResult[QuestionResponse]:
        return await self._run_write("add_question", lambda: self._add_question(payload, actor))

    async def get_quiz(self, quiz_id: Any, actor: Actor) -> OperationResult[QuizResponse]:
        return await self._run_read("get_quiz", lambda: self._get_quiz_response(quiz_id, actor))

    async def list_quizzes(self, filters: Any, actor: Actor) -> OperationResult[Page[QuizResponse]]:
        return await self._run_read("list_quizzes", lambda: self._list_quizzes(filters, actor))

    async def _create_quiz(self, payload: Any, actor: Actor) -> QuizResponse:
        self._require_role(actor, STAFF_ROLES, "create quizzes")
        request = self._validate(CreateQuizRequest, payload)

        quiz = Quiz(id=new_id(), **column_values(request.model_dump()))
        quiz.is_active = True
        quiz.total_questions = 0

        self.db.add(quiz)
        await self.db.commit()
        await self.db.refresh(quiz)

        logger.info("Created quiz %s for class %s", quiz.id, quiz.class_id)
        return QuizResponse.model_validate(quiz)

    async def _update_quiz(self, payload: Any, actor: Actor) -> QuizResponse:
        self._require_role(actor, STAFF_ROLES, "edit quizzes")
        request = self._validate(UpdateQuizRequest, payload)
        quiz = await self._get_quiz(request.id)

        changes = {
            field: value
            for field, value in column_values(request.model_dump(exclude_unset=True, exclude={"id"})).items()
            if getattr(quiz, field) != value
        }
        frozen = sorted(set(changes) & set(FROZEN_AFTER_ATTEMPTS))
        if frozen and await self._count_attempts(quiz.id) > 0:
            raise BusinessRuleError(f"Cannot change {', '.join(frozen)} after students have attempted the quiz")

        self._check_merged_fields(quiz, changes)

        for field, value in changes.items():
            setattr(quiz, field, value)

        await self.db.commit()
        await self.db.refresh(quiz)

        logger.info("Updated quiz %s: %s", quiz.id, sorted(changes))
        return QuizResponse.model_validate(quiz)

    async def _add_question(self, payload: Any, actor: Actor) -> QuestionResponse:
        self._require_role(actor, STAFF_ROLES, "add questions")
        request = self._validate(CreateQuestionRequest, payload)
        quiz = await self._get_quiz(request.quiz_id)

        question = QuizQuestion(id=new_id(), **column_values(request.model_dump()))
        self.db.add(question)
        quiz.total_questions = (quiz.total_questions or 0) + 1

        await self.db.commit()
        await self.db.refresh(question)

        logger.info("Added question %s to quiz %s", question.id, quiz.id)
        return QuestionResponse.model_validate(question)

    async def _get_quiz_response(self, quiz_id: Any, actor: Actor) -> QuizResponse:
        quiz = await self._get_quiz(quiz_id)
        if actor.role == Role.STUDENT and not quiz.is_active:
            raise NotFoundError("Quiz", quiz_id)
        return QuizResponse.model_validate(quiz)

    async def _list_quizzes(self, filters: Any, actor: Actor) -> Page[QuizResponse]:
        request = self._validate(QuizFilters, filters or {})

        stmt = select(Quiz)
        if request.class_id:
            stmt = stmt.where(Quiz.class_id == str(request.class_id))
        if request.teacher_id:
            stmt = stmt.where(Quiz.teacher_id == str(request.teacher_id))
        if request.branch_id:
            stmt = stmt.where(Quiz.branch_id == str(request.branch_id))
        if request.is_active is not None:
            stmt = stmt.where(Quiz.is_active == request.is_active)
        if request.search:
            stmt = stmt.where(Quiz.title.ilike(f"%{request.search}%"))
        if actor.role == Role.STUDENT:
            stmt = stmt.where(Quiz.is_active.is_(True))

        count_result = await self.db.execute(select(func.count()).select_from(stmt.subquery()))
        total = count_result.scalar() or 0

        stmt = stmt.order_by(Quiz.available_from.desc())
        stmt = stmt.limit(request.limit).offset(self._offset(request.page, request.limit))
        result = await self.db.execute(stmt)

        return Page(
            items=[QuizResponse.model_validate(q) for q in result.scalars().all()],
            total=total,
            page=request.page,
            limit=request.limit,
        )

    # =========================================================================
    # Attempts
    # =========================================================================

    async def start_attempt(self, payload: Any, actor: Actor) -> OperationResult[AttemptStart]:
        """Start a new attempt, or resume the one in progress."""
        return await self._run_write("start_attempt", lambda: self._start_attempt(payload, actor))

    async def submit_attempt(self, payload: Any, actor: Actor) -> OperationResult[AttemptResult]:
        """Score and close an in-progress attempt."""
        return await self._run_write("submit_attempt", lambda: self._submit_attempt(payload, actor))

    async def abandon_attempt(self, payload: Any, actor: Actor) -> OperationResult[AttemptResponse]:
        return await self._run_write("abandon_attempt", lambda: self._abandon_attempt(payload, actor))

    async def list_attempts(self, filters: Any, actor: Actor) -> OperationResult[Page[AttemptResponse]]:
        return await self._run_read("list_attempts", lambda: self._list_attempts(filters, actor))

    async def _start_attempt(self, payload: Any, actor: Actor) -> AttemptStart:
        request = self._validate(StartAttemptRequest, payload)
        self._require_student(actor, request.student_id, "take quizzes")
        quiz = await self._get_quiz(request.quiz_id)

        result = await self.db.execute(
            select(QuizAttempt)
            .where(
                QuizAttempt.quiz_id == str(request.quiz_id),
                QuizAttempt.student_id == str(request.student_id),
            )
            .order_by(QuizAttempt.attempt_number.desc())
        )
        attempts = list(result.scalars().all())

        now = self.clock.now()
        attempt = check_can_attempt(quiz, attempts, now)
        resumed = attempt is not None
        if attempt is None:
            latest = attempts[0].attempt_number if attempts else 0
            attempt = QuizAttempt(
                id=new_id(),
                quiz_id=str(request.quiz_id),
                student_id=str(request.student_id),
                class_id=str(request.class_id),
                attempt_number=latest + 1,
                attempt_status=AttemptStatus.IN_PROGRESS.value,
                started_at=now,
                max_score=quiz.max_score,
                grading_status=GradingStatus.NOT_GRADED.value,
            )
            self.db.add(attempt)
            await self.db.commit()
            await self.db.refresh(attempt)
            logger.info(
                "Student %s started attempt %d of quiz %s",
                attempt.student_id,
                attempt.attempt_number,
                quiz.id,
            )

        questions = await self._get_questions(quiz.id)
        return AttemptStart(
            attempt=AttemptResponse.model_validate(attempt),
            questions=prepare_questions(questions, quiz.shuffle_questions, quiz.shuffle_options, self.rng),
            resumed=resumed,
        )

    async def _submit_attempt(self, payload: Any, actor: Actor) -> AttemptResult:
        request = self._validate(SubmitAttemptRequest, payload)
        attempt = await self._get_attempt(request.attempt_id)
        self._require_student(actor, attempt.student_id, "submit quiz attempts")
        quiz = await self._get_quiz(attempt.quiz_id)

        now = self.clock.now()
        status = ATTEMPT_LIFECYCLE.require(
            AttemptStatus(attempt.attempt_status),
            completion_status(quiz, attempt.started_at, now),
        )

        questions = {str(q.id): q for q in await self._get_questions(quiz.id)}
        answers: list[QuizAttemptAnswer] = []
        points = []
        for response in request.responses:
            question = questions.get(str(response.question_id))
            if question is None:
                continue
            result = calculate_response_points(
                response.selected_answers,
                question.correct_answers,
                question.question_type,
                question.points,
                question.negative_points,
            )
            points.append(result)
            answers.append(
                QuizAttemptAnswer(
                    id=new_id(),
                    attempt_id=str(attempt.id),
                    question_id=str(question.id),
                    selected_answers=list(response.selected_answers),
                    is_correct=result.is_correct,
                    points_earned=result.earned,
                    points_deducted=result.deducted,
                    time_spent_seconds=response.time_spent_seconds or 0,
                )
            )
        self.db.add_all(answers)

        score = total_score(points, quiz.max_score, quiz.passing_score)
        retention_days = CleanupFrequency(quiz.clean_attempts_after).days

        attempt.attempt_status = status.value
        attempt.submitted_at = now
        attempt.time_taken_seconds = int((now - ensure_utc(attempt.started_at)).total_seconds())
        attempt.score = score.score
        attempt.percentage = score.percentage
        attempt.passed = score.passed
        attempt.grading_status = GradingStatus.AUTO_GRADED.value
        attempt.auto_delete_after = (
            now + timedelta(days=retention_days) if retention_days is not None else None
        )

        await self.db.commit()
        await self.db.refresh(attempt)

        logger.info(
            "Attempt %s %s with score %s/%s",
            attempt.id,
            status.value.lower(),
            score.score,
            quiz.max_score,
        )
        return AttemptResult(
            attempt=AttemptResponse.model_validate(attempt),
            answers=[AnswerResult.model_validate(a) for a in answers],
        )

    async def _abandon_attempt(self, payload: Any, actor: Actor) -> AttemptResponse:
        request = self._validate(AbandonAttemptRequest, payload)
        attempt = await self._get_attempt(request.attempt_id)
        self._require_student(actor, attempt.student_id, "abandon quiz attempts")

        attempt.attempt_status = ATTEMPT_LIFECYCLE.require(
            AttemptStatus(attempt.attempt_status), AttemptStatus.ABANDONED
        ).value

        await self.db.commit()
        await self.db.refresh(attempt)

        logger.info("Attempt %s abandoned", attempt.id)
        return AttemptResponse.model_validate(attempt)

    async def _list_attempts(self, filters: Any, actor: Actor) -> Page[AttemptResponse]:
        request = self._validate(AttemptFilters, filters or {})
        if actor.role == Role.STUDENT:
            if request.student_id is not None and not actor.is_user(request.student_id):
                raise AuthorizationError("Students can only view attempts for themselves")
            request = request.model_copy(update={"student_id": actor.user_id})

        stmt = select(QuizAttempt)
        if request.quiz_id:
            stmt = stmt.where(QuizAttempt.quiz_id == str(request.quiz_id))
        if request.student_id:
            stmt = stmt.where(QuizAttempt.student_id == str(request.student_id))
        if request.class_id:
            stmt = stmt.where(QuizAttempt.class_id == str(request.class_id))
        if request.attempt_status:
            stmt = stmt.where(QuizAttempt.attempt_status == request.attempt_status.value)

        count_result = await self.db.execute(select(func.count()).select_from(stmt.subquery()))
        total = count_result.scalar() or 0

        stmt = stmt.order_by(QuizAttempt.started_at.desc())
        stmt = stmt.limit(request.limit).offset(self._offset(request.page, request.limit))
        result = await self.db.execute(stmt)

        return Page(
            items=[AttemptResponse.model_validate(a) for a in result.scalars().all()],
            total=total,
            page=request.page,
            limit=request.limit,
        )

    # =========================================================================
    # Lookups
    # =========================================================================

    @staticmethod
    def _check_merged_fields(quiz: Quiz, changes: dict[str, Any]) -> None:
        """Re-check cross-field rules against the stored values an update keeps."""
        merged = {
            name: changes.get(name, getattr(quiz, name))
            for name in (
                "available_from",
                "available_to",
                "max_score",
                "passing_score",
                "allow_multiple_attempts",
                "max_attempts",
            )
        }
        errors: list[FieldError] = []
        if ensure_utc(merged["available_from"]) >= ensure_utc(merged["available_to"]):
            errors.append(FieldError(field="available_from", message="Available from must be before available to"))
        if merged["passing_score"] is not None and merged["passing_score"] > merged["max_score"]:
            errors.append(FieldError(field="passing_score", message="Passing score cannot exceed max score"))
        if not merged["allow_multiple_attempts"] and merged["max_attempts"] != 1:
            errors.append(
                FieldError(
                    field="max_attempts",
                    message="Max attempts must be 1 when multiple attempts are not allowed",
                )
            )
        if errors:
            raise ValidationFailedError(errors)

    async def _get_quiz(self, quiz_id: Any) -> Quiz:
        result = await self.db.execute(select(Quiz).where(Quiz.id == str(quiz_id)))
        quiz = result.scalar_one_or_none()
        if not quiz:
            raise NotFoundError("Quiz", quiz_id)
        return quiz

    async def _get_attempt(self, attempt_id: Any) -> QuizAttempt:
        result = await self.db.execute(select(QuizAttempt).where(QuizAttempt.id == str(attempt_id)))
        attempt = result.scalar_one_or_none()
        if not attempt:
            raise NotFoundError("Attempt", attempt_id)
        return attempt

    async def _get_questions(self, quiz_id: Any) -> list[QuizQuestion]:
        result = await self.db.execute(
            select(QuizQuestion)
            .where(QuizQuestion.quiz_id == str(quiz_id))
            .order_by(QuizQuestion.question_order)
        )
        return list(result.scalars().all())

    async def _count_attempts(self, quiz_id: Any) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(QuizAttempt).where(QuizAttempt.quiz_id == str(quiz_id))
        )
        return result.scalar() or 0
