# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Quiz, question, attempt and response tables."""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, TimestampMixin, new_id, uuid_column


class Quiz(Base, TimestampMixin):
    """Timed multiple-choice quiz for a class."""

    __tablename__ = "quizzes"
    __table_args__ = (
        CheckConstraint("available_from < available_to", name="valid_window"),
        CheckConstraint("max_score > 0", name="valid_quiz_max_score"),
        CheckConstraint(
            "passing_score IS NULL OR passing_score <= max_score",
            name="valid_passing_score",
        ),
    )

    id: Mapped[str] = uuid_column(primary_key=True, default=new_id)
    class_id: Mapped[str] = uuid_column(nullable=False)
    teacher_id: Mapped[str] = uuid_column(nullable=False)
    branch_id: Mapped[str] = uuid_column(nullable=False)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    instructions: Mapped[Optional[str]] = mapped_column(Text)

    available_from: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    available_to: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    time_limit_minutes: Mapped[Optional[int]] = mapped_column(Integer)
    submission_window_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=5)

    shuffle_questions: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    shuffle_options: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    show_correct_answers: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    show_score_immediately: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    allow_multiple_attempts: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    max_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    require_webcam: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    max_score: Mapped[float] = mapped_column(Float, nullable=False)
    passing_score: Mapped[Optional[float]] = mapped_column(Float)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    total_questions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    clean_attempts_after: Mapped[str] = mapped_column(String(20), nullable=False)
    clean_questions_after: Mapped[str] = mapped_column(String(20), nullable=False)


class QuizQuestion(Base, TimestampMixin):
    __tablename__ = "quiz_questions"
    __table_args__ = (Index("ix_quiz_questions_quiz_id", "quiz_id"),)

    id: Mapped[str] = uuid_column(primary_key=True, default=new_id)
    quiz_id: Mapped[str] = uuid_column(ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False)
    question_text: Mapped[str] = mapped_column(Text, nullable=False)
    question_type: Mapped[str] = mapped_column(String(20), nullable=False)
    options: Mapped[dict[str, str]] = mapped_column(postgresql.JSONB, nullable=False)
    correct_answers: Mapped[list[str]] = mapped_column(postgresql.ARRAY(String(5)), nullable=False)
    points: Mapped[float] = mapped_column(Float, nullable=False, default=1)
    negative_points: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    explanation: Mapped[Optional[str]] = mapped_column(Text)
    question_order: Mapped[int] = mapped_column(Integer, nullable=False)
    topic: Mapped[Optional[str]] = mapped_column(String(100))


class QuizAttempt(Base, TimestampMixin):
    __tablename__ = "quiz_attempts"
    __table_args__ = (
        UniqueConstraint("quiz_id", "student_id", "attempt_number", name="uq_quiz_attempt"),
    )

    id: Mapped[str] = uuid_column(primary_key=True, default=new_id)
    quiz_id: Mapped[str] = uuid_column(ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False)
    student_id: Mapped[str] = uuid_column(nullable=False)
    class_id: Mapped[str] = uuid_column(nullable=False)
    attempt_number: Mapped[int] = mapped_column(Integer, nullable=False)
    attempt_status: Mapped[str] = mapped_column(String(20), nullable=False, default="IN_PROGRESS")
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    submitted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    time_taken_seconds: Mapped[Optional[int]] = mapped_column(Integer)
    score: Mapped[Optional[float]] = mapped_column(Float)
    max_score: Mapped[float] = mapped_column(Float, nullable=False)
    percentage: Mapped[Optional[float]] = mapped_column(Float)
    passed: Mapped[Optional[bool]] = mapped_column(Boolean)
    grading_status: Mapped[str] = mapped_column(String(20), nullable=False, default="NOT_GRADED")
    auto_delete_after: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


class QuizAttemptAnswer(Base, TimestampMixin):
    """A student's answer to one question within an attempt."""

    __tablename__ = "quiz_responses"
    __table_args__ = (
        UniqueConstraint("attempt_id", "question_id", name="uq_attempt_question"),
    )

    id: Mapped[str] = uuid_column(primary_key=True, default=new_id)
    attempt_id: Mapped[str] = uuid_column(
        ForeignKey("quiz_attempts.id", ondelete="CASCADE"), nullable=False
    )
    question_id: Mapped[str] = uuid_column(
        ForeignKey("quiz_questions.id", ondelete="CASCADE"), nullable=False
    )
    selected_answers: Mapped[list[str]] = mapped_column(postgresql.ARRAY(String(5)), nullable=False)
    is_correct: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    points_earned: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    points_deducted: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    time_spent_seconds: Mapped[Optional[int]] = mapped_column(Integer)
