# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Assignment and submission tables."""

from datetime import datetime
from typing import Any, Optional

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
)
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, TimestampMixin, new_id, uuid_column


class Assignment(Base, TimestampMixin):
    """Teacher-authored assignment for a class."""

    __tablename__ = "assignments"
    __table_args__ = (
        CheckConstraint(
            "(publish_at IS NULL OR publish_at <= due_date) "
            "AND (close_date IS NULL OR due_date <= close_date)",
            name="valid_dates",
        ),
        CheckConstraint("max_score > 0", name="valid_max_score"),
        CheckConstraint(
            "late_penalty_percentage >= 0 AND late_penalty_percentage <= 100",
            name="valid_late_penalty",
        ),
        CheckConstraint("max_file_size > 0", name="valid_file_size"),
        Index("ix_assignments_class_status", "class_id", "status"),
    )

    id: Mapped[str] = uuid_column(primary_key=True, default=new_id)
    class_id: Mapped[str] = uuid_column(nullable=False)
    teacher_id: Mapped[str] = uuid_column(nullable=False)
    branch_id: Mapped[str] = uuid_column(nullable=False)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    instructions: Mapped[Optional[str]] = mapped_column(Text)

    submission_type: Mapped[str] = mapped_column(String(10), nullable=False, default="FILE")
    max_file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    allowed_extensions: Mapped[Optional[list[str]]] = mapped_column(postgresql.ARRAY(String(10)))
    max_submissions: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    allow_late_submission: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    late_penalty_percentage: Mapped[float] = mapped_column(Float, nullable=False, default=0)

    max_score: Mapped[float] = mapped_column(Float, nullable=False)
    grading_rubric: Mapped[Optional[list[dict[str, Any]]]] = mapped_column(postgresql.JSONB)
    show_rubric_to_students: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    publish_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    due_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    close_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="DRAFT")
    is_visible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    closed_reason: Mapped[Optional[str]] = mapped_column(String(500))

    clean_submissions_after: Mapped[str] = mapped_column(String(20), nullable=False)
    clean_instructions_after: Mapped[str] = mapped_column(String(20), nullable=False)

    total_submissions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    graded_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    average_score: Mapped[Optional[float]] = mapped_column(Float)


class AssignmentSubmission(Base, TimestampMixin):
    """One attempt (draft or final) by a student."""

    __tablename__ = "assignment_submissions"
    __table_args__ = (
        CheckConstraint(
            "NOT (submission_text IS NOT NULL AND submission_file_id IS NOT NULL)",
            name="text_or_file",
        ),
        CheckConstraint("attempt_number >= 1", name="valid_attempt_number"),
        Index("ix_submissions_assignment_student", "assignment_id", "student_id"),
    )

    id: Mapped[str] = uuid_column(primary_key=True, default=new_id)
    assignment_id: Mapped[str] = uuid_column(
        ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False
    )
    student_id: Mapped[str] = uuid_column(nullable=False)
    class_id: Mapped[str] = uuid_column(nullable=False)

    submission_text: Mapped[Optional[str]] = mapped_column(Text)
    submission_file_id: Mapped[Optional[str]] = uuid_column()
    is_final: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    attempt_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    submitted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    is_late: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    late_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    grading_status: Mapped[str] = mapped_column(String(20), nullable=False, default="NOT_GRADED")
    score: Mapped[Optional[float]] = mapped_column(Float)
    adjusted_score: Mapped[Optional[float]] = mapped_column(Float)
    late_penalty_applied: Mapped[Optional[float]] = mapped_column(Float)
    feedback: Mapped[Optional[str]] = mapped_column(Text)
    private_notes: Mapped[Optional[str]] = mapped_column(Text)
    graded_by: Mapped[Optional[str]] = uuid_column()
    graded_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    rubric_scores: Mapped[Optional[list[dict[str, Any]]]] = mapped_column(postgresql.JSONB)

    regrade_requested: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    regrade_reason: Mapped[Optional[str]] = mapped_column(Text)

    auto_delete_after: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
