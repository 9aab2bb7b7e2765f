# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Branch and class enrollment tables."""

from datetime import date
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import CheckConstraint, Date, ForeignKey, Numeric, String, Text, UniqueConstraint
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, TimestampMixin, new_id, uuid_column


class BranchStudent(Base, TimestampMixin):
    """A student's enrollment in a branch, with contacts and fee summary."""

    __tablename__ = "branch_students"
    __table_args__ = (
        UniqueConstraint("student_id", "branch_id", name="uq_branch_student"),
        CheckConstraint("total_fees_paid <= total_fees_due", name="valid_fees"),
        CheckConstraint(
            "attendance_percentage >= 0 AND attendance_percentage <= 100",
            name="valid_branch_attendance",
        ),
        CheckConstraint(
            "expected_completion_date IS NULL OR expected_completion_date > enrollment_date",
            name="valid_branch_completion",
        ),
    )

    id: Mapped[str] = uuid_column(primary_key=True, default=new_id)
    student_id: Mapped[str] = uuid_column(nullable=False)
    branch_id: Mapped[str] = uuid_column(nullable=False)
    class_id: Mapped[Optional[str]] = uuid_column()

    enrollment_status: Mapped[str] = mapped_column(String(20), nullable=False, default="ENROLLED")
    payment_status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING")
    enrollment_date: Mapped[date] = mapped_column(Date, nullable=False)
    expected_completion_date: Mapped[Optional[date]] = mapped_column(Date)
    actual_completion_date: Mapped[Optional[date]] = mapped_column(Date)

    attendance_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=0)
    current_grade: Mapped[Optional[str]] = mapped_column(String(50))
    performance_notes: Mapped[Optional[str]] = mapped_column(Text)

    total_fees_due: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    total_fees_paid: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    last_payment_date: Mapped[Optional[date]] = mapped_column(Date)
    next_payment_due: Mapped[Optional[date]] = mapped_column(Date)

    emergency_contact_name: Mapped[Optional[str]] = mapped_column(String(200))
    emergency_contact_phone: Mapped[Optional[str]] = mapped_column(String(16))
    parent_guardian_name: Mapped[Optional[str]] = mapped_column(String(200))
    parent_guardian_phone: Mapped[Optional[str]] = mapped_column(String(16))

    preferred_batch: Mapped[Optional[str]] = mapped_column(String(100))
    special_requirements: Mapped[Optional[str]] = mapped_column(Text)
    student_notes: Mapped[Optional[str]] = mapped_column(Text)
    extra_data: Mapped[Optional[dict[str, Any]]] = mapped_column("metadata", postgresql.JSONB)


class ClassEnrollment(Base, TimestampMixin):
    """A student's seat in a class."""

    __tablename__ = "class_enrollments"
    __table_args__ = (
        UniqueConstraint("student_id", "class_id", name="uq_class_enrollment"),
        CheckConstraint(
            "attendance_percentage >= 0 AND attendance_percentage <= 100",
            name="valid_class_attendance",
        ),
    )

    id: Mapped[str] = uuid_column(primary_key=True, default=new_id)
    student_id: Mapped[str] = uuid_column(nullable=False)
    branch_id: Mapped[str] = uuid_column(nullable=False)
    class_id: Mapped[str] = uuid_column(nullable=False)
    branch_student_id: Mapped[Optional[str]] = uuid_column(
        ForeignKey("branch_students.id", ondelete="SET NULL")
    )

    enrollment_status: Mapped[str] = mapped_column(String(20), nullable=False, default="ENROLLED")
    enrollment_date: Mapped[date] = mapped_column(Date, nullable=False)
    expected_completion_date: Mapped[Optional[date]] = mapped_column(Date)
    actual_completion_date: Mapped[Optional[date]] = mapped_column(Date)

    attendance_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=0)
    current_grade: Mapped[Optional[str]] = mapped_column(String(50))
    performance_notes: Mapped[Optional[str]] = mapped_column(Text)

    preferred_batch: Mapped[Optional[str]] = mapped_column(String(100))
    special_requirements: Mapped[Optional[str]] = mapped_column(Text)
    extra_data: Mapped[Optional[dict[str, Any]]] = mapped_column("metadata", postgresql.JSONB)
