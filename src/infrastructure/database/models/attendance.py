# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student attendance table."""

from datetime import date
from typing import Optional

from sqlalchemy import CheckConstraint, Date, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, TimestampMixin, new_id, uuid_column


class StudentAttendance(Base, TimestampMixin):
    """Attendance of one student in one class on one date."""

    __tablename__ = "student_attendance"
    __table_args__ = (
        UniqueConstraint("student_id", "class_id", "attendance_date", name="uq_daily_attendance"),
        CheckConstraint(
            "check_in_time IS NULL OR check_out_time IS NULL OR check_in_time <= check_out_time",
            name="valid_check_times",
        ),
        CheckConstraint(
            "attendance_status <> 'EXCUSED' OR excuse_reason IS NOT NULL",
            name="excused_has_reason",
        ),
    )

    id: Mapped[str] = uuid_column(primary_key=True, default=new_id)
    student_id: Mapped[str] = uuid_column(nullable=False)
    class_id: Mapped[str] = uuid_column(nullable=False)
    teacher_id: Mapped[str] = uuid_column(nullable=False)
    branch_id: Mapped[str] = uuid_column(nullable=False)

    attendance_date: Mapped[date] = mapped_column(Date, nullable=False)
    attendance_status: Mapped[str] = mapped_column(String(10), nullable=False)
    check_in_time: Mapped[Optional[str]] = mapped_column(String(5))
    check_out_time: Mapped[Optional[str]] = mapped_column(String(5))
    late_by_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    early_leave_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    teacher_remarks: Mapped[Optional[str]] = mapped_column(String(500))
    excuse_reason: Mapped[Optional[str]] = mapped_column(String(500))
