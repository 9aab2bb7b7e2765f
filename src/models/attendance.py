# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Attendance request/response models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import ClassVar, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.models.common import ClockTime, FieldError, RequestModel, ValidationContext, rule


class AttendanceStatus(str, Enum):
    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    LATE = "LATE"
    EXCUSED = "EXCUSED"
    HOLIDAY = "HOLIDAY"


# Statuses that count as attending the class.
PRESENT_STATUSES = frozenset({AttendanceStatus.PRESENT, AttendanceStatus.LATE})


class _AttendanceDetails(RequestModel):
    attendance_status: AttendanceStatus | None = None
    check_in_time: ClockTime | None = None
    check_out_time: ClockTime | None = None
    teacher_remarks: str | None = Field(default=None, max_length=500)
    excuse_reason: str | None = Field(default=None, max_length=500)

    @rule("check_out_time", "Check-in time must be before or equal to check-out time")
    def check_in_before_out(self, context: ValidationContext) -> bool:
        if self.check_in_time is None or self.check_out_time is None:
            return True
        # Zero-padded HH:MM strings order the same way as the times.
        return self.check_in_time <= self.check_out_time

    @rule("excuse_reason", "Excuse reason is required for excused absences")
    def excused_has_reason(self, context: ValidationContext) -> bool:
        if self.attendance_status != AttendanceStatus.EXCUSED:
            return True
        return bool(self.excuse_reason and self.excuse_reason.strip())


class MarkAttendanceRequest(_AttendanceDetails):
    """Attendance for one student on one date."""

    student_id: UUID
    class_id: UUID
    teacher_id: UUID
    branch_id: UUID
    attendance_date: date
    attendance_status: AttendanceStatus
    late_by_minutes: int = Field(default=0, ge=0)
    early_leave_minutes: int = Field(default=0, ge=0)


class BulkAttendanceRecord(_AttendanceDetails):
    student_id: UUID
    attendance_status: AttendanceStatus
    late_by_minutes: int = Field(default=0, ge=0)


class BulkMarkAttendanceRequest(RequestModel):
    """Attendance for a whole class on one date."""

    class_id: UUID
    teacher_id: UUID
    branch_id: UUID
    attendance_date: date
    attendance_records: list[BulkAttendanceRecord] = Field(..., min_length=1)

    def expand(self) -> list[MarkAttendanceRequest]:
        """One MarkAttendanceRequest per record."""
        return [
            MarkAttendanceRequest(
                class_id=self.class_id,
                teacher_id=self.teacher_id,
                branch_id=self.branch_id,
                attendance_date=self.attendance_date,
                **record.model_dump(),
            )
            for record in self.attendance_records
        ]

    def check_rules(self, context: ValidationContext) -> list[FieldError]:
        errors = super().check_rules(context)
        for index, record in enumerate(self.attendance_records):
            errors.extend(
                FieldError(field=f"attendance_records.{index}.{error.field}", message=error.message)
                for error in record.check_rules(context)
            )
        return errors


class UpdateAttendanceRequest(_AttendanceDetails):
    not_null_fields: ClassVar[tuple[str, ...]] = (
        "attendance_status",
        "late_by_minutes",
        "early_leave_minutes",
    )

    id: UUID
    late_by_minutes: int | None = Field(default=None, ge=0)
    early_leave_minutes: int | None = Field(default=None, ge=0)


class AttendanceFilters(RequestModel):
    student_id: UUID | None = None
    class_id: UUID | None = None
    teacher_id: UUID | None = None
    branch_id: UUID | None = None
    attendance_status: AttendanceStatus | None = None
    date_from: date | None = None
    date_to: date | None = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)
    sort_order: Literal["asc", "desc"] = "desc"

    @rule("date_to", "From date must be before or equal to To date")
    def range_ordered(self, context: ValidationContext) -> bool:
        if self.date_from is None or self.date_to is None:
            return True
        return self.date_from <= self.date_to


# =============================================================================
# Responses
# =============================================================================


class AttendanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    student_id: UUID
    class_id: UUID
    teacher_id: UUID
    branch_id: UUID
    attendance_date: date
    attendance_status: AttendanceStatus
    check_in_time: str | None = None
    check_out_time: str | None = None
    late_by_minutes: int
    early_leave_minutes: int
    teacher_remarks: str | None = None
    excuse_reason: str | None = None
    created_at: datetime | None = None


class AttendanceSummary(BaseModel):
    """Attendance totals for one student over a period."""

    student_id: UUID
    class_id: UUID | None = None
    total_days: int
    present_days: int
    absent_days: int
    late_days: int
    excused_days: int
    holiday_days: int
    attendance_percentage: Decimal
    average_late_minutes: Decimal
