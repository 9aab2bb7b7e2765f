# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Attendance service.

This module provides the AttendanceService class for:
- Marking attendance for one student or a whole class
- Correcting recorded attendance
- Attendance lists and per-student summaries

Every write recomputes the student's attendance percentage and stores it
on the matching class enrollment.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.attendance.summary import attendance_percentage, summarize
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
from src.infrastructure.database.models.attendance import StudentAttendance
from src.infrastructure.database.models.base import new_id
from src.infrastructure.database.models.enrollment import ClassEnrollment
from src.models.attendance import (
    AttendanceFilters,
    AttendanceResponse,
    AttendanceStatus,
    AttendanceSummary,
    BulkMarkAttendanceRequest,
    MarkAttendanceRequest,
    UpdateAttendanceRequest,
)
from src.models.common import FieldError, Page
from src.utils.datetime import Clock

logger = logging.getLogger(__name__)


class AttendanceService(BaseService):
    """Service for student attendance.

    Attributes:
        db: Async database session.
        clock: Time source; attendance cannot be marked for future dates.
    """

    def __init__(
        self,
        db: AsyncSession,
        clock: Optional[Clock] = None,
        read_retry_attempts: int = 1,
        session_lock: Optional[asyncio.Lock] = None,
    ) -> None:
        super().__init__(db, clock, read_retry_attempts, session_lock)

    async def mark_attendance(self, payload: Any, actor: Actor) -> OperationResult[AttendanceResponse]:
        """Record attendance, replacing any record for the same student, class and date."""
        return await self._run_write("mark_attendance", lambda: self._mark_attendance(payload, actor))

    async def bulk_mark(self, payload: Any, actor: Actor) -> OperationResult[list[AttendanceResponse]]:
        """Record attendance for several students of a class on one date."""
        return await self._run_write("bulk_mark_attendance", lambda: self._bulk_mark(payload, actor))

    async def update_attendance(self, payload: Any, actor: Actor) -> OperationResult[AttendanceResponse]:
        return await self._run_write("update_attendance", lambda: self._update_attendance(payload, actor))

    async def list_attendance(self, filters: Any, actor: Actor) -> OperationResult[Page[AttendanceResponse]]:
        return await self._run_read("list_attendance", lambda: self._list_attendance(filters, actor))

    async def get_student_summary(
        self,
        student_id: Any,
        actor: Actor,
        class_id: Optional[Any] = None,
    ) -> OperationResult[AttendanceSummary]:
        return await self._run_read(
            "get_attendance_summary",
            lambda: self._get_student_summary(student_id, actor, class_id),
        )

    # =========================================================================
    # Writes
    # =========================================================================

    async def _mark_attendance(self, payload: Any, actor: Actor) -> AttendanceResponse:
        self._require_role(actor, STAFF_ROLES, "mark attendance")
        request = self._validate(MarkAttendanceRequest, payload)

        record = await self._upsert(request)
        await self._sync_enrollment(record.student_id, record.class_id)
        await self.db.commit()
        await self.db.refresh(record)

        logger.info(
            "Marked %s for student %s in class %s on %s",
            record.attendance_status,
            record.student_id,
            record.class_id,
            record.attendance_date,
        )
        return AttendanceResponse.model_validate(record)

    async def _bulk_mark(self, payload: Any, actor: Actor) -> list[AttendanceResponse]:
        self._require_role(actor, STAFF_ROLES, "mark attendance")
        request = self._validate(BulkMarkAttendanceRequest, payload)

        student_ids = [str(r.student_id) for r in request.attendance_records]
        duplicates = sorted({s for s in student_ids if student_ids.count(s) > 1})
        if duplicates:
            raise ValidationFailedError(
                [FieldError(field="attendance_records", message=f"Duplicate student: {s}") for s in duplicates]
            )

        records = [await self._upsert(item) for item in request.expand()]
        for record in records:
            await self._sync_enrollment(record.student_id, record.class_id)
        await self.db.commit()
        for record in records:
            await self.db.refresh(record)

        logger.info(
            "Marked attendance for %d students in class %s on %s",
            len(records),
            request.class_id,
            request.attendance_date,
        )
        return [AttendanceResponse.model_validate(r) for r in records]

    async def _update_attendance(self, payload: Any, actor: Actor) -> AttendanceResponse:
        self._require_role(actor, STAFF_ROLES, "update attendance")
        request = self._validate(UpdateAttendanceRequest, payload)
        record = await self._get_record(request.id)

        changes = {
            field: value
            for field, value in column_values(request.model_dump(exclude_unset=True, exclude={"id"})).items()
            if getattr(record, field) != value
        }
        self._check_merged_fields(record, changes)

        for field, value in changes.items():
            setattr(record, field, value)

        if "attendance_status" in changes:
            await self._sync_enrollment(record.student_id, record.class_id)
        await self.db.commit()
        await self.db.refresh(record)

        logger.info("Updated attendance %s: %s", record.id, sorted(changes))
        return AttendanceResponse.model_validate(record)

    async def _upsert(self, request: MarkAttendanceRequest) -> StudentAttendance:
        if request.attendance_date > self.clock.today():
            raise BusinessRuleError("Cannot mark attendance for a future date")

        result = await self.db.execute(
            select(StudentAttendance).where(
                StudentAttendance.student_id == str(request.student_id),
                StudentAttendance.class_id == str(request.class_id),
                StudentAttendance.attendance_date == request.attendance_date,
            )
        )
        record = result.scalar_one_or_none()
        values = column_values(request.model_dump())
        if record is None:
            record = StudentAttendance(id=new_id(), **values)
            self.db.add(record)
        else:
            for field, value in values.items():
                setattr(record, field, value)
        return record

    async def _sync_enrollment(self, student_id: Any, class_id: Any) -> None:
        """Store the recomputed attendance percentage on the class enrollment."""
        result = await self.db.execute(
            select(StudentAttendance).where(
                StudentAttendance.student_id == str(student_id),
                StudentAttendance.class_id == str(class_id),
            )
        )
        percentage = attendance_percentage(list(result.scalars().all()))

        result = await self.db.execute(
            select(ClassEnrollment).where(
                ClassEnrollment.student_id == str(student_id),
                ClassEnrollment.class_id == str(class_id),
            )
        )
        enrollment = result.scalar_one_or_none()
        if enrollment is None:
            logger.warning("No class enrollment for student %s in class %s", student_id, class_id)
            return
        enrollment.attendance_percentage = percentage

    # =========================================================================
    # Reads
    # =========================================================================

    async def _list_attendance(self, filters: Any, actor: Actor) -> Page[AttendanceResponse]:
        request = self._validate(AttendanceFilters, filters or {})

        student_id = request.student_id
        if actor.role == Role.STUDENT:
            if student_id is not None and not actor.is_user(student_id):
                raise AuthorizationError("Students can only view attendance for themselves")
            student_id = actor.user_id

        stmt = select(StudentAttendance)
        if student_id:
            stmt = stmt.where(StudentAttendance.student_id == str(student_id))
        if request.class_id:
            stmt = stmt.where(StudentAttendance.class_id == str(request.class_id))
        if request.teacher_id:
            stmt = stmt.where(StudentAttendance.teacher_id == str(request.teacher_id))
        if request.branch_id:
            stmt = stmt.where(StudentAttendance.branch_id == str(request.branch_id))
        if request.attendance_status:
            stmt = stmt.where(StudentAttendance.attendance_status == request.attendance_status.value)
        if request.date_from:
            stmt = stmt.where(StudentAttendance.attendance_date >= request.date_from)
        if request.date_to:
            stmt = stmt.where(StudentAttendance.attendance_date <= request.date_to)

        count_result = await self.db.execute(select(func.count()).select_from(stmt.subquery()))
        total = count_result.scalar() or 0

        column = StudentAttendance.attendance_date
        stmt = stmt.order_by(column.asc() if request.sort_order == "asc" else column.desc())
        stmt = stmt.limit(request.limit).offset(self._offset(request.page, request.limit))
        result = await self.db.execute(stmt)

        return Page(
            items=[AttendanceResponse.model_validate(r) for r in result.scalars().all()],
            total=total,
            page=request.page,
            limit=request.limit,
        )

    async def _get_student_summary(
        self,
        student_id: Any,
        actor: Actor,
        class_id: Optional[Any],
    ) -> AttendanceSummary:
        self._require_self_or_staff(actor, student_id, "view attendance")

        stmt = select(StudentAttendance).where(StudentAttendance.student_id == str(student_id))
        if class_id:
            stmt = stmt.where(StudentAttendance.class_id == str(class_id))
        result = await self.db.execute(stmt)
        return summarize(student_id, list(result.scalars().all()), class_id)

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _get_record(self, record_id: Any) -> StudentAttendance:
        result = await self.db.execute(select(StudentAttendance).where(StudentAttendance.id == str(record_id)))
        record = result.scalar_one_or_none()
        if not record:
            raise NotFoundError("Attendance record", record_id)
        return record

    @staticmethod
    def _check_merged_fields(record: StudentAttendance, changes: dict[str, Any]) -> None:
        def merged(name: str) -> Any:
            return changes[name] if name in changes else getattr(record, name)

        errors = []
        check_in, check_out = merged("check_in_time"), merged("check_out_time")
        if check_in is not None and check_out is not None and check_in > check_out:
            errors.append(
                FieldError(field="check_out_time", message="Check-in time must be before or equal to check-out time")
            )
        reason = merged("excuse_reason")
        if merged("attendance_status") == AttendanceStatus.EXCUSED.value and not (reason and reason.strip()):
            errors.append(FieldError(field="excuse_reason", message="Excuse reason is required for excused absences"))
        if errors:
            raise ValidationFailedError(errors)
