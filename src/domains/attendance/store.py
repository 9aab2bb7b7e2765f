# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Cached access to attendance for one session."""

from typing import Any, Optional

from src.domains.attendance.service import AttendanceService
from src.domains.common import Actor, BaseStore, OperationResult
from src.domains.enrollment.lifecycle import EnrollmentScope
from src.domains.enrollment.store import BUCKETS as ENROLLMENT_BUCKETS
from src.infrastructure.cache import CacheCategory, EntityCache, cache_key
from src.models.attendance import AttendanceResponse, AttendanceSummary
from src.models.common import Page

ATTENDANCE = "attendance"
SUMMARIES = "attendance_summaries"
# Attendance writes update the class enrollment's percentage.
CLASS_ENROLLMENTS = ENROLLMENT_BUCKETS[EnrollmentScope.CLASS]


class AttendanceStore(BaseStore):
    """Attendance reads served from the session cache."""

    def __init__(self, service: AttendanceService, cache: EntityCache, actor: Actor) -> None:
        super().__init__(cache, actor)
        self.service = service

    async def list_attendance(self, filters: Any = None, *, force_refresh: bool = False) -> OperationResult[Page[AttendanceResponse]]:
        return await self._cached(
            ATTENDANCE,
            f"list:{cache_key(filters)}",
            CacheCategory.LIST,
            lambda: self.service.list_attendance(filters, self.actor),
            force_refresh,
        )

    async def get_student_summary(
        self,
        student_id: Any,
        class_id: Optional[Any] = None,
        *,
        force_refresh: bool = False,
    ) -> OperationResult[AttendanceSummary]:
        return await self._cached(
            SUMMARIES,
            f"student:{student_id}:{class_id or 'all'}",
            CacheCategory.STATISTICS,
            lambda: self.service.get_student_summary(student_id, self.actor, class_id),
            force_refresh,
        )

    async def mark_attendance(self, payload: Any) -> OperationResult[AttendanceResponse]:
        return await self._mutate(
            self.service.mark_attendance(payload, self.actor),
            ATTENDANCE,
            SUMMARIES,
            CLASS_ENROLLMENTS,
        )

    async def bulk_mark(self, payload: Any) -> OperationResult[list[AttendanceResponse]]:
        return await self._mutate(
            self.service.bulk_mark(payload, self.actor),
            ATTENDANCE,
            SUMMARIES,
            CLASS_ENROLLMENTS,
        )

    async def update_attendance(self, payload: Any) -> OperationResult[AttendanceResponse]:
        return await self._mutate(
            self.service.update_attendance(payload, self.actor),
            ATTENDANCE,
            SUMMARIES,
            CLASS_ENROLLMENTS,
        )
