# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Cached access to enrollments for one session."""

from typing import Any

from src.domains.common import Actor, BaseStore, OperationResult
from src.domains.enrollment.lifecycle import EnrollmentScope
from src.domains.enrollment.service import EnrollmentResponse, EnrollmentService
from src.infrastructure.cache import CacheCategory, EntityCache, cache_key
from src.models.common import Page
from src.models.enrollment import BranchStudentResponse, ClassEnrollmentResponse

BUCKETS = {
    EnrollmentScope.CLASS: "class_enrollments",
    EnrollmentScope.BRANCH: "branch_students",
}


class EnrollmentStore(BaseStore):
    """Enrollment reads served from the session cache, one bucket per variant."""

    def __init__(self, service: EnrollmentService, cache: EntityCache, actor: Actor) -> None:
        super().__init__(cache, actor)
        self.service = service

    async def get(
        self,
        enrollment_id: Any,
        scope: EnrollmentScope = EnrollmentScope.CLASS,
        *,
        force_refresh: bool = False,
    ) -> OperationResult[EnrollmentResponse]:
        scope = EnrollmentScope(scope)
        return await self._cached(
            BUCKETS[scope],
            f"id:{enrollment_id}",
            CacheCategory.SINGLE,
            lambda: self.service.get(enrollment_id, self.actor, scope),
            force_refresh,
        )

    async def list(
        self,
        filters: Any = None,
        scope: EnrollmentScope = EnrollmentScope.CLASS,
        *,
        force_refresh: bool = False,
    ) -> OperationResult[Page[EnrollmentResponse]]:
        scope = EnrollmentScope(scope)
        return await self._cached(
            BUCKETS[scope],
            f"list:{cache_key(filters)}",
            CacheCategory.LIST,
            lambda: self.service.list(filters, self.actor, scope),
            force_refresh,
        )

    async def enroll_in_class(self, payload: Any) -> OperationResult[ClassEnrollmentResponse]:
        return await self._mutate(
            self.service.enroll_in_class(payload, self.actor),
            BUCKETS[EnrollmentScope.CLASS],
        )

    async def enroll_in_branch(self, payload: Any) -> OperationResult[BranchStudentResponse]:
        return await self._mutate(
            self.service.enroll_in_branch(payload, self.actor),
            BUCKETS[EnrollmentScope.BRANCH],
        )

    async def update_enrollment(
        self,
        enrollment_id: Any,
        payload: Any,
        scope: EnrollmentScope = EnrollmentScope.CLASS,
    ) -> OperationResult[EnrollmentResponse]:
        scope = EnrollmentScope(scope)
        return await self._mutate(
            self.service.update_enrollment(enrollment_id, payload, self.actor, scope),
            BUCKETS[scope],
        )
