# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Cached access to assignments and submissions for one session."""

from typing import Any, Optional

from src.domains.assignment.service import AssignmentService
from src.domains.common import Actor, BaseStore, OperationResult
from src.infrastructure.cache import CacheCategory, EntityCache, cache_key
from src.models.assignment import (
    AssignmentResponse,
    AssignmentStatistics,
    SubmissionResponse,
)
from src.models.common import Page

ASSIGNMENTS = "assignments"
SUBMISSIONS = "assignment_submissions"
STATISTICS = "assignment_statistics"


class AssignmentStore(BaseStore):
    """Assignment reads served from the session cache.

    Authoring writes clear the assignment bucket; submission and grading
    writes also clear submissions and statistics, since they change
    counters on the assignment itself.
    """

    def __init__(self, service: AssignmentService, cache: EntityCache, actor: Actor) -> None:
        super().__init__(cache, actor)
        self.service = service

    # Reads

    async def get(self, assignment_id: Any, *, force_refresh: bool = False) -> OperationResult[AssignmentResponse]:
        return await self._cached(
            ASSIGNMENTS,
            f"id:{assignment_id}",
            CacheCategory.SINGLE,
            lambda: self.service.get(assignment_id, self.actor),
            force_refresh,
        )

    async def list(self, params: Any = None, *, force_refresh: bool = False) -> OperationResult[Page[AssignmentResponse]]:
        return await self._cached(
            ASSIGNMENTS,
            f"list:{cache_key(params)}",
            CacheCategory.LIST,
            lambda: self.service.list(params, self.actor),
            force_refresh,
        )

    async def list_submissions(
        self,
        filters: Any = None,
        *,
        force_refresh: bool = False,
    ) -> OperationResult[Page[SubmissionResponse]]:
        return await self._cached(
            SUBMISSIONS,
            f"list:{cache_key(filters)}",
            CacheCategory.SUBMISSIONS,
            lambda: self.service.list_submissions(filters, self.actor),
            force_refresh,
        )

    async def get_student_submission(
        self,
        assignment_id: Any,
        student_id: Any,
        *,
        force_refresh: bool = False,
    ) -> OperationResult[Optional[SubmissionResponse]]:
        return await self._cached(
            SUBMISSIONS,
            f"student:{assignment_id}:{student_id}",
            CacheCategory.SUBMISSIONS,
            lambda: self.service.get_student_submission(assignment_id, student_id, self.actor),
            force_refresh,
        )

    async def get_statistics(
        self,
        assignment_id: Any,
        *,
        force_refresh: bool = False,
    ) -> OperationResult[AssignmentStatistics]:
        return await self._cached(
            STATISTICS,
            f"id:{assignment_id}",
            CacheCategory.STATISTICS,
            lambda: self.service.get_statistics(assignment_id, self.actor),
            force_refresh,
        )

    # Writes

    async def create(self, payload: Any) -> OperationResult[AssignmentResponse]:
        return await self._mutate(self.service.create(payload, self.actor), ASSIGNMENTS)

    async def update(self, payload: Any) -> OperationResult[AssignmentResponse]:
        return await self._mutate(self.service.update(payload, self.actor), ASSIGNMENTS)

    async def publish(self, payload: Any) -> OperationResult[AssignmentResponse]:
        return await self._mutate(self.service.publish(payload, self.actor), ASSIGNMENTS)

    async def close(self, payload: Any) -> OperationResult[AssignmentResponse]:
        return await self._mutate(self.service.close(payload, self.actor), ASSIGNMENTS)

    async def delete(self, assignment_id: Any) -> OperationResult[dict[str, str]]:
        return await self._mutate(
            self.service.delete(assignment_id, self.actor),
            ASSIGNMENTS,
            STATISTICS,
        )

    async def submit(self, payload: Any) -> OperationResult[SubmissionResponse]:
        return await self._mutate(
            self.service.submit(payload, self.actor),
            SUBMISSIONS,
            ASSIGNMENTS,
            STATISTICS,
        )

    async def save_draft(self, payload: Any) -> OperationResult[SubmissionResponse]:
        return await self._mutate(self.service.save_draft(payload, self.actor), SUBMISSIONS)

    async def grade_submission(self, payload: Any) -> OperationResult[SubmissionResponse]:
        return await self._mutate(
            self.service.grade_submission(payload, self.actor),
            SUBMISSIONS,
            ASSIGNMENTS,
            STATISTICS,
        )

    async def update_grade(self, payload: Any) -> OperationResult[SubmissionResponse]:
        return await self._mutate(
            self.service.update_grade(payload, self.actor),
            SUBMISSIONS,
            ASSIGNMENTS,
            STATISTICS,
        )

    async def request_regrade(self, payload: Any) -> OperationResult[SubmissionResponse]:
        return await self._mutate(
            self.service.request_regrade(payload, self.actor),
            SUBMISSIONS,
            ASSIGNMENTS,
            STATISTICS,
        )
