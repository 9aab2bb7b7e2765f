# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Per-session wiring of actor, clock, cache and stores.

A SessionContext is opened when a user session starts and closed when it
ends. It owns the session's EntityCache, so cached entities never outlive
the session and never leak between users.

Example:
    >>> async with open_session(database, actor) as ctx:
    ...     result = await ctx.assignments.list({"class_id": class_id})
    ...     await ctx.assignments.publish({"id": assignment_id})
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import Settings, get_settings
from src.domains.assignment import AssignmentService, AssignmentStore
from src.domains.attendance import AttendanceService, AttendanceStore
from src.domains.common import Actor
from src.domains.enrollment import EnrollmentService, EnrollmentStore
from src.domains.fee_receipt import FeeReceiptService, FeeReceiptStore
from src.domains.quiz import QuizService, QuizStore
from src.infrastructure.cache import EntityCache
from src.infrastructure.database import Database
from src.utils.datetime import Clock, SystemClock
from src.utils.logging import bind_context, clear_context, get_logger

logger = get_logger(__name__)


class SessionContext:
    """Stores for one authenticated session, sharing one cache.

    Attributes:
        db: Async database session used by every service.
        actor: User the session belongs to.
        settings: Application settings.
        clock: Time source shared by services and the cache.
        cache: Session cache shared by every store.
        session_lock: Lock serializing the services' use of db.
    """

    def __init__(
        self,
        db: AsyncSession,
        actor: Actor,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
        cache: Optional[EntityCache] = None,
    ) -> None:
        self.db = db
        self.actor = actor
        self.settings = settings or get_settings()
        self.clock = clock or SystemClock(self.settings.service.timezone)
        self.cache = cache or EntityCache(self.clock)
        self._retries = self.settings.service.read_retry_attempts
        self.session_lock = asyncio.Lock()

        self._assignments: Optional[AssignmentStore] = None
        self._quizzes: Optional[QuizStore] = None
        self._enrollments: Optional[EnrollmentStore] = None
        self._fee_receipts: Optional[FeeReceiptStore] = None
        self._attendance: Optional[AttendanceStore] = None

    async def __aenter__(self) -> SessionContext:
        self.open()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()

    def open(self) -> None:
        bind_context(user_id=str(self.actor.user_id), role=self.actor.role.value)
        logger.debug("Session context opened")

    def close(self) -> None:
        self.clear()
        logger.debug("Session context closed")
        clear_context()

    def clear(self) -> None:
        """Drop every cached entity for this session."""
        self.cache.clear()

    # =========================================================================
    # Stores
    # =========================================================================

    @property
    def assignments(self) -> AssignmentStore:
        if self._assignments is None:
            service = AssignmentService(self.db, self.clock, self._retries, session_lock=self.session_lock)
            self._assignments = AssignmentStore(service, self.cache, self.actor)
        return self._assignments

    @property
    def quizzes(self) -> QuizStore:
        if self._quizzes is None:
            service = QuizService(self.db, self.clock, self._retries, session_lock=self.session_lock)
            self._quizzes = QuizStore(service, self.cache, self.actor)
        return self._quizzes

    @property
    def enrollments(self) -> EnrollmentStore:
        if self._enrollments is None:
            service = EnrollmentService(self.db, self.clock, self._retries, session_lock=self.session_lock)
            self._enrollments = EnrollmentStore(service, self.cache, self.actor)
        return self._enrollments

    @property
    def fee_receipts(self) -> FeeReceiptStore:
        if self._fee_receipts is None:
            service = FeeReceiptService(self.db, self.clock, self._retries, session_lock=self.session_lock)
            self._fee_receipts = FeeReceiptStore(service, self.cache, self.actor)
        return self._fee_receipts

    @property
    def attendance(self) -> AttendanceStore:
        if self._attendance is None:
            service = AttendanceService(self.db, self.clock, self._retries, session_lock=self.session_lock)
            self._attendance = AttendanceStore(service, self.cache, self.actor)
        return self._attendance


@asynccontextmanager
async def open_session(
    database: Database,
    actor: Actor,
    settings: Optional[Settings] = None,
    clock: Optional[Clock] = None,
) -> AsyncIterator[SessionContext]:
    """Open a database session and a SessionContext around it.

    Both are closed when the block exits, whether or not it raised.
    """
    async with database.session() as db:
        async with SessionContext(db, actor, settings=settings, clock=clock) as ctx:
            yield ctx
