# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Cached access to quizzes and attempts for one session."""

from typing import Any

from src.domains.common import Actor, BaseStore, OperationResult
from src.domains.quiz.service import QuizService
from src.infrastructure.cache import CacheCategory, EntityCache, cache_key
from src.models.common import Page
from src.models.quiz import (
    AttemptResponse,
    AttemptResult,
    AttemptStart,
    QuestionResponse,
    QuizResponse,
)

QUIZZES = "quizzes"
ATTEMPTS = "quiz_attempts"


class QuizStore(BaseStore):
    """Quiz reads served from the session cache.

    Attempt writes clear both buckets: starting or finishing an attempt
    changes what a student sees on the quiz list.
    """

    def __init__(self, service: QuizService, cache: EntityCache, actor: Actor) -> None:
        super().__init__(cache, actor)
        self.service = service

    async def get_quiz(self, quiz_id: Any, *, force_refresh: bool = False) -> OperationResult[QuizResponse]:
        return await self._cached(
            QUIZZES,
            f"id:{quiz_id}",
            CacheCategory.SINGLE,
            lambda: self.service.get_quiz(quiz_id, self.actor),
            force_refresh,
        )

    async def list_quizzes(self, filters: Any = None, *, force_refresh: bool = False) -> OperationResult[Page[QuizResponse]]:
        return await self._cached(
            QUIZZES,
            f"list:{cache_key(filters)}",
            CacheCategory.LIST,
            lambda: self.service.list_quizzes(filters, self.actor),
            force_refresh,
        )

    async def list_attempts(self, filters: Any = None, *, force_refresh: bool = False) -> OperationResult[Page[AttemptResponse]]:
        return await self._cached(
            ATTEMPTS,
            f"list:{cache_key(filters)}",
            CacheCategory.SUBMISSIONS,
            lambda: self.service.list_attempts(filters, self.actor),
            force_refresh,
        )

    async def create_quiz(self, payload: Any) -> OperationResult[QuizResponse]:
        return await self._mutate(self.service.create_quiz(payload, self.actor), QUIZZES)

    async def update_quiz(self, payload: Any) -> OperationResult[QuizResponse]:
        return await self._mutate(self.service.update_quiz(payload, self.actor), QUIZZES)

    async def add_question(self, payload: Any) -> OperationResult[QuestionResponse]:
        return await self._mutate(self.service.add_question(payload, self.actor), QUIZZES)

    async def start_attempt(self, payload: Any) -> OperationResult[AttemptStart]:
        return await self._mutate(self.service.start_attempt(payload, self.actor), ATTEMPTS, QUIZZES)

    async def submit_attempt(self, payload: Any) -> OperationResult[AttemptResult]:
        return await self._mutate(self.service.submit_attempt(payload, self.actor), ATTEMPTS, QUIZZES)

    async def abandon_attempt(self, payload: Any) -> OperationResult[AttemptResponse]:
        return await self._mutate(self.service.abandon_attempt(payload, self.actor), ATTEMPTS, QUIZZES)
