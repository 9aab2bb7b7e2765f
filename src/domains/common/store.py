# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Base class for cached per-domain stores.

A store sits in front of one service for one session. Reads go through the
session's EntityCache; writes go straight to the service and, when they
succeed, invalidate the buckets they touch before returning. A read issued
after a write therefore never sees a value cached before it.
"""

from typing import Any, Awaitable, Callable, TypeVar

from src.domains.common.actor import Actor
from src.domains.common.result import OperationResult
from src.infrastructure.cache import CacheCategory, EntityCache

T = TypeVar("T")


def _succeeded(result: OperationResult[Any]) -> bool:
    return result.success


class BaseStore:
    """Cache-aware facade over a domain service.

    Attributes:
        cache: Session cache shared by every store of the session.
        actor: User the session belongs to.
    """

    def __init__(self, cache: EntityCache, actor: Actor) -> None:
        self.cache = cache
        self.actor = actor

    async def _cached(
        self,
        bucket: str,
        key: str,
        category: CacheCategory,
        fetch: Callable[[], Awaitable[OperationResult[T]]],
        force_refresh: bool = False,
    ) -> OperationResult[T]:
        """Serve a read from cache; only successful envelopes are stored."""
        return await self.cache.get_or_fetch(
            bucket,
            key,
            category,
            fetch,
            should_cache=_succeeded,
            force_refresh=force_refresh,
        )

    async def _mutate(
        self,
        write: Awaitable[OperationResult[T]],
        *buckets: str,
    ) -> OperationResult[T]:
        """Run a write and invalidate the given buckets if it succeeded."""
        result = await write
        if result.success:
            self.cache.invalidate(*buckets)
        return result
