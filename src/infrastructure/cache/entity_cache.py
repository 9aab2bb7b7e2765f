# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Session-scoped entity cache with TTL expiry and in-flight deduplication.

Entries live in named buckets (one per entity family, e.g. "assignments"
or "submissions"). Each entry expires after the fixed TTL of its data
category. Concurrent requests for the same bucket and key share a single
underlying fetch, and every waiter receives the same value or the same
exception.

A write invalidates whole buckets. Invalidation also bumps the bucket's
generation, so a fetch that started before the write can still resolve
for its waiters but its result is never stored.

Example:
    from src.infrastructure.cache import CacheCategory, EntityCache, cache_key

    cache = EntityCache(clock)
    result = await cache.get_or_fetch(
        "assignments",
        cache_key(filters),
        CacheCategory.LIST,
        lambda: service.list(filters, actor),
        should_cache=lambda r: r.success,
    )

    # After a successful create/update/delete
    cache.invalidate("assignments")
"""

import asyncio
import hashlib
import json
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, Optional, TypeVar

from pydantic import BaseModel

from src.utils.datetime import Clock, SystemClock
from src.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class CacheCategory(str, Enum):
    """Data categories with their own time-to-live."""

    LIST = "list"
    SINGLE = "single"
    SUBMISSIONS = "submissions"
    STATISTICS = "statistics"


# Fixed per category; not exposed through settings.
CACHE_TTL_SECONDS: Mapping[CacheCategory, int] = {
    CacheCategory.LIST: 120,
    CacheCategory.SINGLE: 180,
    CacheCategory.SUBMISSIONS: 60,
    CacheCategory.STATISTICS: 300,
}


def cache_key(params: Any = None) -> str:
    """Build a stable key from a filter model, mapping or scalar.

    Unset and None fields are ignored, so two filters that differ only in
    omitted values map to the same key.
    """
    if params is None:
        return "all"
    if isinstance(params, BaseModel):
        params = params.model_dump(mode="json", exclude_none=True)
    elif isinstance(params, Mapping):
        params = {k: v for k, v in params.items() if v is not None}
    else:
        return str(params)
    serialized = json.dumps(params, sort_keys=True, default=str)
    return hashlib.md5(serialized.encode()).hexdigest()


def _consume_exception(task: asyncio.Future[Any]) -> None:
    # Waiters may all be cancelled before a shared fetch fails.
    if not task.cancelled() and task.exception() is not None:
        logger.debug("Shared fetch failed", error=str(task.exception()))


@dataclass
class CacheEntry:
    """A stored value and the moment it goes stale."""

    value: Any
    expires_at: datetime

    def is_fresh(self, now: datetime) -> bool:
        return now < self.expires_at


class EntityCache:
    """Explicit, per-session cache object.

    There is no eviction beyond TTL expiry; expired entries are replaced on
    the next fetch of the same key or dropped by invalidate() and clear().

    Attributes:
        clock: Time source used for expiry decisions.
    """

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self.clock = clock or SystemClock()
        self._entries: dict[str, dict[str, CacheEntry]] = {}
        self._inflight: dict[tuple[str, str], asyncio.Task] = {}
        self._generations: dict[str, int] = {}
        self._epoch = 0

    @property
    def size(self) -> int:
        """Number of stored entries, fresh or expired."""
        return sum(len(bucket) for bucket in self._entries.values())

    def peek(self, bucket: str, key: str) -> Optional[Any]:
        """Return a fresh cached value without fetching, or None."""
        entry = self._entries.get(bucket, {}).get(key)
        if entry is None or not entry.is_fresh(self.clock.now()):
            return None
        return entry.value

    async def get_or_fetch(
        self,
        bucket: str,
        key: str,
        category: CacheCategory,
        fetch: Callable[[], Awaitable[T]],
        *,
        should_cache: Optional[Callable[[T], bool]] = None,
        force_refresh: bool = False,
    ) -> T:
        """Return the cached value for (bucket, key), fetching it if needed.

        Args:
            bucket: Entity family the key belongs to.
            key: Entry key inside the bucket.
            category: Determines the entry's TTL.
            fetch: Coroutine factory producing the value.
            should_cache: Predicate deciding whether a fetched value is
                stored (e.g. only successful envelopes).
            force_refresh: Skip the stored entry and fetch again.

        Returns:
            The cached or freshly fetched value.

        Raises:
            Exception: Whatever fetch raised; failures are not cached.
        """
        if not force_refresh:
            entry = self._entries.get(bucket, {}).get(key)
            if entry is not None and entry.is_fresh(self.clock.now()):
                logger.debug("Cache hit", bucket=bucket, key=key)
                return entry.value

        slot = (bucket, key)
        task = self._inflight.get(slot)
        if task is None:
            logger.debug("Cache miss", bucket=bucket, key=key, category=category.value)
            task = asyncio.ensure_future(
                self._fetch(slot, category, fetch, should_cache, self._generation(bucket))
            )
            task.add_done_callback(_consume_exception)
            self._inflight[slot] = task
        else:
            logger.debug("Joining in-flight request", bucket=bucket, key=key)

        # Shielded so one cancelled waiter does not cancel the shared fetch.
        return await asyncio.shield(task)

    def invalidate(self, *buckets: str) -> None:
        """Drop every entry of the given buckets.

        In-flight fetches for these buckets keep running for their current
        waiters, but later callers start a new fetch and the old results are
        discarded.
        """
        for bucket in buckets:
            self._entries.pop(bucket, None)
            self._generations[bucket] = self._generations.get(bucket, 0) + 1
            for slot in [s for s in self._inflight if s[0] == bucket]:
                del self._inflight[slot]
        logger.debug("Cache invalidated", buckets=list(buckets))

    def clear(self) -> None:
        """Forget everything, e.g. when the session ends or the user changes."""
        self._entries.clear()
        self._inflight.clear()
        self._epoch += 1
        logger.debug("Cache cleared")

    # =========================================================================
    # Internals
    # =========================================================================

    def _generation(self, bucket: str) -> tuple[int, int]:
        return (self._epoch, self._generations.get(bucket, 0))

    async def _fetch(
        self,
        slot: tuple[str, str],
        category: CacheCategory,
        fetch: Callable[[], Awaitable[T]],
        should_cache: Optional[Callable[[T], bool]],
        generation: tuple[int, int],
    ) -> T:
        bucket, key = slot
        try:
            value = await fetch()
        finally:
            if self._inflight.get(slot) is asyncio.current_task():
                del self._inflight[slot]

        if generation != self._generation(bucket):
            logger.debug("Discarding result fetched before invalidation", bucket=bucket, key=key)
            return value
        if should_cache is not None and not should_cache(value):
            return value

        expires_at = self.clock.now() + timedelta(seconds=CACHE_TTL_SECONDS[category])
        self._entries.setdefault(bucket, {})[key] = CacheEntry(value, expires_at)
        return value
