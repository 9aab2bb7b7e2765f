# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""In-memory entity cache.

One EntityCache is created per session and handed to the domain stores;
there is no module-level cache instance.

Example:
    from src.infrastructure.cache import EntityCache

    cache = EntityCache(clock)
    ...
    cache.clear()
"""

from src.infrastructure.cache.entity_cache import (
    CACHE_TTL_SECONDS,
    CacheCategory,
    CacheEntry,
    EntityCache,
    cache_key,
)

__all__ = [
    "CACHE_TTL_SECONDS",
    "CacheCategory",
    "CacheEntry",
    "EntityCache",
    "cache_key",
]
