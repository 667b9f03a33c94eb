# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Organization scoped cache.

Keys have the form {organization_id}:{resource_type}:{resource_id}.
Entries live in an injected backend: an in-memory dictionary for tests
and single-process development, or Redis.

Example:
    from src.infrastructure.cache import RedisCacheBackend, RedisClient, ScopedCache

    client = RedisClient(settings.redis)
    await client.connect()
    cache = ScopedCache(RedisCacheBackend(client, namespace="lms"))

    await cache.set("org-1", "course", "42", course, ttl=600)
    course = await cache.get("org-1", "course", "42")

    await client.close()
"""

from src.infrastructure.cache.backends import CacheBackend, InMemoryCacheBackend, RedisCacheBackend
from src.infrastructure.cache.keys import (
    CacheKey,
    build_cache_key,
    parse_cache_key,
    validate_cache_key,
)
from src.infrastructure.cache.models import CacheEntry, CacheHealth, CacheStats
from src.infrastructure.cache.redis_client import RedisClient
from src.infrastructure.cache.scoped_cache import ScopedCache

__all__ = [
    "CacheBackend",
    "InMemoryCacheBackend",
    "RedisCacheBackend",
    "CacheKey",
    "build_cache_key",
    "parse_cache_key",
    "validate_cache_key",
    "CacheEntry",
    "CacheHealth",
    "CacheStats",
    "RedisClient",
    "ScopedCache",
]
