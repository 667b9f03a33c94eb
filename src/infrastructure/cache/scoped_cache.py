# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Organization scoped read-through cache.

The cache accelerates reads; it is never the source of truth. Writes to
a cached resource go through apply_write(), which invalidates the
resource's key and its type's list entry as part of the same call.

A backend outage never fails the caller: reads become misses, mutations
report that nothing happened, and a warning is logged. Malformed keys
still raise ValidationError.

Example:
    cache = ScopedCache(InMemoryCacheBackend(), default_ttl=3600)

    course = await cache.get_or_load(
        principal.organization_id, "course", course_id, lambda: repo.get(course_id)
    )
    await cache.apply_write(
        principal.organization_id, "course", course_id, lambda: repo.update(course_id, data)
    )
"""

import json
from collections.abc import Awaitable, Callable, Iterable
from datetime import datetime, timedelta
from typing import Any, TypeVar

from src.core.exceptions import StorageUnavailable, ValidationError
from src.infrastructure.cache.backends import CacheBackend
from src.infrastructure.cache.keys import (
    LIST_RESOURCE_ID,
    build_cache_key,
    build_organization_prefix,
    build_type_prefix,
)
from src.infrastructure.cache.models import CacheEntry, CacheHealth, CacheStats
from src.utils.datetime import utc_now
from src.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_TTL_SECONDS = 3600
UNHEALTHY_EXPIRED_RATIO = 0.1
TUNING_EXPIRED_RATIO = 0.2


def _ttl_seconds(ttl: float | timedelta) -> float:
    seconds = ttl.total_seconds() if isinstance(ttl, timedelta) else float(ttl)
    if seconds <= 0:
        raise ValidationError("Cache TTL must be positive", {"ttl": seconds})
    return seconds


class ScopedCache:
    """TTL cache whose every key begins with the owning organization.

    Attributes:
        _backend: Storage for entries.
        _default_ttl: TTL in seconds when a caller gives none.
        _clock: Returns the current UTC time.
    """

    def __init__(
        self,
        backend: CacheBackend,
        default_ttl: float | timedelta = DEFAULT_TTL_SECONDS,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._backend = backend
        self._default_ttl = _ttl_seconds(default_ttl)
        self._clock = clock

    def _unavailable(self, operation: str, error: StorageUnavailable, **fields: Any) -> None:
        logger.warning("cache_backend_unavailable", operation=operation, error=str(error), **fields)

    async def get(self, organization_id: str, resource_type: str, resource_id: str) -> Any | None:
        """Read a cached value.

        Args:
            organization_id: Tenant from the verified principal.
            resource_type: Resource type.
            resource_id: Resource identifier.

        Returns:
            The cached value, or None on a miss. An expired entry is a miss
            and is removed.

        Raises:
            ValidationError: If a key segment is malformed.
        """
        key = build_cache_key(organization_id, resource_type, resource_id)
        try:
            entry = await self._backend.get(organization_id, key)
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                await self._backend.delete(organization_id, key)
                return None
        except StorageUnavailable as e:
            self._unavailable("get", e, key=key)
            return None

        return json.loads(entry.payload)

    async def set(
        self,
        organization_id: str,
        resource_type: str,
        resource_id: str,
        value: Any,
        ttl: float | timedelta | None = None,
    ) -> bool:
        """Store a value, overwriting any previous entry.

        Args:
            organization_id: Tenant from the verified principal.
            resource_type: Resource type.
            resource_id: Resource identifier.
            value: JSON-serializable value.
            ttl: Lifetime in seconds or as a timedelta.

        Returns:
            True if the value was stored.

        Raises:
            ValidationError: If a key segment or the TTL is invalid.
        """
        key = build_cache_key(organization_id, resource_type, resource_id)
        seconds = self._default_ttl if ttl is None else _ttl_seconds(ttl)
        now = self._clock()
        entry = CacheEntry(
            key=key,
            organization_id=organization_id,
            payload=json.dumps(value, ensure_ascii=False, default=str),
            created_at=now,
            expires_at=now + timedelta(seconds=seconds),
        )
        try:
            await self._backend.set(entry)
        except StorageUnavailable as e:
            self._unavailable("set", e, key=key)
            return False
        return True

    async def delete(self, organization_id: str, resource_type: str, resource_id: str) -> bool:
        """Invalidate one key.

        Returns:
            True if an entry was removed. Repeating the call is harmless.
        """
        key = build_cache_key(organization_id, resource_type, resource_id)
        try:
            return await self._backend.delete(organization_id, key)
        except StorageUnavailable as e:
            self._unavailable("delete", e, key=key)
            return False

    async def invalidate_prefix(self, organization_id: str, resource_type: str) -> int:
        """Invalidate every entry of one resource type in an organization.

        Returns:
            Number of entries removed.
        """
        prefix = build_type_prefix(organization_id, resource_type)
        try:
            removed = await self._backend.delete_prefix(organization_id, prefix)
        except StorageUnavailable as e:
            self._unavailable("invalidate_prefix", e, prefix=prefix)
            return 0
        logger.debug("cache_prefix_invalidated", prefix=prefix, removed=removed)
        return removed

    async def invalidate_org(self, organization_id: str) -> int:
        """Invalidate every entry of an organization.

        Returns:
            Number of entries removed.
        """
        build_organization_prefix(organization_id)
        try:
            removed = await self._backend.delete_organization(organization_id)
        except StorageUnavailable as e:
            self._unavailable("invalidate_org", e, organization_id=organization_id)
            return 0
        logger.info("cache_organization_invalidated", organization_id=organization_id, removed=removed)
        return removed

    async def purge_expired(self) -> int:
        """Remove entries that are already stale.

        Returns:
            Number of entries removed.
        """
        try:
            return await self._backend.purge_expired(self._clock())
        except StorageUnavailable as e:
            self._unavailable("purge_expired", e)
            return 0

    async def stats(self, organization_id: str | None = None) -> CacheStats:
        """Summarize cache contents, optionally for one organization."""
        try:
            return await self._backend.stats(organization_id, self._clock())
        except StorageUnavailable as e:
            self._unavailable("stats", e)
            return CacheStats()

    async def check_health(self, organization_id: str | None = None) -> CacheHealth:
        """Report whether stale entries make up too large a share of the cache."""
        stats = await self.stats(organization_id)
        recommendations: list[str] = []
        if stats.expired_items > stats.total_items * TUNING_EXPIRED_RATIO:
            recommendations = ["Consider increasing TTL values", "Implement cache warming strategy"]
        return CacheHealth(
            healthy=stats.expired_items <= stats.total_items * UNHEALTHY_EXPIRED_RATIO,
            stats=stats,
            recommendations=recommendations,
        )

    async def get_or_load(
        self,
        organization_id: str,
        resource_type: str,
        resource_id: str,
        loader: Callable[[], Awaitable[T]],
        ttl: float | timedelta | None = None,
    ) -> T:
        """Return the cached value or load and cache it.

        None results are returned but not cached.

        Args:
            organization_id: Tenant from the verified principal.
            resource_type: Resource type.
            resource_id: Resource identifier.
            loader: Fetches the value through the authoritative path.
            ttl: Lifetime of the cached value.

        Returns:
            The cached or freshly loaded value.
        """
        cached = await self.get(organization_id, resource_type, resource_id)
        if cached is not None:
            return cached

        value = await loader()
        if value is not None:
            await self.set(organization_id, resource_type, resource_id, value, ttl)
        return value

    async def warm(
        self,
        organization_id: str,
        resource_type: str,
        fetcher: Callable[[], Awaitable[Iterable[Any]]],
        ttl: float | timedelta | None = None,
    ) -> int:
        """Preload a resource type.

        Each item is cached under its ``id`` (or its position when it has
        none) and the whole collection under the ``list`` id.

        Returns:
            Number of items cached individually.
        """
        items = list(await fetcher())
        cached = 0
        for index, item in enumerate(items):
            item_id = item.get("id") if isinstance(item, dict) else getattr(item, "id", None)
            resource_id = str(index if item_id is None else item_id)
            if await self.set(organization_id, resource_type, resource_id, item, ttl):
                cached += 1
        await self.set(organization_id, resource_type, LIST_RESOURCE_ID, items, ttl)
        logger.info(
            "cache_warmed",
            organization_id=organization_id,
            resource_type=resource_type,
            items=cached,
        )
        return cached

    async def apply_write(
        self,
        organization_id: str,
        resource_type: str,
        resource_id: str,
        write: Callable[[], Awaitable[T]],
    ) -> T:
        """Run a mutation and invalidate what it may have made stale.

        The resource's key and its type's list entry are invalidated before
        this returns, whether or not the mutation raised.

        Args:
            organization_id: Tenant from the verified principal.
            resource_type: Resource type.
            resource_id: Resource identifier.
            write: The mutation against the authoritative store.

        Returns:
            Whatever the mutation returned.
        """
        build_cache_key(organization_id, resource_type, resource_id)
        try:
            return await write()
        finally:
            await self.delete(organization_id, resource_type, resource_id)
            if resource_id != LIST_RESOURCE_ID:
                await self.delete(organization_id, resource_type, LIST_RESOURCE_ID)
