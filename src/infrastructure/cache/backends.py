# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Storage backends for the scoped cache.

Every backend call names the organization it operates on, and backends
only ever look inside that organization's keyspace. Backend failures
surface as StorageUnavailable.
"""

from datetime import datetime
from typing import Protocol

from src.infrastructure.cache.keys import KEY_DELIMITER, parse_cache_key
from src.infrastructure.cache.models import CacheEntry, CacheStats
from src.infrastructure.cache.redis_client import RedisClient, escape_glob


class CacheBackend(Protocol):
    """Key/value store holding cache entries."""

    async def get(self, organization_id: str, key: str) -> CacheEntry | None: ...

    async def set(self, entry: CacheEntry) -> None: ...

    async def delete(self, organization_id: str, key: str) -> bool: ...

    async def delete_prefix(self, organization_id: str, prefix: str) -> int: ...

    async def delete_organization(self, organization_id: str) -> int: ...

    async def purge_expired(self, now: datetime) -> int: ...

    async def stats(self, organization_id: str | None, now: datetime) -> CacheStats: ...


def _summarize(entries: list[CacheEntry], now: datetime) -> CacheStats:
    organizations: set[str] = set()
    resource_types: set[str] = set()
    expired = 0
    for entry in entries:
        organizations.add(entry.organization_id)
        parsed = parse_cache_key(entry.key)
        if parsed is not None:
            resource_types.add(parsed.resource_type)
        if entry.is_expired(now):
            expired += 1
    return CacheStats(
        total_items=len(entries),
        expired_items=expired,
        organizations=sorted(organizations),
        resource_types=sorted(resource_types),
    )


class InMemoryCacheBackend:
    """Per-instance dictionary backend partitioned by organization.

    No method awaits while mutating, so each call is atomic with respect
    to other coroutines on the same event loop.
    """

    def __init__(self) -> None:
        self._partitions: dict[str, dict[str, CacheEntry]] = {}

    async def get(self, organization_id: str, key: str) -> CacheEntry | None:
        return self._partitions.get(organization_id, {}).get(key)

    async def set(self, entry: CacheEntry) -> None:
        self._partitions.setdefault(entry.organization_id, {})[entry.key] = entry

    async def delete(self, organization_id: str, key: str) -> bool:
        partition = self._partitions.get(organization_id)
        if partition is None:
            return False
        return partition.pop(key, None) is not None

    async def delete_prefix(self, organization_id: str, prefix: str) -> int:
        partition = self._partitions.get(organization_id)
        if not partition:
            return 0
        doomed = [key for key in partition if key.startswith(prefix)]
        for key in doomed:
            del partition[key]
        return len(doomed)

    async def delete_organization(self, organization_id: str) -> int:
        partition = self._partitions.pop(organization_id, None)
        return len(partition) if partition else 0

    async def purge_expired(self, now: datetime) -> int:
        purged = 0
        for partition in self._partitions.values():
            expired = [key for key, entry in partition.items() if entry.is_expired(now)]
            for key in expired:
                del partition[key]
            purged += len(expired)
        return purged

    async def stats(self, organization_id: str | None, now: datetime) -> CacheStats:
        if organization_id is None:
            entries = [e for partition in self._partitions.values() for e in partition.values()]
        else:
            entries = list(self._partitions.get(organization_id, {}).values())
        return _summarize(entries, now)


class RedisCacheBackend:
    """Redis backend storing entries under ``{namespace}:{cache_key}``.

    Entries carry a native PX expiry so Redis drops them on its own; the
    stored expires_at is still checked by the cache on read.

    Attributes:
        _client: Connected Redis client.
        _namespace: Prefix of every physical key.
    """

    def __init__(self, client: RedisClient, namespace: str = "lms") -> None:
        self._client = client
        self._namespace = namespace

    def _physical(self, key: str) -> str:
        return f"{self._namespace}{KEY_DELIMITER}{key}"

    def _pattern(self, prefix: str = "") -> str:
        return f"{escape_glob(self._namespace)}{KEY_DELIMITER}{escape_glob(prefix)}*"

    async def _load(self, pattern: str) -> list[tuple[str, CacheEntry]]:
        keys = await self._client.scan_keys(pattern)
        values = await self._client.mget(keys)
        return [
            (key, CacheEntry.from_json(raw))
            for key, raw in zip(keys, values)
            if raw is not None
        ]

    async def get(self, organization_id: str, key: str) -> CacheEntry | None:
        raw = await self._client.get(self._physical(key))
        if raw is None:
            return None
        entry = CacheEntry.from_json(raw)
        if entry.organization_id != organization_id:
            return None
        return entry

    async def set(self, entry: CacheEntry) -> None:
        ttl_ms = int((entry.expires_at - entry.created_at).total_seconds() * 1000)
        await self._client.set(self._physical(entry.key), entry.to_json(), expire_ms=max(ttl_ms, 1))

    async def delete(self, organization_id: str, key: str) -> bool:
        if not key.startswith(f"{organization_id}{KEY_DELIMITER}"):
            return False
        return await self._client.delete(self._physical(key)) > 0

    async def delete_prefix(self, organization_id: str, prefix: str) -> int:
        if not prefix.startswith(f"{organization_id}{KEY_DELIMITER}"):
            return 0
        return await self._client.delete_matching(self._pattern(prefix))

    async def delete_organization(self, organization_id: str) -> int:
        return await self._client.delete_matching(self._pattern(f"{organization_id}{KEY_DELIMITER}"))

    async def purge_expired(self, now: datetime) -> int:
        expired = [key for key, entry in await self._load(self._pattern()) if entry.is_expired(now)]
        return await self._client.delete(*expired)

    async def stats(self, organization_id: str | None, now: datetime) -> CacheStats:
        prefix = "" if organization_id is None else f"{organization_id}{KEY_DELIMITER}"
        loaded = await self._load(self._pattern(prefix))
        return _summarize([entry for _, entry in loaded], now)
