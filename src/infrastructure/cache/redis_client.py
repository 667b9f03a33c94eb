# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Redis client shared by the cache and rate window backends.

Wraps redis-py's async client with connection pooling and maps every
driver failure to StorageUnavailable, so callers only deal with the
governance error taxonomy.

Example:
    from src.infrastructure.cache.redis_client import RedisClient

    client = RedisClient(settings.redis)
    await client.connect()
    await client.set("lms:org-1:course:42", payload, expire_ms=60_000)
    await client.close()
"""

import re
from typing import Any, Optional, Sequence

from redis.asyncio import ConnectionPool, Redis
from redis.commands.core import AsyncScript
from redis.exceptions import RedisError

from src.core.config.settings import RedisSettings
from src.core.exceptions import StorageUnavailable

_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


def escape_glob(value: str) -> str:
    """Escape a literal for use in a SCAN MATCH pattern."""
    return _GLOB_SPECIAL.sub(r"\\\1", value)


class RedisClient:
    """Async Redis client with pooling and error mapping.

    Attributes:
        _settings: Redis connection settings.
        _pool: Connection pool, None until connected.
        _redis: Client bound to the pool.
        _scripts: Registered Lua scripts by source.
    """

    def __init__(self, settings: RedisSettings) -> None:
        """Initialize the Redis client.

        Args:
            settings: Redis connection settings.
        """
        self._settings = settings
        self._pool: Optional[ConnectionPool] = None
        self._redis: Optional[Redis] = None
        self._scripts: dict[str, AsyncScript] = {}

    async def connect(self) -> None:
        """Create the Redis connection pool.

        Raises:
            StorageUnavailable: If connection fails.
        """
        try:
            self._pool = ConnectionPool.from_url(
                self._settings.url,
                max_connections=self._settings.max_connections,
                decode_responses=True,
            )
            self._redis = Redis(connection_pool=self._pool)

            # Verify connection
            await self._redis.ping()
        except RedisError as e:
            raise StorageUnavailable("Failed to connect to Redis", e) from e

    async def close(self) -> None:
        """Close the Redis connection pool."""
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None

        if self._pool is not None:
            await self._pool.disconnect()
            self._pool = None

        self._scripts.clear()

    def _ensure_connected(self) -> Redis:
        """Ensure the client is connected.

        Returns:
            The Redis client instance.

        Raises:
            StorageUnavailable: If not connected.
        """
        if self._redis is None:
            raise StorageUnavailable("Redis client not connected. Call connect() first.")
        return self._redis

    async def get(self, key: str) -> str | None:
        """Get a raw value by key."""
        redis = self._ensure_connected()
        try:
            return await redis.get(key)
        except RedisError as e:
            raise StorageUnavailable(f"Failed to get key: {key}", e) from e

    async def mget(self, keys: Sequence[str]) -> list[str | None]:
        """Get raw values for several keys, None where missing."""
        if not keys:
            return []
        redis = self._ensure_connected()
        try:
            return await redis.mget(list(keys))
        except RedisError as e:
            raise StorageUnavailable("Failed to get keys", e) from e

    async def hgetall(self, key: str) -> dict[str, str]:
        """Get every field of a hash, empty if the key is missing."""
        redis = self._ensure_connected()
        try:
            return await redis.hgetall(key)
        except RedisError as e:
            raise StorageUnavailable(f"Failed to read hash: {key}", e) from e

    async def set(self, key: str, value: str, expire_ms: Optional[int] = None) -> None:
        """Set a raw value with an optional expiry in milliseconds."""
        redis = self._ensure_connected()
        try:
            await redis.set(key, value, px=expire_ms)
        except RedisError as e:
            raise StorageUnavailable(f"Failed to set key: {key}", e) from e

    async def delete(self, *keys: str) -> int:
        """Delete keys.

        Returns:
            Number of keys that existed and were removed.
        """
        if not keys:
            return 0
        redis = self._ensure_connected()
        try:
            return await redis.delete(*keys)
        except RedisError as e:
            raise StorageUnavailable("Failed to delete keys", e) from e

    async def scan_keys(self, pattern: str) -> list[str]:
        """List keys matching a SCAN pattern."""
        redis = self._ensure_connected()
        try:
            return [key async for key in redis.scan_iter(match=pattern, count=500)]
        except RedisError as e:
            raise StorageUnavailable(f"Failed to scan keys: {pattern}", e) from e

    async def delete_matching(self, pattern: str) -> int:
        """Delete every key matching a SCAN pattern.

        Returns:
            Number of keys deleted.
        """
        keys = await self.scan_keys(pattern)
        return await self.delete(*keys)

    async def run_script(self, source: str, keys: Sequence[str], args: Sequence[Any]) -> Any:
        """Run a Lua script atomically.

        Scripts are registered once and executed by SHA afterwards.
        """
        redis = self._ensure_connected()
        script = self._scripts.get(source)
        if script is None:
            script = redis.register_script(source)
            self._scripts[source] = script
        try:
            return await script(keys=list(keys), args=list(args))
        except RedisError as e:
            raise StorageUnavailable("Failed to run Redis script", e) from e

    async def ping(self) -> bool:
        """Check if Redis is reachable.

        Returns:
            True if Redis responds to ping, False otherwise.
        """
        try:
            redis = self._ensure_connected()
            await redis.ping()
            return True
        except (StorageUnavailable, RedisError):
            return False
