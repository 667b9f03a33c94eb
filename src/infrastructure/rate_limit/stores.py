# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Rate window stores.

hit() is the only way to count a request. It adopts the new window if the
stored one is older, increments, and marks the subject blocked once the
limit is passed, as one atomic step.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Protocol

from src.infrastructure.cache.redis_client import RedisClient, escape_glob
from src.infrastructure.rate_limit.models import RateWindow
from src.utils.datetime import from_epoch_ms, to_epoch_ms


class RateWindowStore(Protocol):
    """Backing store for per-subject window counters."""

    async def hit(
        self,
        subject_key: str,
        window_start: datetime,
        window_seconds: float,
        limit: int,
    ) -> RateWindow: ...

    async def peek(self, subject_key: str) -> RateWindow | None: ...

    async def reset(self, subject_key: str) -> bool: ...

    async def purge_expired(self, now: datetime) -> int: ...


class InMemoryRateWindowStore:
    """Process-local store guarded by an asyncio lock."""

    def __init__(self) -> None:
        self._windows: dict[str, RateWindow] = {}
        self._lock = asyncio.Lock()

    async def hit(
        self,
        subject_key: str,
        window_start: datetime,
        window_seconds: float,
        limit: int,
    ) -> RateWindow:
        async with self._lock:
            current = self._windows.get(subject_key)
            if current is None or current.window_start != window_start:
                count = 1
            else:
                count = current.count + 1

            window_end = window_start + timedelta(seconds=window_seconds)
            window = RateWindow(
                subject_key=subject_key,
                window_start=window_start,
                window_seconds=window_seconds,
                count=count,
                limit=limit,
                blocked_until=window_end if count > limit else None,
            )
            self._windows[subject_key] = window
            return window

    async def peek(self, subject_key: str) -> RateWindow | None:
        return self._windows.get(subject_key)

    async def reset(self, subject_key: str) -> bool:
        async with self._lock:
            return self._windows.pop(subject_key, None) is not None

    async def purge_expired(self, now: datetime) -> int:
        async with self._lock:
            stale = [key for key, window in self._windows.items() if window.is_stale(now)]
            for key in stale:
                del self._windows[key]
            return len(stale)


# KEYS[1] = window hash
# ARGV = window_start_ms, window_seconds, limit, expire_ms
HIT_SCRIPT = """
local key = KEYS[1]
local window_start = ARGV[1]
local limit = tonumber(ARGV[3])

if redis.call('HGET', key, 'window_start') ~= window_start then
    redis.call('DEL', key)
    redis.call('HSET', key, 'window_start', window_start, 'window_seconds', ARGV[2], 'count', 0)
end

local count = redis.call('HINCRBY', key, 'count', 1)
redis.call('HSET', key, 'limit', limit)
if count > limit then
    redis.call('HSET', key, 'blocked', 1)
end
redis.call('PEXPIRE', key, ARGV[4])
return count
"""


class RedisRateWindowStore:
    """Redis store keeping each window in a hash updated by one Lua script.

    Attributes:
        _client: Connected Redis client.
        _namespace: Prefix of every physical key.
    """

    def __init__(self, client: RedisClient, namespace: str = "lms") -> None:
        self._client = client
        self._namespace = namespace

    def _physical(self, subject_key: str) -> str:
        return f"{self._namespace}:{subject_key}"

    def _from_hash(self, subject_key: str, data: dict[str, str]) -> RateWindow | None:
        if not data or "window_start" not in data:
            return None
        window_start = from_epoch_ms(data["window_start"])
        window_seconds = float(data["window_seconds"])
        count = int(data.get("count", 0))
        limit = int(data.get("limit", 0))
        blocked = data.get("blocked") == "1"
        return RateWindow(
            subject_key=subject_key,
            window_start=window_start,
            window_seconds=window_seconds,
            count=count,
            limit=limit,
            blocked_until=window_start + timedelta(seconds=window_seconds) if blocked else None,
        )

    async def hit(
        self,
        subject_key: str,
        window_start: datetime,
        window_seconds: float,
        limit: int,
    ) -> RateWindow:
        count = await self._client.run_script(
            HIT_SCRIPT,
            keys=[self._physical(subject_key)],
            args=[
                to_epoch_ms(window_start),
                window_seconds,
                limit,
                max(int(window_seconds * 1000), 1),
            ],
        )
        count = int(count)
        window_end = window_start + timedelta(seconds=window_seconds)
        return RateWindow(
            subject_key=subject_key,
            window_start=window_start,
            window_seconds=window_seconds,
            count=count,
            limit=limit,
            blocked_until=window_end if count > limit else None,
        )

    async def peek(self, subject_key: str) -> RateWindow | None:
        return self._from_hash(subject_key, await self._client.hgetall(self._physical(subject_key)))

    async def reset(self, subject_key: str) -> bool:
        return await self._client.delete(self._physical(subject_key)) > 0

    async def purge_expired(self, now: datetime) -> int:
        prefix = f"{self._namespace}:"
        pattern = f"{escape_glob(prefix)}rate_limit:*"
        stale: list[str] = []
        for key in await self._client.scan_keys(pattern):
            window = self._from_hash(key[len(prefix) :], await self._client.hgetall(key))
            if window is not None and window.is_stale(now):
                stale.append(key)
        return await self._client.delete(*stale)
