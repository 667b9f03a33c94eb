# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Fixed window rate limiter.

Time is divided into non-overlapping windows; the window of an instant is
floor(now / window_seconds). A request landing exactly on a boundary
belongs to the new window. A subject is throttled once its count in the
current window passes the limit, until the window ends.

Fails open: if the window store is unreachable the request is allowed
and a warning is logged.

Example:
    limiter = RateLimiter(InMemoryRateWindowStore())
    key = build_subject_key(principal.organization_id, principal.subject_id, "/api/v1/courses")

    result = await limiter.check(key, limit=100, window=timedelta(minutes=15))
    if not result.allowed:
        ...  # answer 429 with Retry-After: result.retry_after
"""

import math
from collections.abc import Callable
from datetime import datetime, timedelta

from src.core.exceptions import RateLimitExceeded, StorageUnavailable, ValidationError
from src.infrastructure.rate_limit.models import RateLimitPolicy, RateLimitResult
from src.infrastructure.rate_limit.stores import RateWindowStore
from src.utils.datetime import floor_to_window, utc_now
from src.utils.logging import get_logger

logger = get_logger(__name__)

SUBJECT_KEY_PREFIX = "rate_limit"
ANONYMOUS_ORGANIZATION = "anonymous"

POLICIES: dict[str, RateLimitPolicy] = {
    "auth": RateLimitPolicy(
        name="auth",
        limit=5,
        window=timedelta(minutes=15),
        message="Too many authentication attempts, please try again later.",
    ),
    "api": RateLimitPolicy(
        name="api",
        limit=100,
        window=timedelta(minutes=15),
        message="API rate limit exceeded, please try again later.",
    ),
    "general": RateLimitPolicy(
        name="general",
        limit=1000,
        window=timedelta(minutes=15),
        message="Rate limit exceeded, please try again later.",
    ),
    "sensitive": RateLimitPolicy(
        name="sensitive",
        limit=3,
        window=timedelta(hours=1),
        message="Too many sensitive operations, please try again later.",
    ),
}


def build_subject_key(organization_id: str | None, identity: str, endpoint: str) -> str:
    """Build the counter key for a caller on an endpoint.

    Args:
        organization_id: Tenant of the caller, None when unauthenticated.
        identity: Subject id, or client address for anonymous callers.
        endpoint: Endpoint or route being throttled.

    Returns:
        Key of the form rate_limit:{organization}:{endpoint}:{identity}.
    """
    organization = organization_id or ANONYMOUS_ORGANIZATION
    return f"{SUBJECT_KEY_PREFIX}:{organization}:{endpoint}:{identity}"


def rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    """Render a decision as response headers.

    Limit, remaining and reset are sent on every response in both the
    standard and the legacy spelling; Retry-After only when throttled.
    """
    values = {
        "Limit": str(result.limit),
        "Remaining": str(result.remaining),
        "Reset": str(result.reset_epoch),
    }
    headers: dict[str, str] = {}
    for suffix, value in values.items():
        headers[f"X-RateLimit-{suffix}"] = value
        headers[f"X-Rate-Limit-{suffix}"] = value
    if not result.allowed and result.retry_after is not None:
        headers["Retry-After"] = str(result.retry_after)
    return headers


def _window_seconds(window: timedelta | float) -> float:
    seconds = window.total_seconds() if isinstance(window, timedelta) else float(window)
    if seconds <= 0:
        raise ValidationError("Rate limit window must be positive", {"window": seconds})
    return seconds


class RateLimiter:
    """Per-subject fixed window throttle.

    Attributes:
        _store: Window counter store.
        _clock: Returns the current UTC time.
    """

    def __init__(
        self,
        store: RateWindowStore,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._clock = clock

    @staticmethod
    def _window_bounds(now: datetime, window_seconds: float) -> tuple[datetime, datetime]:
        window_start = floor_to_window(now, window_seconds)
        return window_start, window_start + timedelta(seconds=window_seconds)

    async def check(
        self,
        subject_key: str,
        limit: int,
        window: timedelta | float,
    ) -> RateLimitResult:
        """Count a request and decide whether it is admitted.

        Args:
            subject_key: Key from build_subject_key().
            limit: Requests admitted per window.
            window: Window length.

        Returns:
            The decision. Throttled decisions carry retry_after.

        Raises:
            ValidationError: If the limit or window is not positive.
        """
        if limit < 1:
            raise ValidationError("Rate limit must be at least 1", {"limit": limit})
        window_seconds = _window_seconds(window)

        now = self._clock()
        window_start, window_end = self._window_bounds(now, window_seconds)

        try:
            state = await self._store.hit(subject_key, window_start, window_seconds, limit)
        except StorageUnavailable as e:
            logger.warning("rate_limit_store_unavailable", subject_key=subject_key, error=str(e))
            return RateLimitResult(allowed=True, limit=limit, remaining=limit, reset_at=window_end)

        remaining = max(0, limit - state.count)
        if state.count <= limit:
            return RateLimitResult(allowed=True, limit=limit, remaining=remaining, reset_at=window_end)

        retry_after = max(1, math.ceil((window_end - now).total_seconds()))
        logger.info(
            "rate_limited",
            subject_key=subject_key,
            count=state.count,
            limit=limit,
            retry_after=retry_after,
        )
        return RateLimitResult(
            allowed=False,
            limit=limit,
            remaining=0,
            reset_at=window_end,
            retry_after=retry_after,
        )

    async def check_policy(self, subject_key: str, policy: RateLimitPolicy) -> RateLimitResult:
        """Check a request against a named policy."""
        return await self.check(subject_key, policy.limit, policy.window)

    async def enforce(
        self,
        subject_key: str,
        limit: int,
        window: timedelta | float,
        message: str | None = None,
    ) -> RateLimitResult:
        """Count a request and raise if it is throttled.

        Raises:
            RateLimitExceeded: Carrying the throttled decision.
        """
        result = await self.check(subject_key, limit, window)
        if not result.allowed:
            if message is None:
                raise RateLimitExceeded(result)
            raise RateLimitExceeded(result, message)
        return result

    async def remaining(self, subject_key: str, limit: int, window: timedelta | float) -> int:
        """Requests left for a subject in the current window, without counting one."""
        window_seconds = _window_seconds(window)
        window_start, _ = self._window_bounds(self._clock(), window_seconds)
        try:
            state = await self._store.peek(subject_key)
        except StorageUnavailable as e:
            logger.warning("rate_limit_store_unavailable", subject_key=subject_key, error=str(e))
            return limit

        if state is None or state.window_start != window_start:
            return limit
        return max(0, limit - state.count)

    async def reset(self, subject_key: str) -> bool:
        """Clear a subject's counter.

        Returns:
            True if a counter existed.
        """
        try:
            cleared = await self._store.reset(subject_key)
        except StorageUnavailable as e:
            logger.warning("rate_limit_reset_failed", subject_key=subject_key, error=str(e))
            return False
        logger.debug("rate_limit_reset", subject_key=subject_key)
        return cleared

    async def purge_expired(self) -> int:
        """Drop counters whose window has ended.

        Returns:
            Number of counters removed.
        """
        try:
            return await self._store.purge_expired(self._clock())
        except StorageUnavailable as e:
            logger.warning("rate_limit_purge_failed", error=str(e))
            return 0
