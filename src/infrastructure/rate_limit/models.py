# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Rate limiting types."""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta


@dataclass(frozen=True)
class RateWindow:
    """Counter state of one subject in one fixed window.

    Attributes:
        subject_key: rate_limit:{organization}:{endpoint}:{identity}.
        window_start: Start of the window the count belongs to.
        window_seconds: Window length.
        count: Requests seen in the window, including throttled ones.
        limit: Requests admitted per window.
        blocked_until: End of the window once the limit was exceeded.
    """

    subject_key: str
    window_start: datetime
    window_seconds: float
    count: int
    limit: int
    blocked_until: datetime | None = None

    @property
    def window_end(self) -> datetime:
        return self.window_start + timedelta(seconds=self.window_seconds)

    def is_stale(self, now: datetime) -> bool:
        """Check if the window has fully elapsed."""
        return now >= self.window_end


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a rate limit check.

    Attributes:
        allowed: Whether the request is admitted.
        limit: Requests admitted per window.
        remaining: Requests left in the current window.
        reset_at: When the current window ends.
        retry_after: Whole seconds until a retry can succeed, only when
            throttled.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: datetime
    retry_after: int | None = None

    @property
    def reset_epoch(self) -> int:
        """Window end as Unix seconds, rounded up."""
        return math.ceil(self.reset_at.timestamp())


@dataclass(frozen=True)
class RateLimitPolicy:
    """Named limit applied to a class of endpoints."""

    name: str
    limit: int
    window: timedelta
    message: str = "Rate limit exceeded, please try again later."
