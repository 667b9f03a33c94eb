# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Fixed window rate limiting.

Example:
    from src.infrastructure.rate_limit import POLICIES, RateLimiter, build_subject_key

    result = await limiter.check_policy(
        build_subject_key(org_id, subject_id, "/api/v1/auth/login"),
        POLICIES["auth"],
    )
"""

from src.infrastructure.rate_limit.limiter import (
    ANONYMOUS_ORGANIZATION,
    POLICIES,
    RateLimiter,
    build_subject_key,
    rate_limit_headers,
)
from src.infrastructure.rate_limit.models import RateLimitPolicy, RateLimitResult, RateWindow
from src.infrastructure.rate_limit.stores import (
    InMemoryRateWindowStore,
    RateWindowStore,
    RedisRateWindowStore,
)

__all__ = [
    "ANONYMOUS_ORGANIZATION",
    "POLICIES",
    "RateLimiter",
    "build_subject_key",
    "rate_limit_headers",
    "RateLimitPolicy",
    "RateLimitResult",
    "RateWindow",
    "InMemoryRateWindowStore",
    "RateWindowStore",
    "RedisRateWindowStore",
]
