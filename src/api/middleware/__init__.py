# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API middleware components.

This package provides middleware for request processing:
- AuthMiddleware: Bearer token authentication and request ids.
- RateLimitMiddleware: Fixed window rate limiting per caller.

Exports:
    AuthMiddleware: Bearer token authentication middleware.
    RateLimitMiddleware: Rate limiting middleware.
"""

from src.api.middleware.auth import AuthMiddleware
from src.api.middleware.rate_limit import RateLimitMiddleware

__all__ = [
    "AuthMiddleware",
    "RateLimitMiddleware",
]
