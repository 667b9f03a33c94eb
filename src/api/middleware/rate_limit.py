# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Rate limiting middleware.

Counts every request against the caller's fixed window. Callers are keyed
by organization and subject when authenticated, and by client address
otherwise. Rate limit headers are added to every counted response.

Must run inside AuthMiddleware so request.state.principal is set.
"""

from typing import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from src.api.client_info import client_ip
from src.api.errors import error_response
from src.core.exceptions import RateLimitExceeded
from src.infrastructure.rate_limit import build_subject_key, rate_limit_headers
from src.utils.logging import get_logger

logger = get_logger(__name__)

# Health checks are never throttled
EXEMPT_PATH_PREFIXES = ("/health",)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-caller fixed window throttle for the whole API."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Count the request and answer 429 once the window is used up.

        Args:
            request: Incoming HTTP request.
            call_next: Next middleware/handler.

        Returns:
            HTTP response.
        """
        components = request.app.state.components
        settings = components.settings.rate_limit
        path = request.url.path

        if not settings.enabled or path.startswith(EXEMPT_PATH_PREFIXES):
            return await call_next(request)

        principal = getattr(request.state, "principal", None)
        if principal is not None:
            subject_key = build_subject_key(principal.organization_id, principal.subject_id, path)
        else:
            subject_key = build_subject_key(None, client_ip(request), path)

        result = await components.limiter.check(
            subject_key,
            limit=settings.requests,
            window=settings.window_seconds,
        )
        if not result.allowed:
            return error_response(request, RateLimitExceeded(result))

        response = await call_next(request)
        response.headers.update(rate_limit_headers(result))
        return response
