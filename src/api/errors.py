# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Error responses.

Every governance error is rendered as:

    {"error": {"code", "message", "statusCode", "timestamp", "requestId"}}

Authorization failures always carry the generic "Access denied" message
so a caller cannot discover which organization owns a resource.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.core.exceptions import (
    AuthorizationError,
    GovernanceError,
    RateLimitExceeded,
    StorageUnavailable,
)
from src.infrastructure.rate_limit import rate_limit_headers
from src.utils.datetime import format_iso, utc_now
from src.utils.logging import get_logger

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
ACCESS_DENIED_MESSAGE = "Access denied"


def get_request_id(request: Request) -> str | None:
    """Request id assigned by the auth middleware, or sent by the client."""
    return getattr(request.state, "request_id", None) or request.headers.get(REQUEST_ID_HEADER)


def error_body(
    code: str,
    message: str,
    status_code: int,
    request_id: str | None = None,
) -> dict[str, dict[str, object]]:
    """Build the JSON error envelope."""
    error: dict[str, object] = {
        "code": code,
        "message": message,
        "statusCode": status_code,
        "timestamp": format_iso(utc_now()),
    }
    if request_id:
        error["requestId"] = request_id
    return {"error": error}


def error_response(request: Request, exc: GovernanceError) -> JSONResponse:
    """Render a governance error as a JSON response.

    Args:
        request: Request that failed.
        exc: Error to render.

    Returns:
        JSONResponse with the error envelope and any extra headers.
    """
    message = exc.message
    headers: dict[str, str] = {}

    if isinstance(exc, AuthorizationError):
        message = ACCESS_DENIED_MESSAGE
    elif isinstance(exc, RateLimitExceeded):
        headers.update(rate_limit_headers(exc.result))
    elif isinstance(exc, StorageUnavailable):
        # Driver messages stay in the log
        message = "Service temporarily unavailable"

    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.code, message, exc.status_code, get_request_id(request)),
        headers=headers or None,
    )


async def governance_error_handler(request: Request, exc: GovernanceError) -> JSONResponse:
    """Exception handler for every GovernanceError subclass."""
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, code=exc.code, error=str(exc))
    else:
        logger.info("request_rejected", path=request.url.path, code=exc.code)
    return error_response(request, exc)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render unexpected errors without leaking their details."""
    logger.exception("unhandled_error", path=request.url.path, error_type=type(exc).__name__)
    return JSONResponse(
        status_code=500,
        content=error_body(
            "INTERNAL_ERROR",
            "An unexpected error occurred",
            500,
            get_request_id(request),
        ),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the error handlers to an application."""
    app.add_exception_handler(GovernanceError, governance_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
