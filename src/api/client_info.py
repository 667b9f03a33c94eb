# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Client address and agent extraction for audit records."""

from fastapi import Request

from src.domains.access.governor import RequestContext
from src.domains.audit.models import UNKNOWN_CLIENT

FORWARDED_FOR_HEADER = "X-Forwarded-For"


def client_ip(request: Request) -> str:
    """First hop of X-Forwarded-For, else the peer address, else "unknown"."""
    forwarded = request.headers.get(FORWARDED_FOR_HEADER)
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_CLIENT


def extract_client_info(request: Request) -> RequestContext:
    """Collect the client information recorded with audit events.

    Args:
        request: Incoming request.

    Returns:
        RequestContext with the client address, user agent and request id.
    """
    return RequestContext(
        client_ip=client_ip(request),
        client_agent=request.headers.get("User-Agent") or UNKNOWN_CLIENT,
        request_id=getattr(request.state, "request_id", None),
    )
