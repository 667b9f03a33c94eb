# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependency injection definitions.

This module provides dependency functions for FastAPI endpoints.
Dependencies are used to:
- Get the wired governance components
- Get the authenticated principal
- Get client information for audit records

Example:
    @router.get("/audit-logs")
    async def list_audit_logs(
        principal: CurrentPrincipal,
        components: Components,
    ):
        ...
"""

from typing import Annotated

from fastapi import Depends, Request

from src.api.client_info import extract_client_info
from src.api.components import GovernanceComponents
from src.core.exceptions import AuthenticationError, AuthenticationFailure
from src.domains.access.governor import RequestContext
from src.domains.auth.models import Principal


def get_components(request: Request) -> GovernanceComponents:
    """Get the components the application was built with."""
    return request.app.state.components


def require_principal(request: Request) -> Principal:
    """Require an authenticated principal.

    Raises:
        AuthenticationError: If the middleware resolved no principal.
    """
    principal = getattr(request.state, "principal", None)
    if principal is None:
        raise AuthenticationError(AuthenticationFailure.MISSING)
    return principal


def get_request_context(request: Request) -> RequestContext:
    """Get client information for audit records."""
    return extract_client_info(request)


Components = Annotated[GovernanceComponents, Depends(get_components)]
CurrentPrincipal = Annotated[Principal, Depends(require_principal)]
ClientContext = Annotated[RequestContext, Depends(get_request_context)]
