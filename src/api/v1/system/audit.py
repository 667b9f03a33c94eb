# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Audit retention endpoints.

This module provides platform-level audit maintenance:
- POST /audit-logs/purge - Delete records past a retention horizon
"""

from datetime import timedelta

from fastapi import APIRouter
from pydantic import BaseModel, Field

from src.api.dependencies import ClientContext, Components, CurrentPrincipal

router = APIRouter()


class PurgeRequest(BaseModel):
    """Audit purge request."""

    retention_days: int | None = Field(
        None,
        ge=1,
        description="Keep records newer than this many days; defaults to the configured retention",
    )


class PurgeResponse(BaseModel):
    """Audit purge result."""

    retention_days: int = Field(..., description="Retention horizon applied")
    deleted: int = Field(..., description="Records deleted")


@router.post(
    "/audit-logs/purge",
    response_model=PurgeResponse,
    summary="Purge old audit records",
    description="Delete audit records older than the retention horizon. SuperAdmin only.",
)
async def purge_audit_logs(
    principal: CurrentPrincipal,
    components: Components,
    context: ClientContext,
    request: PurgeRequest | None = None,
) -> PurgeResponse:
    """Purge audit records past retention."""
    retention_days = components.settings.audit.retention_days
    if request is not None and request.retention_days is not None:
        retention_days = request.retention_days

    deleted = await components.audit_log.purge_older_than(
        principal,
        timedelta(days=retention_days),
        context=context,
    )
    return PurgeResponse(retention_days=retention_days, deleted=deleted)
