# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Audit log endpoints.

This module provides read access to an organization's audit trail:
- GET /audit-logs - Page through records, newest first
- GET /audit-logs/stats - Activity summary

Both are restricted to OrgAdmins of the organization and to SuperAdmins.
"""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from src.api.dependencies import ClientContext, Components, CurrentPrincipal
from src.domains.audit.models import AuditOutcome, AuditQuery, AuditStats

router = APIRouter()


class AuditLogListResponse(BaseModel):
    """One page of audit records."""

    logs: list[dict[str, Any]] = Field(..., description="Records in their external shape")
    total: int = Field(..., description="Records matching the filters")
    limit: int = Field(..., description="Page size applied")
    offset: int = Field(..., description="Records skipped")
    has_more: bool = Field(..., description="Whether another page exists")


@router.get(
    "",
    response_model=AuditLogListResponse,
    summary="Query audit logs",
    description="Page through one organization's audit records, newest first.",
)
async def list_audit_logs(
    principal: CurrentPrincipal,
    components: Components,
    context: ClientContext,
    organization_id: str = Query(..., min_length=1),
    user_id: str | None = Query(default=None),
    action: str | None = Query(default=None),
    resource_type: str | None = Query(default=None),
    outcome: AuditOutcome | None = Query(default=None),
    start_date: datetime | None = Query(default=None),
    end_date: datetime | None = Query(default=None),
    limit: int | None = Query(default=None, ge=1),
    offset: int = Query(default=0, ge=0),
) -> AuditLogListResponse:
    """Query audit records of an organization."""
    filters = AuditQuery(
        organization_id=organization_id,
        subject_id=user_id,
        action=action,
        resource_type=resource_type,
        outcome=outcome,
        start=start_date,
        end=end_date,
        limit=limit,
        offset=offset,
    )
    page = await components.audit_log.query(principal, filters, context=context)

    return AuditLogListResponse(
        logs=[record.to_wire() for record in page.records],
        total=page.total,
        limit=page.limit,
        offset=page.offset,
        has_more=page.has_more,
    )


@router.get(
    "/stats",
    response_model=AuditStats,
    summary="Audit activity statistics",
    description="Outcome counts, top actions, top users and daily activity.",
)
async def get_audit_stats(
    principal: CurrentPrincipal,
    components: Components,
    context: ClientContext,
    organization_id: str = Query(..., min_length=1),
    days: int = Query(default=30, ge=1, le=366),
) -> AuditStats:
    """Summarize audit activity of an organization."""
    return await components.audit_log.stats(principal, organization_id, days=days, context=context)
