# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Organization cache endpoints.

This module provides administrative invalidation of cached data:
- DELETE /organizations/{organization_id}/cache - Drop every entry, or
  only those of one resource type
"""

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from src.api.dependencies import ClientContext, Components, CurrentPrincipal
from src.domains.access.permissions import Action
from src.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()

CACHE_RESOURCE_TYPE = "cache"
CACHE_INVALIDATED_ACTION = "admin.cache_invalidated"


class CacheInvalidationResponse(BaseModel):
    """Result of a cache invalidation."""

    organization_id: str = Field(..., description="Organization whose entries were dropped")
    resource_type: str | None = Field(None, description="Resource type, None for all")
    removed: int = Field(..., description="Entries removed")


@router.delete(
    "/{organization_id}/cache",
    response_model=CacheInvalidationResponse,
    summary="Invalidate organization cache",
    description="Remove cached entries of one organization. Never touches other tenants.",
)
async def invalidate_organization_cache(
    organization_id: str,
    principal: CurrentPrincipal,
    components: Components,
    context: ClientContext,
    resource_type: str | None = Query(default=None, min_length=1),
) -> CacheInvalidationResponse:
    """Invalidate an organization's cached entries."""
    await components.governor.enforce(
        principal,
        Action.INVALIDATE_CACHE,
        organization_id,
        resource_type=CACHE_RESOURCE_TYPE,
        resource_id=resource_type,
        context=context,
    )

    if resource_type is None:
        removed = await components.cache.invalidate_org(organization_id)
    else:
        removed = await components.cache.invalidate_prefix(organization_id, resource_type)

    logger.info(
        "cache_invalidated",
        organization_id=organization_id,
        resource_type=resource_type,
        removed=removed,
    )
    await components.audit_log.record_success(
        principal.subject_id,
        organization_id,
        CACHE_INVALIDATED_ACTION,
        resource_type=CACHE_RESOURCE_TYPE,
        resource_id=resource_type,
        details={"removed": removed},
        context=context,
    )

    return CacheInvalidationResponse(
        organization_id=organization_id,
        resource_type=resource_type,
        removed=removed,
    )
