# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API v1 routes package.

This package contains all v1 API endpoint definitions.
Each module provides a FastAPI router for a specific domain.

Modules:
    audit: Audit log query and statistics endpoints.
    cache: Organization cache invalidation endpoints.
    system: System administration endpoints (audit retention).
"""

from fastapi import APIRouter

from src.api.v1 import audit, cache
from src.api.v1.system import router as system_router

# Create the main v1 router
router = APIRouter(prefix="/api/v1")

# Include domain routers
router.include_router(audit.router, prefix="/audit-logs", tags=["Audit Logs"])
router.include_router(cache.router, prefix="/organizations", tags=["Cache"])

# System administration routes (SuperAdmin only)
router.include_router(system_router)
