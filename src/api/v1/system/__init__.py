# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""System administration API endpoints.

This module provides API routes for platform-level administration:
- /system/audit-logs - Audit retention maintenance
"""

from fastapi import APIRouter

from src.api.v1.system.audit import router as audit_router

router = APIRouter(prefix="/system", tags=["System Administration"])

router.include_router(audit_router, tags=["System Audit"])

__all__ = ["router"]
