# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Access governance domain.

Exports:
    AccessGovernor: Tenant and role based authorization.
    AccessDecision: Result of an authorization check.
    Action: Actions covered by the permission matrix.
    RequestContext: Client information for audit records.
"""

from src.domains.access.governor import (
    AccessDecision,
    AccessGovernor,
    AuditRecorder,
    DenialReason,
    RequestContext,
)
from src.domains.access.permissions import PERMISSION_MATRIX, Action, required_role, role_can_perform

__all__ = [
    "AccessDecision",
    "AccessGovernor",
    "AuditRecorder",
    "DenialReason",
    "RequestContext",
    "Action",
    "PERMISSION_MATRIX",
    "required_role",
    "role_can_perform",
]
