# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication domain.

This module turns signed bearer credentials into request principals:
- JWT token creation and validation
- Principal and role model
- AuthContext resolution from verified claims only

Exports:
    JWTManager: JWT token creation and validation.
    AuthContextResolver: Credential to Principal resolution.
    Principal: Resolved identity, role and tenant.
    Role: Platform roles.
"""

from src.domains.auth.jwt import JWTManager
from src.domains.auth.models import Principal, Role, system_principal
from src.domains.auth.resolver import AuthContextResolver

__all__ = [
    "JWTManager",
    "AuthContextResolver",
    "Principal",
    "Role",
    "system_principal",
]
