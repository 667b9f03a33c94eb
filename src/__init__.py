"""LMS Governance Core.

Tenant isolation and resource governance for a multi-tenant learning
management system: credential resolution, access decisions, an
organization-scoped cache, request throttling and an immutable audit trail.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
