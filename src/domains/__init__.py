# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer for tenant governance.

Domains:
    auth: Credential verification and principal resolution.
    access: Permission matrix and the access governor.
    audit: Append-only audit trail with governed queries.
"""
