# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Infrastructure layer for storage and background work.

This package contains:
- Database connection and audit table (PostgreSQL)
- Scoped cache backends (memory, Redis)
- Rate window stores (memory, Redis)
- Background maintenance scheduling (APScheduler)
"""
