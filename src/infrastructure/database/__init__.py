# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure for the audit trail.

Example:
    from src.infrastructure.database import Database, AuditLogModel

    database = Database.from_settings(settings.database)
    await database.connect()
    async with database.session() as session:
        result = await session.execute(select(AuditLogModel))
"""

from src.infrastructure.database.connection import Database
from src.infrastructure.database.models import AuditLogModel, Base

__all__ = [
    "Database",
    "AuditLogModel",
    "Base",
]
