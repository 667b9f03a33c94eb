# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Audit domain.

The AuditLog service lives in src.domains.audit.service; it depends on the
access governor, which itself writes audit events, so it is not
re-exported here.

Exports:
    AuditEvent: Event handed to the log.
    AuditRecord: Persisted record.
    AuditQuery: Query filters.
    InMemoryAuditStore: Process-local store.
    SQLAlchemyAuditStore: audit_logs table store.
"""

from src.domains.audit.models import (
    AuditEvent,
    AuditOutcome,
    AuditPage,
    AuditQuery,
    AuditRecord,
    AuditStats,
)
from src.domains.audit.store import AuditStore, InMemoryAuditStore, SQLAlchemyAuditStore

__all__ = [
    "AuditEvent",
    "AuditOutcome",
    "AuditPage",
    "AuditQuery",
    "AuditRecord",
    "AuditStats",
    "AuditStore",
    "InMemoryAuditStore",
    "SQLAlchemyAuditStore",
]
