# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy models for the governance database.

The only table owned by this layer is the append-only audit trail.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from src.utils.datetime import utc_now

DetailsType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Declarative base for all governance tables."""

    pass


class AuditLogModel(Base):
    """Row of the audit trail shared by all tenants.

    Rows are inserted and, once past retention, deleted. No code path
    updates them.
    """

    __tablename__ = "audit_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    # Null only for platform level events.
    organization_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    user_id: Mapped[str] = mapped_column(String(255))
    action: Mapped[str] = mapped_column(String(255))
    resource_type: Mapped[str | None] = mapped_column(String(255), nullable=True)
    resource_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    details: Mapped[dict[str, Any]] = mapped_column(DetailsType, default=dict)
    ip_address: Mapped[str] = mapped_column(String(255), default="unknown")
    user_agent: Mapped[str] = mapped_column(Text, default="unknown")
    outcome: Mapped[str] = mapped_column(String(16))

    __table_args__ = (
        Index("ix_audit_logs_organization_timestamp", "organization_id", "timestamp"),
        Index("ix_audit_logs_timestamp", "timestamp"),
        Index("ix_audit_logs_action", "action"),
        Index("ix_audit_logs_user_id", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<AuditLogModel {self.id} {self.action} org={self.organization_id}>"
