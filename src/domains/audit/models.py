# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Audit trail data models.

AuditEvent is what callers hand to the audit log; AuditRecord is the
immutable persisted form. The external wire shape of a record is produced
by AuditRecord.to_wire() and must stay stable:

    {id, timestamp, userId, organizationId, action, resourceType,
     resourceId, details, ipAddress, userAgent, outcome}
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.utils.datetime import ensure_utc, format_iso, utc_now

UNKNOWN_CLIENT = "unknown"


class AuditOutcome(str, Enum):
    """Result of an audited action."""

    SUCCESS = "success"
    FAILURE = "failure"
    ERROR = "error"


class AuditEvent(BaseModel):
    """A security-relevant event to be recorded.

    Attributes:
        subject_id: Acting user.
        organization_id: Tenant of the actor (None for platform actions).
        action: Namespaced action, e.g. data.update or access.enroll.
        resource_type: Type of the affected resource.
        resource_id: Identifier of the affected resource.
        outcome: success, failure or error.
        details: Opaque structured payload.
        client_ip: Caller address.
        client_agent: Caller user agent.
    """

    model_config = ConfigDict(frozen=True)

    subject_id: str
    organization_id: str | None
    action: str
    resource_type: str | None = None
    resource_id: str | None = None
    outcome: AuditOutcome
    details: dict[str, Any] = Field(default_factory=dict)
    client_ip: str = UNKNOWN_CLIENT
    client_agent: str = UNKNOWN_CLIENT


class AuditRecord(BaseModel):
    """Persisted, immutable audit record."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = Field(default_factory=utc_now)
    subject_id: str
    organization_id: str | None
    action: str
    resource_type: str | None = None
    resource_id: str | None = None
    outcome: AuditOutcome
    details: dict[str, Any] = Field(default_factory=dict)
    client_ip: str = UNKNOWN_CLIENT
    client_agent: str = UNKNOWN_CLIENT

    @classmethod
    def from_event(cls, event: AuditEvent, timestamp: datetime | None = None) -> "AuditRecord":
        """Create a record for an event, assigning id and timestamp."""
        return cls(
            timestamp=timestamp or utc_now(),
            **event.model_dump(),
        )

    def to_wire(self) -> dict[str, Any]:
        """Render the record in its external shape."""
        return {
            "id": self.id,
            "timestamp": format_iso(self.timestamp),
            "userId": self.subject_id,
            "organizationId": self.organization_id,
            "action": self.action,
            "resourceType": self.resource_type,
            "resourceId": self.resource_id,
            "details": self.details,
            "ipAddress": self.client_ip,
            "userAgent": self.client_agent,
            "outcome": self.outcome.value,
        }


class AuditQuery(BaseModel):
    """Filters for an audit query.

    organization_id is mandatory: every read of the shared audit table is
    scoped to exactly one tenant.
    """

    organization_id: str
    subject_id: str | None = None
    action: str | None = None
    resource_type: str | None = None
    outcome: AuditOutcome | None = None
    start: datetime | None = None
    end: datetime | None = None
    limit: int | None = Field(default=None, ge=1)
    offset: int = Field(default=0, ge=0)

    @field_validator("start", "end")
    @classmethod
    def normalize_bounds(cls, value: datetime | None) -> datetime | None:
        """Treat offset-less bounds as UTC."""
        return ensure_utc(value)


class AuditPage(BaseModel):
    """One page of audit records, newest first."""

    records: list[AuditRecord]
    total: int
    limit: int
    offset: int

    @property
    def has_more(self) -> bool:
        """Check if records exist beyond this page."""
        return self.offset + len(self.records) < self.total


class ActionCount(BaseModel):
    action: str
    count: int


class SubjectCount(BaseModel):
    subject_id: str
    count: int


class DailyCount(BaseModel):
    date: str
    count: int


class AuditStats(BaseModel):
    """Aggregate activity for one organization."""

    total: int = 0
    success_count: int = 0
    failure_count: int = 0
    error_count: int = 0
    top_actions: list[ActionCount] = Field(default_factory=list)
    top_subjects: list[SubjectCount] = Field(default_factory=list)
    daily_activity: list[DailyCount] = Field(default_factory=list)


def summarize_records(records: list[AuditRecord], since: datetime, top_n: int = 10) -> AuditStats:
    """Aggregate records into statistics.

    Counts cover every given record; daily activity only counts records
    at or after ``since``.

    Args:
        records: Records of a single organization.
        since: Start of the daily activity window.
        top_n: Size of the top action and top subject lists.

    Returns:
        Aggregated statistics.
    """
    action_counts: dict[str, int] = {}
    subject_counts: dict[str, int] = {}
    daily: dict[str, int] = {}
    outcomes = {outcome: 0 for outcome in AuditOutcome}

    for record in records:
        outcomes[record.outcome] += 1
        action_counts[record.action] = action_counts.get(record.action, 0) + 1
        subject_counts[record.subject_id] = subject_counts.get(record.subject_id, 0) + 1
        if record.timestamp >= since:
            day = record.timestamp.date().isoformat()
            daily[day] = daily.get(day, 0) + 1

    top_actions = sorted(action_counts.items(), key=lambda item: (-item[1], item[0]))[:top_n]
    top_subjects = sorted(subject_counts.items(), key=lambda item: (-item[1], item[0]))[:top_n]

    return AuditStats(
        total=len(records),
        success_count=outcomes[AuditOutcome.SUCCESS],
        failure_count=outcomes[AuditOutcome.FAILURE],
        error_count=outcomes[AuditOutcome.ERROR],
        top_actions=[ActionCount(action=a, count=c) for a, c in top_actions],
        top_subjects=[SubjectCount(subject_id=s, count=c) for s, c in top_subjects],
        daily_activity=[DailyCount(date=d, count=c) for d, c in sorted(daily.items())],
    )
