# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Cache entry and statistics types."""

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from src.utils.datetime import format_iso, parse_iso


@dataclass(frozen=True)
class CacheEntry:
    """A cached payload.

    Attributes:
        key: Full cache key, organization first.
        organization_id: Owning organization, repeated for predicate filtering.
        payload: Opaque serialized value.
        created_at: When the entry was written.
        expires_at: First instant at which the entry is stale.
    """

    key: str
    organization_id: str
    payload: str
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        """Check if the entry is stale at the given instant."""
        return now >= self.expires_at

    def to_json(self) -> str:
        """Serialize the entry for a key/value store."""
        return json.dumps(
            {
                "key": self.key,
                "organization_id": self.organization_id,
                "payload": self.payload,
                "created_at": format_iso(self.created_at),
                "expires_at": format_iso(self.expires_at),
            }
        )

    @classmethod
    def from_json(cls, raw: str) -> "CacheEntry":
        """Rebuild an entry written by to_json."""
        data: dict[str, Any] = json.loads(raw)
        return cls(
            key=data["key"],
            organization_id=data["organization_id"],
            payload=data["payload"],
            created_at=parse_iso(data["created_at"]),
            expires_at=parse_iso(data["expires_at"]),
        )


class CacheStats(BaseModel):
    """Snapshot of cache contents."""

    total_items: int = 0
    expired_items: int = 0
    organizations: list[str] = Field(default_factory=list)
    resource_types: list[str] = Field(default_factory=list)


class CacheHealth(BaseModel):
    """Cache health report with tuning recommendations."""

    healthy: bool
    stats: CacheStats
    recommendations: list[str] = Field(default_factory=list)
