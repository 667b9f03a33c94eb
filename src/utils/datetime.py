# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Time helpers for the governance layer.

Every datetime handled here is timezone-aware UTC. Cache expiry, rate
windows and audit retention all compare instants produced by these
helpers, so naive values never meet aware ones.

Usage:
    from src.utils.datetime import utc_now, floor_to_window

    now = utc_now()
    window_start = floor_to_window(now, 900)
"""

import math
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def utc_from_timestamp(timestamp: float) -> datetime:
    """Aware UTC datetime for a Unix timestamp in seconds."""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


def to_epoch_ms(dt: datetime) -> int:
    """Milliseconds since the epoch, as stored in Redis window hashes."""
    return round(ensure_utc(dt).timestamp() * 1000)


def from_epoch_ms(value: int | str) -> datetime:
    """Inverse of to_epoch_ms."""
    return utc_from_timestamp(int(value) / 1000)


def floor_to_window(moment: datetime, window_seconds: float) -> datetime:
    """Start of the fixed window containing an instant.

    Windows are aligned to the epoch: the window id of an instant is
    floor(timestamp / window_seconds). An instant exactly on a boundary
    starts the new window.

    Args:
        moment: Instant to place.
        window_seconds: Positive window length.

    Returns:
        Start of the window as an aware UTC datetime.
    """
    window_id = math.floor(moment.timestamp() / window_seconds)
    return utc_from_timestamp(window_id * window_seconds)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Normalize a datetime to aware UTC.

    Naive values are assumed to already be UTC; this is how SQLite returns
    timestamps from the audit table.

    Args:
        dt: Naive or aware datetime, or None.

    Returns:
        Aware UTC datetime, or None.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_iso(dt: datetime | None) -> str | None:
    """ISO 8601 rendering in UTC, None passes through."""
    if dt is None:
        return None
    return ensure_utc(dt).isoformat()


def parse_iso(iso_string: str | None) -> datetime | None:
    """Parse ISO 8601 (a trailing Z is accepted) into aware UTC."""
    if iso_string is None:
        return None
    return ensure_utc(datetime.fromisoformat(iso_string.replace("Z", "+00:00")))
