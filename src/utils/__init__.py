# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared helpers: structured logging and UTC time handling."""

from src.utils.datetime import (
    ensure_utc,
    floor_to_window,
    format_iso,
    from_epoch_ms,
    parse_iso,
    to_epoch_ms,
    utc_from_timestamp,
    utc_now,
)
from src.utils.logging import (
    REDACTED,
    bind_context,
    clear_context,
    get_logger,
    redact_credentials,
    setup_logging,
)

__all__ = [
    "REDACTED",
    "bind_context",
    "clear_context",
    "ensure_utc",
    "floor_to_window",
    "format_iso",
    "from_epoch_ms",
    "get_logger",
    "parse_iso",
    "redact_credentials",
    "setup_logging",
    "to_epoch_ms",
    "utc_from_timestamp",
    "utc_now",
]
