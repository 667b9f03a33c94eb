# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Maintenance jobs for the governance stores.

Each job deletes only by expiry or age, so running one twice, or while
requests are in flight, is harmless.
"""

from datetime import timedelta
from functools import partial
from typing import TYPE_CHECKING

from src.core.config.settings import AuditSettings, MaintenanceSettings
from src.domains.auth.models import system_principal
from src.infrastructure.background.scheduler import MaintenanceScheduler
from src.utils.logging import get_logger

if TYPE_CHECKING:
    from src.domains.audit.service import AuditLog
    from src.infrastructure.cache.scoped_cache import ScopedCache
    from src.infrastructure.rate_limit.limiter import RateLimiter

logger = get_logger(__name__)


async def sweep_expired_cache(cache: "ScopedCache") -> int:
    """Remove stale cache entries.

    Returns:
        Number of entries removed.
    """
    removed = await cache.purge_expired()
    logger.info("cache_sweep_completed", removed=removed)
    return removed


async def sweep_rate_windows(limiter: "RateLimiter") -> int:
    """Remove counters of windows that have ended.

    Returns:
        Number of counters removed.
    """
    removed = await limiter.purge_expired()
    logger.info("rate_window_sweep_completed", removed=removed)
    return removed


async def purge_audit_retention(audit_log: "AuditLog", retention_days: int) -> int:
    """Delete audit records older than the retention horizon.

    Runs as the system principal.

    Returns:
        Number of records deleted.
    """
    return await audit_log.purge_older_than(system_principal(), timedelta(days=retention_days))


def register_maintenance_tasks(
    scheduler: MaintenanceScheduler,
    cache: "ScopedCache",
    limiter: "RateLimiter",
    audit_log: "AuditLog",
    maintenance: MaintenanceSettings,
    audit: AuditSettings,
) -> None:
    """Add the cache, rate window and audit retention jobs to a scheduler."""
    scheduler.add_interval_task(
        name="Sweep expired cache entries",
        job=partial(sweep_expired_cache, cache),
        minutes=maintenance.cache_sweep_minutes,
    )
    scheduler.add_interval_task(
        name="Sweep elapsed rate windows",
        job=partial(sweep_rate_windows, limiter),
        minutes=maintenance.rate_window_sweep_minutes,
    )
    scheduler.add_interval_task(
        name="Purge audit records past retention",
        job=partial(purge_audit_retention, audit_log, audit.retention_days),
        hours=maintenance.audit_purge_hours,
    )
