# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Background maintenance.

Periodic jobs, run by APScheduler inside the API process:
- Expired cache entry sweep
- Elapsed rate window sweep
- Audit retention purge

Example:
    from src.infrastructure.background import MaintenanceScheduler, register_maintenance_tasks

    scheduler = MaintenanceScheduler()
    register_maintenance_tasks(scheduler, cache, limiter, audit_log, settings.maintenance, settings.audit)
    await scheduler.start()
"""

from src.infrastructure.background.maintenance import (
    purge_audit_retention,
    register_maintenance_tasks,
    sweep_expired_cache,
    sweep_rate_windows,
)
from src.infrastructure.background.scheduler import MaintenanceScheduler, ScheduledTask

__all__ = [
    "MaintenanceScheduler",
    "ScheduledTask",
    "purge_audit_retention",
    "register_maintenance_tasks",
    "sweep_expired_cache",
    "sweep_rate_windows",
]
