# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Scheduler for periodic maintenance jobs.

Uses APScheduler's AsyncIOScheduler to run coroutine jobs on fixed
intervals inside the application's event loop.

Example:
    from src.infrastructure.background.scheduler import MaintenanceScheduler

    scheduler = MaintenanceScheduler()

    scheduler.add_interval_task(
        name="Sweep expired cache entries",
        job=cache.purge_expired,
        minutes=15,
    )

    await scheduler.start()
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import uuid4

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from src.utils.datetime import format_iso, utc_now
from src.utils.logging import get_logger

logger = get_logger(__name__)

MaintenanceJob = Callable[[], Awaitable[Any]]


@dataclass
class ScheduledTask:
    """Configuration and run statistics of a scheduled job.

    Attributes:
        id: Unique task identifier.
        name: Human-readable task name.
        job: Coroutine function to run.
        interval_seconds: Interval between runs.
        start_immediately: Run once as soon as the scheduler starts.
        enabled: Whether the task is enabled.
        last_run: Last run timestamp.
        last_result: Value returned by the last successful run.
        run_count: Total number of successful runs.
        error_count: Number of failed runs.
    """

    name: str
    job: MaintenanceJob
    interval_seconds: int
    start_immediately: bool = False
    id: str = field(default_factory=lambda: str(uuid4()))
    enabled: bool = True
    last_run: datetime | None = None
    last_result: Any = None
    run_count: int = 0
    error_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly snapshot without the job callable."""
        return {
            "id": self.id,
            "name": self.name,
            "interval_seconds": self.interval_seconds,
            "enabled": self.enabled,
            "last_run": format_iso(self.last_run),
            "last_result": self.last_result,
            "run_count": self.run_count,
            "error_count": self.error_count,
        }


class MaintenanceScheduler:
    """Interval scheduler for maintenance coroutines.

    Jobs only delete by expiry or age predicates, so they can run while
    requests are being served. A failing job is logged and counted; it
    never stops the scheduler.

    Attributes:
        _scheduler: APScheduler instance, None until started.
        _tasks: Dictionary of scheduled tasks.
        _running: Whether scheduler is running.
    """

    def __init__(self) -> None:
        self._scheduler: AsyncIOScheduler | None = None
        self._tasks: dict[str, ScheduledTask] = {}
        self._running = False

    @property
    def is_running(self) -> bool:
        """Whether start() has run and stop() has not."""
        return self._running

    def _schedule(self, task: ScheduledTask) -> None:
        if self._scheduler is None:
            return
        # next_run_time=None would add the job paused
        first_run = {"next_run_time": utc_now()} if task.start_immediately else {}
        self._scheduler.add_job(
            self._execute_task,
            trigger=IntervalTrigger(seconds=task.interval_seconds),
            args=[task.id],
            id=task.id,
            name=task.name,
            max_instances=1,
            coalesce=True,
            **first_run,
        )

    def add_interval_task(
        self,
        name: str,
        job: MaintenanceJob,
        seconds: int = 0,
        minutes: int = 0,
        hours: int = 0,
        enabled: bool = True,
        start_immediately: bool = False,
    ) -> ScheduledTask:
        """Add an interval-scheduled task.

        Tasks added before start() are scheduled when the scheduler starts.

        Args:
            name: Task name.
            job: Coroutine function to run.
            seconds: Interval seconds.
            minutes: Interval minutes.
            hours: Interval hours.
            enabled: Whether task is enabled.
            start_immediately: Run immediately on start.

        Returns:
            Created ScheduledTask.

        Raises:
            ValueError: If the interval is not positive.
        """
        interval = seconds + minutes * 60 + hours * 3600
        if interval <= 0:
            raise ValueError(f"Interval of task '{name}' must be positive")

        task = ScheduledTask(
            name=name,
            job=job,
            interval_seconds=interval,
            start_immediately=start_immediately,
            enabled=enabled,
        )
        self._tasks[task.id] = task

        if enabled:
            self._schedule(task)

        logger.info("maintenance_task_added", task=name, interval_seconds=interval)
        return task

    async def _execute_task(self, task_id: str) -> None:
        """Run one task, recording its result or counting its failure."""
        task = self._tasks.get(task_id)
        if not task or not task.enabled:
            return

        logger.debug("maintenance_task_started", task=task.name)

        try:
            task.last_result = await task.job()
            task.last_run = utc_now()
            task.run_count += 1
            logger.info("maintenance_task_completed", task=task.name, result=task.last_result)
        except Exception as e:
            task.error_count += 1
            logger.error("maintenance_task_failed", task=task.name, error=str(e))

    async def run_now(self, task_id: str) -> bool:
        """Run a task once outside its schedule.

        Returns:
            True if the task exists.
        """
        if task_id not in self._tasks:
            return False
        await self._execute_task(task_id)
        return True

    def remove_task(self, task_id: str) -> bool:
        """Unschedule and forget a task; False if the id is unknown."""
        task = self._tasks.pop(task_id, None)
        if task is None:
            return False

        if self._scheduler is not None:
            try:
                self._scheduler.remove_job(task_id)
            except JobLookupError:
                logger.debug("maintenance_job_not_scheduled", task_id=task_id)

        logger.info("maintenance_task_removed", task=task.name)
        return True

    def next_run_at(self, task_id: str) -> datetime | None:
        """When APScheduler will next fire a task; None if unscheduled or paused."""
        if self._scheduler is None:
            return None
        job = self._scheduler.get_job(task_id)
        return None if job is None else job.next_run_time

    def get_task(self, task_id: str) -> ScheduledTask | None:
        return self._tasks.get(task_id)

    def list_tasks(self) -> list[ScheduledTask]:
        return list(self._tasks.values())

    async def start(self) -> None:
        """Start the scheduler and schedule every enabled task."""
        if self._running:
            return

        self._scheduler = AsyncIOScheduler(timezone="UTC")
        for task in self._tasks.values():
            if task.enabled:
                self._schedule(task)
        self._scheduler.start()
        self._running = True

        logger.info("maintenance_scheduler_started", task_count=len(self._tasks))

    async def stop(self) -> None:
        """Stop the scheduler."""
        if not self._running:
            return

        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None

        self._running = False
        logger.info("maintenance_scheduler_stopped")

    def get_stats(self) -> dict[str, Any]:
        """Run and error totals plus a snapshot of every task."""
        return {
            "is_running": self._running,
            "task_count": len(self._tasks),
            "enabled_count": sum(1 for t in self._tasks.values() if t.enabled),
            "total_runs": sum(t.run_count for t in self._tasks.values()),
            "total_errors": sum(t.error_count for t in self._tasks.values()),
            "tasks": [t.to_dict() for t in self._tasks.values()],
        }
