# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Audit log service.

Records security-relevant events and serves governed reads of the trail.

Writes are best effort: a storage failure is logged and swallowed so the
action that triggered the audit attempt still completes. Denial events
get one retry before being given up.

Reads are authorized through the access governor. An OrgAdmin may read
its own organization only; a SuperAdmin may read any single organization.

Example:
    >>> audit_log = AuditLog(InMemoryAuditStore())
    >>> await audit_log.record_success("user-1", "org-1", "data.update", "course", "c-1")
    >>> page = await audit_log.query(admin, AuditQuery(organization_id="org-1"))
"""

from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from src.core.exceptions import StorageUnavailable
from src.domains.access.governor import AccessGovernor, RequestContext
from src.domains.access.permissions import Action
from src.domains.audit.models import (
    AuditEvent,
    AuditOutcome,
    AuditPage,
    AuditQuery,
    AuditRecord,
    AuditStats,
)
from src.domains.audit.store import AuditStore
from src.domains.auth.models import Principal
from src.utils.datetime import format_iso, utc_now
from src.utils.logging import get_logger

logger = get_logger(__name__)

RETENTION_PURGE_ACTION = "audit.retention_purge"
AUDIT_RESOURCE_TYPE = "audit_log"
DENIAL_WRITE_ATTEMPTS = 2


class AuditLog:
    """Append-only audit trail with governed queries.

    Attributes:
        _store: Backing store.
        _governor: Authorizes queries and purges.
        _clock: Source of record timestamps.
        _default_page_size: Page size used when a query asks for none.
        _max_page_size: Upper bound on a page.
    """

    def __init__(
        self,
        store: AuditStore,
        governor: AccessGovernor | None = None,
        clock: Callable[[], datetime] = utc_now,
        default_page_size: int = 50,
        max_page_size: int = 500,
    ) -> None:
        """Initialize the audit log.

        Args:
            store: Backing store for records.
            governor: Access governor for reads. When omitted, a governor
                that records its denials into this log is created.
            clock: Returns the current UTC time.
            default_page_size: Page size used when a query asks for none.
            max_page_size: Upper bound on a page.
        """
        self._store = store
        self._governor = governor or AccessGovernor(recorder=self)
        self._clock = clock
        self._default_page_size = default_page_size
        self._max_page_size = max_page_size

    @property
    def governor(self) -> AccessGovernor:
        """Access governor used to authorize reads of this log."""
        return self._governor

    async def _insert(self, event: AuditEvent) -> AuditRecord:
        record = AuditRecord.from_event(event, timestamp=self._clock())
        await self._store.insert(record)
        return record

    async def record(self, event: AuditEvent) -> None:
        """Persist an event.

        Storage failures are logged and never raised.

        Args:
            event: Event to record.
        """
        try:
            await self._insert(event)
        except StorageUnavailable as e:
            logger.error(
                "audit_write_failed",
                action=event.action,
                organization_id=event.organization_id,
                subject_id=event.subject_id,
                error=str(e),
            )

    async def record_denial(self, event: AuditEvent) -> None:
        """Persist an authorization denial, retrying once on failure.

        Args:
            event: Denial event.
        """
        for attempt in range(1, DENIAL_WRITE_ATTEMPTS + 1):
            try:
                await self._insert(event)
                return
            except StorageUnavailable as e:
                logger.warning(
                    "audit_denial_write_failed",
                    action=event.action,
                    organization_id=event.organization_id,
                    attempt=attempt,
                    error=str(e),
                )

        logger.error(
            "audit_denial_dropped",
            action=event.action,
            organization_id=event.organization_id,
            subject_id=event.subject_id,
        )

    async def _record_outcome(
        self,
        outcome: AuditOutcome,
        subject_id: str,
        organization_id: str | None,
        action: str,
        resource_type: str | None,
        resource_id: str | None,
        details: dict[str, Any] | None,
        context: RequestContext | None,
    ) -> None:
        context = context or RequestContext()
        payload = dict(details or {})
        if context.request_id and "request_id" not in payload:
            payload["request_id"] = context.request_id
        await self.record(
            AuditEvent(
                subject_id=subject_id,
                organization_id=organization_id,
                action=action,
                resource_type=resource_type,
                resource_id=resource_id,
                outcome=outcome,
                details=payload,
                client_ip=context.client_ip,
                client_agent=context.client_agent,
            )
        )

    async def record_success(
        self,
        subject_id: str,
        organization_id: str | None,
        action: str,
        resource_type: str | None = None,
        resource_id: str | None = None,
        details: dict[str, Any] | None = None,
        context: RequestContext | None = None,
    ) -> None:
        """Record a successful action."""
        await self._record_outcome(
            AuditOutcome.SUCCESS,
            subject_id,
            organization_id,
            action,
            resource_type,
            resource_id,
            details,
            context,
        )

    async def record_failure(
        self,
        subject_id: str,
        organization_id: str | None,
        action: str,
        resource_type: str | None = None,
        resource_id: str | None = None,
        details: dict[str, Any] | None = None,
        context: RequestContext | None = None,
    ) -> None:
        """Record an action that was refused."""
        await self._record_outcome(
            AuditOutcome.FAILURE,
            subject_id,
            organization_id,
            action,
            resource_type,
            resource_id,
            details,
            context,
        )

    async def record_error(
        self,
        subject_id: str,
        organization_id: str | None,
        action: str,
        error: BaseException,
        resource_type: str | None = None,
        resource_id: str | None = None,
        details: dict[str, Any] | None = None,
        context: RequestContext | None = None,
    ) -> None:
        """Record an action that failed with an exception.

        The exception type and message are stored in the record details.
        """
        payload = dict(details or {})
        payload["error"] = type(error).__name__
        payload["message"] = str(error)
        await self._record_outcome(
            AuditOutcome.ERROR,
            subject_id,
            organization_id,
            action,
            resource_type,
            resource_id,
            payload,
            context,
        )

    async def query(
        self,
        principal: Principal,
        filters: AuditQuery,
        context: RequestContext | None = None,
    ) -> AuditPage:
        """Read one page of an organization's audit trail, newest first.

        Args:
            principal: Caller.
            filters: Query filters, always scoped to one organization.
            context: Client information, recorded if the read is denied.

        Returns:
            Page of matching records.

        Raises:
            AuthorizationError: If the caller may not read the organization.
            StorageUnavailable: If the store cannot be read.
        """
        await self._governor.enforce(
            principal,
            Action.QUERY_AUDIT_LOG,
            filters.organization_id,
            resource_type=AUDIT_RESOURCE_TYPE,
            context=context,
        )

        limit = min(filters.limit or self._default_page_size, self._max_page_size)
        bounded = filters.model_copy(update={"limit": limit})
        records, total = await self._store.query(bounded)

        return AuditPage(records=records, total=total, limit=limit, offset=bounded.offset)

    async def stats(
        self,
        principal: Principal,
        organization_id: str,
        days: int = 30,
        context: RequestContext | None = None,
    ) -> AuditStats:
        """Summarize an organization's audit activity.

        Args:
            principal: Caller.
            organization_id: Organization to summarize.
            days: Length of the daily activity window.
            context: Client information, recorded if the read is denied.

        Returns:
            Aggregated statistics.

        Raises:
            AuthorizationError: If the caller may not read the organization.
        """
        await self._governor.enforce(
            principal,
            Action.QUERY_AUDIT_LOG,
            organization_id,
            resource_type=AUDIT_RESOURCE_TYPE,
            context=context,
        )
        since = self._clock() - timedelta(days=days)
        return await self._store.stats(organization_id, since)

    async def purge_older_than(
        self,
        principal: Principal,
        older_than: timedelta,
        context: RequestContext | None = None,
    ) -> int:
        """Delete records older than a retention horizon.

        Only a SuperAdmin (including the system principal) may purge. Rows
        at or newer than the cutoff are never touched, so repeated runs are
        safe alongside live traffic.

        Args:
            principal: Caller.
            older_than: Retention horizon.
            context: Client information for the audit trail.

        Returns:
            Number of records deleted.

        Raises:
            AuthorizationError: If the caller is not a SuperAdmin.
        """
        await self._governor.enforce(
            principal,
            Action.PURGE_AUDIT_LOG,
            principal.organization_id,
            resource_type=AUDIT_RESOURCE_TYPE,
            context=context,
        )

        cutoff = self._clock() - older_than
        deleted = await self._store.delete_older_than(cutoff)

        logger.info("audit_retention_purge", deleted=deleted, cutoff=format_iso(cutoff))
        await self.record_success(
            principal.subject_id,
            principal.organization_id,
            RETENTION_PURGE_ACTION,
            resource_type=AUDIT_RESOURCE_TYPE,
            details={"deleted": deleted, "cutoff": format_iso(cutoff)},
            context=context,
        )
        return deleted
