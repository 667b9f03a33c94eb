# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the audit log service."""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from src.core.exceptions import AuthorizationError, StorageUnavailable
from src.domains.access.governor import RequestContext
from src.domains.audit.models import (
    AuditEvent,
    AuditOutcome,
    AuditQuery,
    AuditRecord,
)
from src.domains.audit.service import RETENTION_PURGE_ACTION, AuditLog
from src.domains.audit.store import AuditStore, InMemoryAuditStore
from src.domains.auth.models import Principal, Role, system_principal


def _event(organization_id: str | None, action: str = "data.read", **overrides) -> AuditEvent:
    fields = {
        "subject_id": "user-1",
        "organization_id": organization_id,
        "action": action,
        "outcome": AuditOutcome.SUCCESS,
    }
    fields.update(overrides)
    return AuditEvent(**fields)


@pytest.fixture
def failing_store() -> AsyncMock:
    """Store whose inserts always fail."""
    store = AsyncMock(spec=AuditStore)
    store.insert.side_effect = StorageUnavailable("Database operation failed")
    return store


class TestAuditRecord:
    """Tests for the record models."""

    def test_from_event_assigns_id_and_timestamp(self, clock) -> None:
        """Test that records get an id and the given timestamp."""
        record = AuditRecord.from_event(_event("org-a"), timestamp=clock())

        assert record.id
        assert record.timestamp == clock()
        assert record.client_ip == "unknown"

    def test_wire_shape(self, clock) -> None:
        """Test the external field names."""
        record = AuditRecord.from_event(
            _event("org-a", resource_type="course", resource_id="42", client_ip="10.0.0.1"),
            timestamp=clock(),
        )

        wire = record.to_wire()

        assert set(wire) == {
            "id",
            "timestamp",
            "userId",
            "organizationId",
            "action",
            "resourceType",
            "resourceId",
            "details",
            "ipAddress",
            "userAgent",
            "outcome",
        }
        assert wire["organizationId"] == "org-a"
        assert wire["ipAddress"] == "10.0.0.1"
        assert wire["outcome"] == "success"

    def test_records_are_immutable(self, clock) -> None:
        """Test that a record cannot be changed after creation."""
        record = AuditRecord.from_event(_event("org-a"), timestamp=clock())

        with pytest.raises(ValueError):
            record.action = "data.delete"  # type: ignore[misc]


class TestRecord:
    """Tests for writing records."""

    async def test_record_persists(self, audit_log: AuditLog, audit_store: InMemoryAuditStore) -> None:
        """Test that record() appends one record."""
        await audit_log.record(_event("org-a"))

        assert len(audit_store) == 1

    async def test_record_swallows_storage_failure(self, failing_store: AsyncMock) -> None:
        """Test that a failed write never raises into the caller."""
        audit_log = AuditLog(failing_store)

        await audit_log.record(_event("org-a"))

        failing_store.insert.assert_awaited_once()

    async def test_denial_is_retried_once(self, failing_store: AsyncMock) -> None:
        """Test that denial writes get a second attempt."""
        audit_log = AuditLog(failing_store)

        await audit_log.record_denial(_event("org-a", outcome=AuditOutcome.FAILURE))

        assert failing_store.insert.await_count == 2

    async def test_denial_retry_succeeds(self) -> None:
        """Test that a transient failure on the first attempt still persists."""
        store = AsyncMock(spec=AuditStore)
        store.insert.side_effect = [StorageUnavailable("blip"), None]
        audit_log = AuditLog(store)

        await audit_log.record_denial(_event("org-a", outcome=AuditOutcome.FAILURE))

        assert store.insert.await_count == 2

    async def test_record_error_captures_exception(
        self,
        audit_log: AuditLog,
        audit_store: InMemoryAuditStore,
    ) -> None:
        """Test that record_error stores the exception type and message."""
        await audit_log.record_error(
            "user-1",
            "org-a",
            "data.update",
            KeyError("course"),
            resource_type="course",
            context=RequestContext(client_ip="10.0.0.7", client_agent="pytest", request_id="req-9"),
        )

        records, _ = await audit_store.query(AuditQuery(organization_id="org-a"))
        assert records[0].outcome is AuditOutcome.ERROR
        assert records[0].details["error"] == "KeyError"
        assert records[0].details["request_id"] == "req-9"
        assert records[0].client_agent == "pytest"

    async def test_record_success_and_failure(
        self,
        audit_log: AuditLog,
        audit_store: InMemoryAuditStore,
    ) -> None:
        """Test the outcome helpers."""
        await audit_log.record_success("user-1", "org-a", "auth.login")
        await audit_log.record_failure("user-1", "org-a", "auth.login", details={"reason": "bad password"})

        records, total = await audit_store.query(AuditQuery(organization_id="org-a"))
        assert total == 2
        assert {r.outcome for r in records} == {AuditOutcome.SUCCESS, AuditOutcome.FAILURE}


class TestQuery:
    """Tests for governed queries."""

    @pytest.fixture
    async def populated(self, audit_log: AuditLog, clock) -> AuditLog:
        """Audit log with records in two organizations."""
        for index in range(3):
            await audit_log.record(_event("org-x", action=f"data.read.{index}"))
            clock.advance(1)
        await audit_log.record(_event("org-y"))
        clock.advance(1)
        await audit_log.record(_event("org-x", action="data.delete", outcome=AuditOutcome.FAILURE))
        return audit_log

    async def test_super_admin_query_is_scoped(self, populated: AuditLog, super_admin: Principal) -> None:
        """Test that even a SuperAdmin query only returns the named organization."""
        page = await populated.query(super_admin, AuditQuery(organization_id="org-x"))

        assert page.total == 4
        assert all(r.organization_id == "org-x" for r in page.records)

    async def test_results_are_newest_first(self, populated: AuditLog, super_admin: Principal) -> None:
        """Test ordering by timestamp descending."""
        page = await populated.query(super_admin, AuditQuery(organization_id="org-x"))

        timestamps = [r.timestamp for r in page.records]
        assert timestamps == sorted(timestamps, reverse=True)
        assert page.records[0].action == "data.delete"

    async def test_filters_and_paging(self, populated: AuditLog, super_admin: Principal) -> None:
        """Test outcome filter and limit/offset."""
        failures = await populated.query(
            super_admin,
            AuditQuery(organization_id="org-x", outcome=AuditOutcome.FAILURE),
        )
        assert failures.total == 1

        page = await populated.query(super_admin, AuditQuery(organization_id="org-x", limit=2, offset=1))
        assert page.total == 4
        assert len(page.records) == 2
        assert page.has_more

    async def test_limit_is_clamped(self, audit_store: InMemoryAuditStore, super_admin: Principal) -> None:
        """Test that pages never exceed the maximum size."""
        audit_log = AuditLog(audit_store, max_page_size=10)

        page = await audit_log.query(super_admin, AuditQuery(organization_id="org-x", limit=1000))

        assert page.limit == 10

    async def test_default_page_size_applies(self, audit_store: InMemoryAuditStore, clock, super_admin: Principal) -> None:
        """Test that a query without limit uses the service default."""
        audit_log = AuditLog(audit_store, clock=clock, default_page_size=2)
        for index in range(3):
            await audit_log.record(_event("org-x", action=f"data.read.{index}"))

        page = await audit_log.query(super_admin, AuditQuery(organization_id="org-x"))

        assert page.limit == 2
        assert len(page.records) == 2
        assert page.has_more

    async def test_naive_bounds_compare_as_utc(self, populated: AuditLog, clock, super_admin: Principal) -> None:
        """Test that offset-less start and end bounds filter instead of failing."""
        naive_now = clock().replace(tzinfo=None)

        after = await populated.query(
            super_admin, AuditQuery(organization_id="org-x", start=naive_now)
        )
        before = await populated.query(
            super_admin, AuditQuery(organization_id="org-x", end=naive_now - timedelta(seconds=1))
        )

        assert after.total == 1
        assert after.records[0].action == "data.delete"
        assert before.total == 3

    async def test_org_admin_reads_own_tenant(self, populated: AuditLog) -> None:
        """Test that an OrgAdmin may read their organization."""
        admin = Principal(subject_id="admin-x", organization_id="org-x", role=Role.ORG_ADMIN)

        page = await populated.query(admin, AuditQuery(organization_id="org-x"))

        assert page.total == 4

    async def test_learner_denied(self, populated: AuditLog, audit_store: InMemoryAuditStore) -> None:
        """Test that a learner cannot read the trail and the attempt is recorded."""
        learner = Principal(subject_id="learner-x", organization_id="org-x", role=Role.LEARNER)

        with pytest.raises(AuthorizationError):
            await populated.query(learner, AuditQuery(organization_id="org-x"))

        records, _ = await audit_store.query(
            AuditQuery(organization_id="org-x", subject_id="learner-x")
        )
        assert len(records) == 1
        assert records[0].action == "access.query_audit_log"
        assert records[0].details["reason"] == "insufficient_role"

    async def test_stats(self, populated: AuditLog, super_admin: Principal) -> None:
        """Test aggregate statistics of one organization."""
        stats = await populated.stats(super_admin, "org-x")

        assert stats.total == 4
        assert stats.success_count == 3
        assert stats.failure_count == 1
        assert stats.top_subjects[0].subject_id == "user-1"
        assert stats.daily_activity[0].count == 4

    async def test_stats_cross_tenant_denied(self, populated: AuditLog, admin_a: Principal) -> None:
        """Test that stats are governed like queries."""
        with pytest.raises(AuthorizationError):
            await populated.stats(admin_a, "org-x")


class TestPurge:
    """Tests for retention purges."""

    async def test_purge_keeps_newer_records(
        self,
        audit_log: AuditLog,
        audit_store: InMemoryAuditStore,
        clock,
    ) -> None:
        """Test that only records older than the horizon are deleted."""
        await audit_log.record(_event("org-a", action="old.1"))
        await audit_log.record(_event("org-b", action="old.2"))
        clock.advance(days=10)
        await audit_log.record(_event("org-a", action="new.1"))
        clock.advance(days=1)

        deleted = await audit_log.purge_older_than(system_principal(), timedelta(days=5))

        assert deleted == 2
        remaining, _ = await audit_store.query(AuditQuery(organization_id="org-a"))
        assert [r.action for r in remaining] == ["new.1"]

    async def test_purge_is_idempotent(self, audit_log: AuditLog, super_admin: Principal, clock) -> None:
        """Test that a second purge deletes nothing more."""
        await audit_log.record(_event("org-a"))
        clock.advance(days=10)

        assert await audit_log.purge_older_than(super_admin, timedelta(days=5)) == 1
        assert await audit_log.purge_older_than(super_admin, timedelta(days=5)) == 0

    async def test_purge_is_recorded(
        self,
        audit_log: AuditLog,
        audit_store: InMemoryAuditStore,
        super_admin: Principal,
    ) -> None:
        """Test that a purge leaves its own audit record."""
        await audit_log.purge_older_than(super_admin, timedelta(days=5))

        assert len(audit_store) == 1
        record = audit_store._records[0]
        assert record.action == RETENTION_PURGE_ACTION
        assert record.details["deleted"] == 0

    async def test_org_admin_cannot_purge(
        self,
        audit_log: AuditLog,
        audit_store: InMemoryAuditStore,
        admin_a: Principal,
        clock,
    ) -> None:
        """Test that purging is reserved to SuperAdmins."""
        await audit_log.record(_event("org-a"))
        clock.advance(days=10)

        with pytest.raises(AuthorizationError):
            await audit_log.purge_older_than(admin_a, timedelta(days=5))

        records, total = await audit_store.query(AuditQuery(organization_id="org-a"))
        assert total == 2
        assert records[0].action == "access.purge_audit_log"
