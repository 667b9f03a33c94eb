# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the permission matrix and the access governor."""

from unittest.mock import AsyncMock

import pytest

from src.core.exceptions import AuthenticationError, AuthorizationError
from src.domains.access.governor import (
    AccessGovernor,
    DenialReason,
    RequestContext,
)
from src.domains.access.permissions import (
    PERMISSION_MATRIX,
    Action,
    required_role,
    role_can_perform,
)
from src.domains.audit.models import AuditEvent, AuditOutcome, AuditQuery
from src.domains.audit.service import AuditLog
from src.domains.audit.store import InMemoryAuditStore
from src.domains.auth.models import Principal, Role


@pytest.fixture
def recorder() -> AsyncMock:
    """Denial recorder double."""
    return AsyncMock()


@pytest.fixture
def governor(recorder: AsyncMock) -> AccessGovernor:
    """Governor recording into the double."""
    return AccessGovernor(recorder=recorder)


class TestRole:
    """Tests for role ordering."""

    def test_ranks_are_ordered(self) -> None:
        """Test Learner < Mentor < OrgAdmin < SuperAdmin."""
        ordered = [Role.LEARNER, Role.MENTOR, Role.ORG_ADMIN, Role.SUPER_ADMIN]

        assert [role.rank for role in ordered] == sorted(role.rank for role in ordered)
        assert Role.ORG_ADMIN.meets(Role.MENTOR)
        assert not Role.MENTOR.meets(Role.ORG_ADMIN)

    def test_principal_requires_tenant_below_super_admin(self) -> None:
        """Test that only a SuperAdmin may lack an organization."""
        with pytest.raises(AuthenticationError):
            Principal(subject_id="user-1", organization_id=None, role=Role.ORG_ADMIN)


class TestPermissionMatrix:
    """Tests for the permission matrix."""

    def test_every_action_has_a_minimum_role(self) -> None:
        """Test the matrix covers every action."""
        assert set(PERMISSION_MATRIX) == set(Action)

    def test_unknown_action_has_no_role(self) -> None:
        """Test unknown actions are not allowed to anyone."""
        assert required_role("launch_rockets") is None
        assert not role_can_perform(Role.ORG_ADMIN, "launch_rockets")

    @pytest.mark.parametrize(
        ("role", "action", "allowed"),
        [
            (Role.LEARNER, Action.ENROLL, True),
            (Role.LEARNER, Action.CREATE_COURSE, False),
            (Role.MENTOR, Action.CREATE_COURSE, True),
            (Role.MENTOR, Action.QUERY_AUDIT_LOG, False),
            (Role.ORG_ADMIN, Action.QUERY_AUDIT_LOG, True),
            (Role.ORG_ADMIN, Action.PURGE_AUDIT_LOG, False),
            (Role.SUPER_ADMIN, Action.PURGE_AUDIT_LOG, True),
        ],
    )
    def test_role_can_perform(self, role: Role, action: Action, allowed: bool) -> None:
        """Test representative matrix entries."""
        assert role_can_perform(role, action) is allowed

    def test_string_actions_are_accepted(self) -> None:
        """Test actions may be given by value."""
        assert required_role("view_course") is Role.LEARNER


class TestAuthorize:
    """Tests for AccessGovernor.authorize."""

    async def test_same_tenant_sufficient_role_allowed(
        self,
        governor: AccessGovernor,
        recorder: AsyncMock,
        mentor_a: Principal,
        org_a: str,
    ) -> None:
        """Test that a member with the role is allowed without an audit event."""
        decision = await governor.authorize(mentor_a, Action.CREATE_COURSE, org_a)

        assert decision.allowed
        assert decision.reason is None
        recorder.record_denial.assert_not_awaited()

    async def test_cross_tenant_denied(
        self,
        governor: AccessGovernor,
        recorder: AsyncMock,
        admin_a: Principal,
        org_a: str,
        org_b: str,
    ) -> None:
        """Test that an OrgAdmin of A cannot read B and the denial is recorded under A."""
        decision = await governor.authorize(
            admin_a,
            Action.QUERY_AUDIT_LOG,
            org_b,
            resource_type="audit_log",
            context=RequestContext(client_ip="10.0.0.1", client_agent="pytest", request_id="req-1"),
        )

        assert not decision
        assert decision.reason is DenialReason.TENANT_MISMATCH

        recorder.record_denial.assert_awaited_once()
        event: AuditEvent = recorder.record_denial.await_args.args[0]
        assert event.organization_id == org_a
        assert event.subject_id == admin_a.subject_id
        assert event.outcome is AuditOutcome.FAILURE
        assert event.action == "access.query_audit_log"
        assert event.resource_type == "audit_log"
        assert event.client_ip == "10.0.0.1"
        assert event.details["target_organization_id"] == org_b
        assert event.details["reason"] == "tenant_mismatch"
        assert event.details["request_id"] == "req-1"

    async def test_insufficient_role_denied(
        self,
        governor: AccessGovernor,
        recorder: AsyncMock,
        learner_a: Principal,
        org_a: str,
    ) -> None:
        """Test that a learner cannot perform mentor actions in their own tenant."""
        decision = await governor.authorize(learner_a, Action.MANAGE_QUIZZES, org_a)

        assert decision.reason is DenialReason.INSUFFICIENT_ROLE
        recorder.record_denial.assert_awaited_once()

    async def test_unknown_action_denied(
        self,
        governor: AccessGovernor,
        admin_a: Principal,
        org_a: str,
    ) -> None:
        """Test that actions outside the matrix are denied."""
        decision = await governor.authorize(admin_a, "launch_rockets", org_a)

        assert decision.reason is DenialReason.INSUFFICIENT_ROLE

    async def test_missing_target_tenant_denied(
        self,
        governor: AccessGovernor,
        admin_a: Principal,
    ) -> None:
        """Test that a tenant-scoped principal cannot act on unowned data."""
        decision = await governor.authorize(admin_a, Action.VIEW_COURSE, None)

        assert decision.reason is DenialReason.TENANT_MISMATCH

    async def test_super_admin_bypasses(
        self,
        governor: AccessGovernor,
        recorder: AsyncMock,
        super_admin: Principal,
        org_b: str,
    ) -> None:
        """Test that a SuperAdmin may act on any organization."""
        decision = await governor.authorize(super_admin, Action.DELETE_ORGANIZATION, org_b)

        assert decision.allowed
        recorder.record_denial.assert_not_awaited()


class TestEnforce:
    """Tests for AccessGovernor.enforce."""

    async def test_enforce_raises_generic_error(
        self,
        governor: AccessGovernor,
        admin_a: Principal,
        org_b: str,
    ) -> None:
        """Test that denials raise without revealing the reason."""
        with pytest.raises(AuthorizationError) as exc_info:
            await governor.enforce(admin_a, Action.MANAGE_USERS, org_b)

        assert exc_info.value.message == "Access denied"
        assert exc_info.value.details == {}

    async def test_enforce_allows_silently(
        self,
        governor: AccessGovernor,
        admin_a: Principal,
        org_a: str,
    ) -> None:
        """Test that allowed actions return None."""
        assert await governor.enforce(admin_a, Action.MANAGE_USERS, org_a) is None


class TestDenialsReachAuditLog:
    """Tests for the governor wired to a real audit log."""

    async def test_cross_tenant_query_leaves_failure_record(
        self,
        audit_log: AuditLog,
        audit_store: InMemoryAuditStore,
        admin_a: Principal,
        org_a: str,
        org_b: str,
    ) -> None:
        """Test that a denied audit query is itself audited under the caller's tenant."""
        with pytest.raises(AuthorizationError):
            await audit_log.query(admin_a, AuditQuery(organization_id=org_b))

        records, total = await audit_store.query(AuditQuery(organization_id=org_a))
        assert total == 1
        assert records[0].outcome is AuditOutcome.FAILURE
        assert records[0].action == "access.query_audit_log"

        _, other_total = await audit_store.query(AuditQuery(organization_id=org_b))
        assert other_total == 0
