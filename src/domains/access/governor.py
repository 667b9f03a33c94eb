# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Access governor.

Single decision point for every tenant-scoped operation. A decision is
made from the principal's verified tenant and role only; nothing the
caller supplies about the target organization can widen access.

Rules, evaluated in order:
    1. SuperAdmin is allowed.
    2. A principal without an organization is denied.
    3. A target organization other than the principal's is denied.
    4. An unknown action, or a role below the action's minimum, is denied.
    5. Everything else is allowed.

Every denial is written to the audit trail before the decision is
returned.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from src.core.exceptions import AuthorizationError
from src.domains.access.permissions import Action, required_role
from src.domains.audit.models import UNKNOWN_CLIENT, AuditEvent, AuditOutcome
from src.domains.auth.models import Principal
from src.utils.logging import get_logger

logger = get_logger(__name__)

ACCESS_ACTION_PREFIX = "access."


class DenialReason(str, Enum):
    """Why the governor refused an action."""

    MISSING_TENANT = "missing_tenant"
    TENANT_MISMATCH = "tenant_mismatch"
    INSUFFICIENT_ROLE = "insufficient_role"


@dataclass(frozen=True)
class RequestContext:
    """Client information carried into audit records."""

    client_ip: str = UNKNOWN_CLIENT
    client_agent: str = UNKNOWN_CLIENT
    request_id: str | None = None


@dataclass(frozen=True)
class AccessDecision:
    """Outcome of an authorization check."""

    allowed: bool
    reason: DenialReason | None = None

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = AccessDecision(allowed=True)


class AuditRecorder(Protocol):
    """Sink for denial events."""

    async def record_denial(self, event: AuditEvent) -> None: ...


@dataclass
class _PendingDenial:
    principal: Principal
    action: str
    target_organization_id: str | None
    reason: DenialReason
    resource_type: str | None
    resource_id: str | None
    context: RequestContext = field(default_factory=RequestContext)

    def to_event(self) -> AuditEvent:
        details: dict[str, Any] = {
            "reason": self.reason.value,
            "target_organization_id": self.target_organization_id,
            "role": self.principal.role.value,
        }
        if self.context.request_id:
            details["request_id"] = self.context.request_id
        return AuditEvent(
            subject_id=self.principal.subject_id,
            organization_id=self.principal.organization_id,
            action=f"{ACCESS_ACTION_PREFIX}{self.action}",
            resource_type=self.resource_type,
            resource_id=self.resource_id,
            outcome=AuditOutcome.FAILURE,
            details=details,
            client_ip=self.context.client_ip,
            client_agent=self.context.client_agent,
        )


class AccessGovernor:
    """Decides whether a principal may act on an organization's data.

    Attributes:
        _recorder: Receives an audit event for every denial.

    Example:
        >>> governor = AccessGovernor(recorder=audit_log)
        >>> decision = await governor.authorize(principal, Action.ENROLL, "org-1")
        >>> decision.allowed
        True
    """

    def __init__(self, recorder: AuditRecorder) -> None:
        self._recorder = recorder

    async def authorize(
        self,
        principal: Principal,
        action: Action | str,
        target_organization_id: str | None,
        *,
        resource_type: str | None = None,
        resource_id: str | None = None,
        context: RequestContext | None = None,
    ) -> AccessDecision:
        """Decide whether the principal may perform an action.

        Args:
            principal: Resolved caller.
            action: Requested action.
            target_organization_id: Organization owning the target resource.
            resource_type: Type of the target resource, for the audit trail.
            resource_id: Identifier of the target resource, for the audit trail.
            context: Client information for the audit trail.

        Returns:
            The decision. Denials have already been audited.
        """
        action_name = action.value if isinstance(action, Action) else str(action)

        if principal.is_super_admin:
            return ALLOW

        reason: DenialReason | None = None
        if principal.organization_id is None:
            reason = DenialReason.MISSING_TENANT
        elif target_organization_id != principal.organization_id:
            reason = DenialReason.TENANT_MISMATCH
        else:
            minimum = required_role(action_name)
            if minimum is None or not principal.role.meets(minimum):
                reason = DenialReason.INSUFFICIENT_ROLE

        if reason is None:
            return ALLOW

        logger.warning(
            "access_denied",
            subject_id=principal.subject_id,
            organization_id=principal.organization_id,
            target_organization_id=target_organization_id,
            action=action_name,
            reason=reason.value,
        )
        denial = _PendingDenial(
            principal=principal,
            action=action_name,
            target_organization_id=target_organization_id,
            reason=reason,
            resource_type=resource_type,
            resource_id=resource_id,
            context=context or RequestContext(),
        )
        await self._recorder.record_denial(denial.to_event())
        return AccessDecision(allowed=False, reason=reason)

    async def enforce(
        self,
        principal: Principal,
        action: Action | str,
        target_organization_id: str | None,
        *,
        resource_type: str | None = None,
        resource_id: str | None = None,
        context: RequestContext | None = None,
    ) -> None:
        """Authorize an action or raise.

        Raises:
            AuthorizationError: With the generic "Access denied" message.
        """
        decision = await self.authorize(
            principal,
            action,
            target_organization_id,
            resource_type=resource_type,
            resource_id=resource_id,
            context=context,
        )
        if not decision.allowed:
            raise AuthorizationError()
