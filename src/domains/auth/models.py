# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Identity types produced by the AuthContext resolver.

A Principal is derived fresh for every request from a verified
credential and is never persisted.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum

from src.core.exceptions import AuthenticationError, AuthenticationFailure
from src.utils.datetime import utc_now

SYSTEM_SUBJECT_ID = "system"


class Role(str, Enum):
    """Platform roles, ordered from least to most privileged."""

    LEARNER = "learner"
    MENTOR = "mentor"
    ORG_ADMIN = "org_admin"
    SUPER_ADMIN = "super_admin"

    @property
    def rank(self) -> int:
        """Position of the role in the privilege order."""
        return _ROLE_RANKS[self]

    def meets(self, minimum: "Role") -> bool:
        """Check if this role meets or exceeds a minimum role.

        Args:
            minimum: The least privileged role that is accepted.

        Returns:
            True if this role ranks at or above the minimum.
        """
        return self.rank >= minimum.rank


_ROLE_RANKS = {
    Role.LEARNER: 0,
    Role.MENTOR: 1,
    Role.ORG_ADMIN: 2,
    Role.SUPER_ADMIN: 3,
}


@dataclass(frozen=True)
class Principal:
    """Resolved identity, role and tenant of the current caller.

    Attributes:
        subject_id: User identifier from the credential subject.
        organization_id: Tenant of the caller, None only for SuperAdmin.
        role: Platform role.
        issued_at: When the credential was issued.
        expires_at: When the credential stops being valid.

    Raises:
        AuthenticationError: If a non-SuperAdmin principal has no tenant.
    """

    subject_id: str
    organization_id: str | None
    role: Role
    issued_at: datetime = field(default_factory=utc_now)
    expires_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.role is not Role.SUPER_ADMIN and not self.organization_id:
            raise AuthenticationError(AuthenticationFailure.MISSING_TENANT_CONTEXT)

    @property
    def is_super_admin(self) -> bool:
        """Check if the principal is a platform SuperAdmin."""
        return self.role is Role.SUPER_ADMIN

    def belongs_to(self, organization_id: str | None) -> bool:
        """Check if the principal is a member of an organization.

        Args:
            organization_id: Organization to compare against.

        Returns:
            True if both identifiers are present and equal.
        """
        return (
            self.organization_id is not None
            and organization_id is not None
            and self.organization_id == organization_id
        )


def system_principal(lifetime: timedelta = timedelta(minutes=5)) -> Principal:
    """Build the SuperAdmin principal used by background maintenance.

    Args:
        lifetime: How long the principal is considered valid.

    Returns:
        SuperAdmin principal with the reserved system subject.
    """
    now = utc_now()
    return Principal(
        subject_id=SYSTEM_SUBJECT_ID,
        organization_id=None,
        role=Role.SUPER_ADMIN,
        issued_at=now,
        expires_at=now + lifetime,
    )
