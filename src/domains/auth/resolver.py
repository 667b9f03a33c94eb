# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""AuthContext resolver.

Turns an inbound bearer credential into a Principal. Only claims from the
verified token are used: an organization supplied anywhere else (a header,
a query parameter, a request body) is never consulted.

Example:
    >>> resolver = AuthContextResolver(JWTManager(settings.jwt))
    >>> principal = resolver.resolve_authorization_header("Bearer eyJhbGciOi...")
    >>> principal.organization_id
    'org-456'
"""

from src.core.exceptions import AuthenticationError, AuthenticationFailure
from src.domains.auth.jwt import InvalidTokenError, JWTManager, TokenExpiredError
from src.domains.auth.models import Principal, Role
from src.utils.datetime import utc_from_timestamp
from src.utils.logging import get_logger

logger = get_logger(__name__)

BEARER_SCHEME = "bearer"


class AuthContextResolver:
    """Resolves signed credentials into principals.

    Attributes:
        _jwt_manager: Verifies signatures and expiry.
    """

    def __init__(self, jwt_manager: JWTManager) -> None:
        """Initialize the resolver.

        Args:
            jwt_manager: JWT manager holding the signing key.
        """
        self._jwt_manager = jwt_manager

    def resolve(self, credential: str | None) -> Principal:
        """Verify a credential and build the caller's principal.

        Args:
            credential: Raw bearer token.

        Returns:
            Principal built from verified claims only.

        Raises:
            AuthenticationError: With reason missing, malformed, expired or
                missing-tenant-context.
        """
        if not credential or not credential.strip():
            raise AuthenticationError(AuthenticationFailure.MISSING)

        try:
            claims = self._jwt_manager.decode_token(credential.strip())
        except TokenExpiredError:
            raise AuthenticationError(AuthenticationFailure.EXPIRED)
        except InvalidTokenError:
            raise AuthenticationError(AuthenticationFailure.MALFORMED)

        try:
            role = Role(claims.role)
        except ValueError:
            logger.warning("unknown_role_claim", subject_id=claims.sub, role=claims.role)
            raise AuthenticationError(AuthenticationFailure.MALFORMED)

        if not claims.sub:
            raise AuthenticationError(AuthenticationFailure.MALFORMED)

        if role is not Role.SUPER_ADMIN and not claims.organization_id:
            logger.warning("missing_tenant_context", subject_id=claims.sub, role=role.value)
            raise AuthenticationError(AuthenticationFailure.MISSING_TENANT_CONTEXT)

        return Principal(
            subject_id=claims.sub,
            organization_id=claims.organization_id or None,
            role=role,
            issued_at=utc_from_timestamp(claims.iat),
            expires_at=utc_from_timestamp(claims.exp),
        )

    def resolve_authorization_header(self, header_value: str | None) -> Principal:
        """Resolve the value of an Authorization header.

        Expects format: Bearer <token>

        Args:
            header_value: Raw header value, None when the header is absent.

        Returns:
            Principal for the embedded token.

        Raises:
            AuthenticationError: Missing when there is no header, malformed
                when the scheme is not Bearer.
        """
        if header_value is None or not header_value.strip():
            raise AuthenticationError(AuthenticationFailure.MISSING)

        parts = header_value.split()
        if len(parts) != 2 or parts[0].lower() != BEARER_SCHEME:
            raise AuthenticationError(AuthenticationFailure.MALFORMED)

        return self.resolve(parts[1])
