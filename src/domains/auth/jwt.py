# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""JWT token management utilities.

This module provides creation and validation of the signed bearer
credentials that carry a caller's organization context, using python-jose.

Example:
    >>> from src.core.config import get_settings
    >>> jwt_manager = JWTManager(get_settings().jwt)
    >>> token = jwt_manager.create_access_token(
    ...     subject_id="user-123",
    ...     organization_id="org-456",
    ...     role=Role.MENTOR,
    ... )
    >>> claims = jwt_manager.decode_token(token)
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Literal
from uuid import UUID

from jose import ExpiredSignatureError, JWTError as JoseJWTError, jwt
from pydantic import BaseModel

from src.core.config.settings import JWTSettings
from src.domains.auth.models import Role

logger = logging.getLogger(__name__)


class TokenClaims(BaseModel):
    """JWT token payload structure.

    Attributes:
        sub: Subject (user ID).
        type: Token type (always access).
        organization_id: Tenant of the subject, absent for SuperAdmin.
        role: Platform role code.
        exp: Expiration timestamp.
        iat: Issued at timestamp.
        jti: JWT ID for token tracking.
    """

    sub: str
    type: Literal["access"]
    organization_id: str | None = None
    role: str
    exp: int
    iat: int
    jti: str


class JWTError(Exception):
    """Base exception for JWT operations."""

    pass


class TokenExpiredError(JWTError):
    """Raised when a token has expired."""

    pass


class InvalidTokenError(JWTError):
    """Raised when a token is invalid."""

    pass


class JWTManager:
    """JWT token creation and validation manager.

    Attributes:
        _settings: JWT configuration settings.

    Example:
        >>> jwt_manager = JWTManager(settings)
        >>> token = jwt_manager.create_access_token("user-1", "org-1", Role.LEARNER)
        >>> claims = jwt_manager.decode_token(token)
        >>> claims.organization_id
        'org-1'
    """

    def __init__(self, settings: JWTSettings) -> None:
        """Initialize the JWT manager.

        Args:
            settings: JWT configuration settings.
        """
        self._settings = settings

    def create_access_token(
        self,
        subject_id: str | UUID,
        organization_id: str | UUID | None,
        role: Role | str,
        expires_in: timedelta | None = None,
    ) -> str:
        """Create a signed access token carrying organization context.

        Args:
            subject_id: User identifier.
            organization_id: Tenant identifier (None only for SuperAdmin).
            role: Platform role.
            expires_in: Token lifetime, defaults to the configured lifetime.

        Returns:
            JWT access token string.
        """
        now = datetime.now(timezone.utc)
        lifetime = expires_in or timedelta(minutes=self._settings.access_token_expire_minutes)
        exp = now + lifetime

        payload = {
            "sub": str(subject_id),
            "type": "access",
            "organization_id": str(organization_id) if organization_id else None,
            "role": role.value if isinstance(role, Role) else role,
            "exp": int(exp.timestamp()),
            "iat": int(now.timestamp()),
            "jti": secrets.token_urlsafe(16),
        }

        return jwt.encode(
            payload,
            self._settings.secret_key.get_secret_value(),
            algorithm=self._settings.algorithm,
        )

    def decode_token(self, token: str) -> TokenClaims:
        """Decode and validate a JWT token.

        Signature and expiry are both verified before any claim is read.

        Args:
            token: JWT token string.

        Returns:
            TokenClaims with decoded claims.

        Raises:
            TokenExpiredError: If the token has expired.
            InvalidTokenError: If the token is invalid or wrong type.
        """
        try:
            payload = jwt.decode(
                token,
                self._settings.secret_key.get_secret_value(),
                algorithms=[self._settings.algorithm],
            )
            return TokenClaims(
                sub=payload["sub"],
                type=payload["type"],
                organization_id=payload.get("organization_id"),
                role=payload["role"],
                exp=payload["exp"],
                iat=payload["iat"],
                jti=payload["jti"],
            )

        except ExpiredSignatureError:
            raise TokenExpiredError("Token has expired")
        except (JoseJWTError, KeyError, TypeError, ValueError) as e:
            logger.warning("Token decode failed: %s", str(e))
            raise InvalidTokenError(f"Invalid token: {str(e)}")

    def refresh_access_token(self, token: str, expires_in: timedelta | None = None) -> str:
        """Re-issue a valid token with a fresh expiry.

        Args:
            token: Current, still valid access token.
            expires_in: Lifetime of the new token.

        Returns:
            New JWT access token string with the same subject, tenant and role.

        Raises:
            TokenExpiredError: If the current token has expired.
            InvalidTokenError: If the current token is invalid.
        """
        claims = self.decode_token(token)
        return self.create_access_token(
            subject_id=claims.sub,
            organization_id=claims.organization_id,
            role=claims.role,
            expires_in=expires_in,
        )
