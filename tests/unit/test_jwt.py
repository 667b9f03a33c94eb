# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for JWT token utilities.

Tests the JWTManager class and token operations.
"""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from jose import jwt
from pydantic import SecretStr

from src.core.config.settings import JWTSettings
from src.domains.auth.jwt import (
    InvalidTokenError,
    JWTManager,
    TokenClaims,
    TokenExpiredError,
)
from src.domains.auth.models import Role


@pytest.fixture
def other_manager() -> JWTManager:
    """JWT manager signing with a different key."""
    settings = MagicMock()
    settings.secret_key = SecretStr("a-completely-different-secret")
    settings.algorithm = "HS256"
    settings.access_token_expire_minutes = 30
    return JWTManager(settings)


class TestJWTManager:
    """Tests for JWTManager class."""

    def test_create_access_token_returns_valid_token(self, jwt_manager: JWTManager) -> None:
        """Test that create_access_token returns a token string."""
        token = jwt_manager.create_access_token("user-1", "org-1", Role.LEARNER)

        assert isinstance(token, str)
        assert token.count(".") == 2

    def test_decode_returns_claims(self, jwt_manager: JWTManager) -> None:
        """Test that decode_token returns the encoded claims."""
        token = jwt_manager.create_access_token("user-1", "org-1", Role.MENTOR)

        claims = jwt_manager.decode_token(token)

        assert isinstance(claims, TokenClaims)
        assert claims.sub == "user-1"
        assert claims.organization_id == "org-1"
        assert claims.role == "mentor"
        assert claims.type == "access"
        assert claims.exp - claims.iat == 30 * 60

    def test_super_admin_token_has_no_organization(self, jwt_manager: JWTManager) -> None:
        """Test SuperAdmin tokens may omit the organization."""
        token = jwt_manager.create_access_token("root", None, Role.SUPER_ADMIN)

        assert jwt_manager.decode_token(token).organization_id is None

    def test_expired_token_raises(self, jwt_manager: JWTManager) -> None:
        """Test that an expired token raises TokenExpiredError."""
        token = jwt_manager.create_access_token(
            "user-1", "org-1", Role.LEARNER, expires_in=timedelta(seconds=-10)
        )

        with pytest.raises(TokenExpiredError):
            jwt_manager.decode_token(token)

    def test_wrong_signature_raises(self, jwt_manager: JWTManager, other_manager: JWTManager) -> None:
        """Test that a token signed with another key is rejected."""
        token = other_manager.create_access_token("user-1", "org-1", Role.LEARNER)

        with pytest.raises(InvalidTokenError):
            jwt_manager.decode_token(token)

    def test_garbage_raises(self, jwt_manager: JWTManager) -> None:
        """Test that a non-JWT string is rejected."""
        with pytest.raises(InvalidTokenError):
            jwt_manager.decode_token("not-a-token")

    def test_missing_claims_raise(
        self,
        jwt_manager: JWTManager,
        jwt_settings: JWTSettings,
    ) -> None:
        """Test that a signed token without required claims is rejected."""
        token = jwt.encode(
            {"sub": "user-1"},
            jwt_settings.secret_key.get_secret_value(),
            algorithm="HS256",
        )

        with pytest.raises(InvalidTokenError):
            jwt_manager.decode_token(token)

    def test_refresh_keeps_identity(self, jwt_manager: JWTManager) -> None:
        """Test that refreshing keeps subject, tenant and role."""
        token = jwt_manager.create_access_token("user-1", "org-1", Role.ORG_ADMIN)

        refreshed = jwt_manager.decode_token(
            jwt_manager.refresh_access_token(token, expires_in=timedelta(hours=2))
        )

        assert refreshed.sub == "user-1"
        assert refreshed.organization_id == "org-1"
        assert refreshed.role == "org_admin"
        assert refreshed.exp - refreshed.iat == 2 * 3600

    def test_refresh_expired_token_raises(self, jwt_manager: JWTManager) -> None:
        """Test that an expired token cannot be refreshed."""
        token = jwt_manager.create_access_token(
            "user-1", "org-1", Role.LEARNER, expires_in=timedelta(seconds=-10)
        )

        with pytest.raises(TokenExpiredError):
            jwt_manager.refresh_access_token(token)
