# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- Unit tests
- Integration tests
"""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import SecretStr

from src.core.config.settings import (
    AuditSettings,
    CacheSettings,
    JWTSettings,
    MaintenanceSettings,
    RateLimitSettings,
    Settings,
)
from src.domains.audit.service import AuditLog
from src.domains.audit.store import InMemoryAuditStore
from src.domains.auth.jwt import JWTManager
from src.domains.auth.models import Principal, Role

TEST_JWT_SECRET = "test-secret-key-for-testing-only"


class FakeClock:
    """Controllable UTC clock for time-dependent tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 0, **kwargs: float) -> None:
        self.now += timedelta(seconds=seconds, **kwargs)


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (requires services)"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture
def jwt_settings() -> JWTSettings:
    """JWT settings with a test secret."""
    return JWTSettings(
        secret_key=SecretStr(TEST_JWT_SECRET),
        algorithm="HS256",
        ACCESS_TOKEN_EXPIRE_MINUTES=30,
    )


@pytest.fixture
def test_settings(jwt_settings: JWTSettings) -> Settings:
    """In-memory settings with maintenance disabled."""
    return Settings(
        environment="test",
        debug=True,
        log_level="DEBUG",
        jwt=jwt_settings,
        cache=CacheSettings(backend="memory"),
        rate_limit=RateLimitSettings(backend="memory", requests=100, window_seconds=900),
        audit=AuditSettings(backend="memory"),
        maintenance=MaintenanceSettings(enabled=False),
    )


@pytest.fixture
def jwt_manager(jwt_settings: JWTSettings) -> JWTManager:
    """Create JWT manager with test settings."""
    return JWTManager(jwt_settings)


# =============================================================================
# Principal Fixtures
# =============================================================================


@pytest.fixture
def org_a() -> str:
    """First tenant."""
    return "org-a"


@pytest.fixture
def org_b() -> str:
    """Second tenant."""
    return "org-b"


@pytest.fixture
def learner_a(org_a: str) -> Principal:
    """Learner of organization A."""
    return Principal(subject_id="learner-1", organization_id=org_a, role=Role.LEARNER)


@pytest.fixture
def mentor_a(org_a: str) -> Principal:
    """Mentor of organization A."""
    return Principal(subject_id="mentor-1", organization_id=org_a, role=Role.MENTOR)


@pytest.fixture
def admin_a(org_a: str) -> Principal:
    """OrgAdmin of organization A."""
    return Principal(subject_id="admin-a", organization_id=org_a, role=Role.ORG_ADMIN)


@pytest.fixture
def admin_b(org_b: str) -> Principal:
    """OrgAdmin of organization B."""
    return Principal(subject_id="admin-b", organization_id=org_b, role=Role.ORG_ADMIN)


@pytest.fixture
def super_admin() -> Principal:
    """Platform SuperAdmin without a tenant."""
    return Principal(subject_id="root", organization_id=None, role=Role.SUPER_ADMIN)


# =============================================================================
# Component Fixtures
# =============================================================================


@pytest.fixture
def clock() -> FakeClock:
    """Controllable clock starting at a fixed instant."""
    return FakeClock()


@pytest.fixture
def audit_store() -> InMemoryAuditStore:
    """Empty in-memory audit store."""
    return InMemoryAuditStore()


@pytest.fixture
def audit_log(audit_store: InMemoryAuditStore, clock: FakeClock) -> AuditLog:
    """Audit log over the in-memory store, with its own governor."""
    return AuditLog(audit_store, clock=clock)
