# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for application settings."""

import os
from unittest.mock import patch

import pytest

from src.core.config.settings import (
    AuditSettings,
    CacheSettings,
    CORSSettings,
    DatabaseSettings,
    MaintenanceSettings,
    RateLimitSettings,
    RedisSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)


class TestRedisSettings:
    """Tests for RedisSettings."""

    def test_url_without_password(self) -> None:
        """Test URL property without a password."""
        settings = RedisSettings(host="cache.internal", port=6380, database=2)

        assert settings.url == "redis://cache.internal:6380/2"

    def test_url_with_password(self) -> None:
        """Test URL property embeds the password."""
        settings = RedisSettings(password="s3cret")  # type: ignore[arg-type]

        assert settings.url == "redis://:s3cret@localhost:6379/0"

    def test_env_prefix(self) -> None:
        """Test values are read from REDIS_ variables."""
        with patch.dict(os.environ, {"REDIS_HOST": "redis.example.com", "REDIS_PORT": "7000"}):
            settings = RedisSettings()

        assert settings.host == "redis.example.com"
        assert settings.port == 7000


class TestComponentSettings:
    """Tests for the governance component settings."""

    def test_cache_defaults(self) -> None:
        """Test cache defaults to memory with a one hour TTL."""
        settings = CacheSettings()

        assert settings.backend == "memory"
        assert settings.default_ttl_seconds == 3600
        assert settings.namespace == "lms"

    def test_rate_limit_defaults(self) -> None:
        """Test the API policy defaults: 100 requests per 15 minutes."""
        settings = RateLimitSettings()

        assert settings.enabled is True
        assert settings.requests == 100
        assert settings.window_seconds == 900

    def test_audit_defaults(self) -> None:
        """Test audit retention defaults to seven years."""
        settings = AuditSettings()

        assert settings.backend == "memory"
        assert settings.retention_days == 2555
        assert settings.default_page_size == 50
        assert settings.max_page_size == 500

    def test_maintenance_env_prefix(self) -> None:
        """Test values are read from MAINTENANCE_ variables."""
        with patch.dict(os.environ, {"MAINTENANCE_CACHE_SWEEP_MINUTES": "5"}):
            settings = MaintenanceSettings()

        assert settings.cache_sweep_minutes == 5

    def test_invalid_backend_rejected(self) -> None:
        """Test unknown backends are rejected."""
        with pytest.raises(ValueError):
            CacheSettings(backend="memcached")  # type: ignore[arg-type]

    def test_database_url_env(self) -> None:
        """Test the database URL is read from DATABASE_URL."""
        with patch.dict(os.environ, {"DATABASE_URL": "sqlite+aiosqlite:///./audit.db"}):
            settings = DatabaseSettings()

        assert settings.url == "sqlite+aiosqlite:///./audit.db"


class TestCORSSettings:
    """Tests for CORSSettings."""

    def test_origins_list_splits_and_strips(self) -> None:
        """Test origins are split on commas and blanks dropped."""
        settings = CORSSettings(origins="http://a.example, http://b.example ,")

        assert settings.origins_list == ["http://a.example", "http://b.example"]


class TestSettings:
    """Tests for the aggregate Settings."""

    def test_uses_redis(self) -> None:
        """Test uses_redis reflects the cache and limiter backends."""
        assert Settings(cache=CacheSettings(backend="memory")).uses_redis is False
        assert Settings(
            cache=CacheSettings(backend="memory"),
            rate_limit=RateLimitSettings(backend="redis"),
        ).uses_redis is True

    def test_environment_flags(self) -> None:
        """Test is_development and is_production."""
        settings = Settings(environment="development")

        assert settings.is_development is True
        assert settings.is_production is False

    def test_production_rejects_default_secret(self) -> None:
        """Test production refuses the default JWT secret."""
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop("JWT_SECRET_KEY", None)
            with pytest.raises(ValueError, match="JWT secret key"):
                Settings(environment="production")

    def test_get_settings_is_cached(self) -> None:
        """Test get_settings returns the same instance until cleared."""
        clear_settings_cache()
        first = get_settings()
        second = get_settings()
        clear_settings_cache()
        third = get_settings()

        assert first is second
        assert first is not third
        clear_settings_cache()
