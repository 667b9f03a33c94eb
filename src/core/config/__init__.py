# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package for the governance layer.

Settings are Pydantic-based and loaded from environment variables.

Example:
    >>> from src.core.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.environment)
    'development'
"""

from src.core.config.settings import (
    APISettings,
    AuditSettings,
    CacheSettings,
    CORSSettings,
    DatabaseSettings,
    JWTSettings,
    MaintenanceSettings,
    RateLimitSettings,
    RedisSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "clear_settings_cache",
    # Subsettings
    "JWTSettings",
    "RedisSettings",
    "DatabaseSettings",
    "CacheSettings",
    "RateLimitSettings",
    "AuditSettings",
    "MaintenanceSettings",
    "CORSSettings",
    "APISettings",
]
