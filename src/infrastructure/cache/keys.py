# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Cache key construction.

Keys have the fixed format ``{organization_id}:{resource_type}:{resource_id}``.
The organization always comes first. A segment that is empty or contains
the delimiter is rejected, never truncated, so two tenants can never
produce the same key.
"""

from typing import NamedTuple

from src.core.exceptions import ValidationError

KEY_DELIMITER = ":"
LIST_RESOURCE_ID = "list"


class CacheKey(NamedTuple):
    """Parsed components of a cache key."""

    organization_id: str
    resource_type: str
    resource_id: str

    def __str__(self) -> str:
        return KEY_DELIMITER.join(self)


def _check_segment(name: str, value: str) -> None:
    if not isinstance(value, str) or not value:
        raise ValidationError(f"Cache key segment '{name}' must be a non-empty string")
    if KEY_DELIMITER in value:
        raise ValidationError(
            f"Cache key segment '{name}' must not contain '{KEY_DELIMITER}'",
            {"segment": name},
        )


def build_cache_key(organization_id: str, resource_type: str, resource_id: str) -> str:
    """Build the cache key for a resource.

    Args:
        organization_id: Tenant taken from the verified principal.
        resource_type: Resource type, e.g. course.
        resource_id: Resource identifier.

    Returns:
        The key string.

    Raises:
        ValidationError: If a segment is empty or contains the delimiter.
    """
    _check_segment("organization_id", organization_id)
    _check_segment("resource_type", resource_type)
    _check_segment("resource_id", resource_id)
    return str(CacheKey(organization_id, resource_type, resource_id))


def build_type_prefix(organization_id: str, resource_type: str) -> str:
    """Build the prefix shared by every key of one resource type.

    Raises:
        ValidationError: If a segment is empty or contains the delimiter.
    """
    _check_segment("organization_id", organization_id)
    _check_segment("resource_type", resource_type)
    return f"{organization_id}{KEY_DELIMITER}{resource_type}{KEY_DELIMITER}"


def build_organization_prefix(organization_id: str) -> str:
    """Build the prefix shared by every key of one organization.

    Raises:
        ValidationError: If the organization id is empty or contains the delimiter.
    """
    _check_segment("organization_id", organization_id)
    return f"{organization_id}{KEY_DELIMITER}"


def parse_cache_key(key: str) -> CacheKey | None:
    """Split a key into its components.

    Returns:
        The parsed key, or None if the key does not have three non-empty
        segments.
    """
    parts = key.split(KEY_DELIMITER)
    if len(parts) != 3 or not all(parts):
        return None
    return CacheKey(*parts)


def validate_cache_key(key: str) -> bool:
    """Check if a string is a well-formed cache key."""
    return parse_cache_key(key) is not None
