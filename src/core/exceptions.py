# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Error taxonomy for the governance layer.

This module defines the exception hierarchy shared by every component:
- GovernanceError: Base exception carrying a code and an HTTP status
- AuthenticationError: Missing, malformed or expired credential
- AuthorizationError: Tenant mismatch or insufficient role
- ValidationError: Malformed cache key or input
- RateLimitExceeded: Caller throttled by the rate limiter
- StorageUnavailable: Transient backing store failure

Authentication and authorization errors are fatal to the request.
StorageUnavailable is swallowed by the cache and the rate limiter and
only logged by the audit log.
"""

from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from src.infrastructure.rate_limit.models import RateLimitResult


class GovernanceError(Exception):
    """Base exception for all governance errors.

    Attributes:
        message: Human-readable error description.
        details: Additional error context (never shown for auth failures).
        code: Stable machine-readable error code.
        status_code: HTTP status the API layer maps this error to.
    """

    code = "GOVERNANCE_ERROR"
    status_code = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize the error.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation with details if available."""
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class AuthenticationFailure(str, Enum):
    """Reasons a credential could not be turned into a principal."""

    MISSING = "missing"
    MALFORMED = "malformed"
    EXPIRED = "expired"
    MISSING_TENANT_CONTEXT = "missing-tenant-context"


class AuthenticationError(GovernanceError):
    """Raised when a credential cannot be resolved into a principal.

    Attributes:
        reason: Which check failed.
    """

    code = "AUTHENTICATION_ERROR"
    status_code = 401

    def __init__(
        self,
        reason: AuthenticationFailure,
        message: str | None = None,
    ) -> None:
        """Initialize the authentication error.

        Args:
            reason: Which check failed.
            message: Optional override of the default message.
        """
        self.reason = reason
        super().__init__(
            message or f"Authentication failed: {reason.value}",
            {"reason": reason.value},
        )


class AuthorizationError(GovernanceError):
    """Raised when an authenticated principal is denied an action.

    The message is deliberately generic so a caller cannot learn whether
    the target resource exists under another tenant.
    """

    code = "AUTHORIZATION_ERROR"
    status_code = 403

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(message)


class ValidationError(GovernanceError):
    """Raised for malformed cache keys or other invalid input."""

    code = "VALIDATION_ERROR"
    status_code = 400


class RateLimitExceeded(GovernanceError):
    """Raised when a subject has used up its request window.

    Attributes:
        result: The throttled rate limit decision (limit, reset, retry-after).
    """

    code = "RATE_LIMIT_EXCEEDED"
    status_code = 429

    def __init__(
        self,
        result: "RateLimitResult",
        message: str = "Too many requests, please try again later.",
    ) -> None:
        """Initialize the rate limit error.

        Args:
            result: The throttled rate limit decision.
            message: Message shown to the caller.
        """
        self.result = result
        super().__init__(message, {"retry_after": result.retry_after})


class StorageUnavailable(GovernanceError):
    """Raised by storage backends on transient failures.

    Attributes:
        original_error: The underlying driver exception.
    """

    code = "STORAGE_UNAVAILABLE"
    status_code = 503

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        """Initialize the storage error.

        Args:
            message: Human-readable error description.
            original_error: The underlying exception that caused this error.
        """
        self.original_error = original_error
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message
