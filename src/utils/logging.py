# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Structured logging for the governance layer.

Every component logs through structlog with snake_case event names and
keyword fields. Request handling binds request_id, organization_id and
subject_id into the context so each line can be tied back to a tenant.
Credentials never reach the output: fields that carry them are masked
before rendering.

Example:
    >>> from src.utils.logging import setup_logging, get_logger
    >>> setup_logging(settings)
    >>> logger = get_logger(__name__)
    >>> logger.warning("cache_backend_unavailable", operation="get", organization_id="org-1")
"""

import logging
import sys
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

if TYPE_CHECKING:
    from src.core.config.settings import Settings

REDACTED = "***"

SENSITIVE_FIELDS = frozenset({
    "authorization",
    "token",
    "access_token",
    "credential",
    "secret_key",
    "password",
})

QUIET_LOGGERS = (
    "uvicorn.access",
    "sqlalchemy.engine",
    "aiosqlite",
    "apscheduler.executors.default",
    "apscheduler.scheduler",
    "asyncio",
)


def redact_credentials(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    """Mask values of fields that may carry credentials."""
    for key in event_dict.keys() & SENSITIVE_FIELDS:
        event_dict[key] = REDACTED
    return event_dict


def _environment_field(environment: str) -> Processor:
    def add_environment(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("environment", environment)
        return event_dict

    return add_environment


def setup_logging(settings: "Settings") -> None:
    """Configure structlog and the standard library root logger.

    Development and debug runs render colored console lines; every other
    environment renders one JSON object per line.

    Args:
        settings: Application settings (log_level, debug, environment).
    """
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _environment_field(settings.environment),
        redact_credentials,
        structlog.processors.StackInfoRenderer(),
    ]

    if settings.is_development or settings.debug:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    else:
        processors.extend([
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ])

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.getLogger("src").setLevel(log_level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger, usually for ``__name__``."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind fields to every log line of the current request."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Drop request-scoped fields so they cannot leak into the next request."""
    structlog.contextvars.clear_contextvars()
