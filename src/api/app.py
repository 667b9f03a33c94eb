# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI Application Factory.

This module provides the main application factory for the LMS governance API.

Example:
    uvicorn src.api.app:create_app --factory --host 0.0.0.0 --port 8000
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.components import GovernanceComponents, build_components
from src.api.errors import register_exception_handlers
from src.api.middleware import AuthMiddleware, RateLimitMiddleware
from src.api.routes import health
from src.api.v1 import router as v1_router
from src.core.config import Settings, get_settings
from src.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown events for the application.
    Initializes and cleans up:
    - Redis connection pool
    - Audit database engine
    - APScheduler for maintenance jobs

    Args:
        app: The FastAPI application instance.

    Yields:
        None during application runtime.
    """
    components: GovernanceComponents = app.state.components
    settings = components.settings
    setup_logging(settings)

    logger.info(
        "application_starting",
        environment=settings.environment,
        cache_backend=settings.cache.backend,
        rate_limit_backend=settings.rate_limit.backend,
        audit_backend=settings.audit.backend,
    )

    await components.startup()

    yield

    await components.shutdown()
    logger.info("application_stopped")


def create_app(
    settings: Settings | None = None,
    components: GovernanceComponents | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    This factory function creates a new FastAPI instance with all
    middleware, routes, and configurations applied.

    Args:
        settings: Settings to build from; defaults to get_settings().
        components: Prebuilt components, e.g. test doubles.

    Returns:
        Configured FastAPI application instance.
    """
    if components is None:
        components = build_components(settings or get_settings())
    settings = components.settings

    app = FastAPI(
        title="LMS Governance API",
        description="Tenant isolation and resource governance for a multi-tenant LMS",
        version="1.0.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
        redirect_slashes=False,
    )
    app.state.components = components

    register_exception_handlers(app)

    # Middleware order: last added runs first, so requests pass
    # CORS, then authentication, then rate limiting.
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(AuthMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.origins_list,
        allow_credentials=settings.cors.allow_credentials,
        allow_methods=settings.cors.allow_methods,
        allow_headers=settings.cors.allow_headers,
    )

    app.include_router(health.router, tags=["Health"])
    app.include_router(v1_router)

    return app
