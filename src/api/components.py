# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Construction of the governance components.

Every component is built explicitly from settings and handed to the
application through app.state, so tests can swap any of them for a
double without touching module globals.
"""

from dataclasses import dataclass

from src.core.config.settings import Settings
from src.core.exceptions import StorageUnavailable
from src.domains.access.governor import AccessGovernor
from src.domains.audit.service import AuditLog
from src.domains.audit.store import InMemoryAuditStore, SQLAlchemyAuditStore
from src.domains.auth.jwt import JWTManager
from src.domains.auth.resolver import AuthContextResolver
from src.infrastructure.background import MaintenanceScheduler, register_maintenance_tasks
from src.infrastructure.cache import (
    InMemoryCacheBackend,
    RedisCacheBackend,
    RedisClient,
    ScopedCache,
)
from src.infrastructure.database import Database
from src.infrastructure.rate_limit import (
    InMemoryRateWindowStore,
    RateLimiter,
    RedisRateWindowStore,
)
from src.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class GovernanceComponents:
    """Wired governance components shared by the API layer.

    Attributes:
        settings: Settings the components were built from.
        jwt_manager: Signs and verifies access tokens.
        resolver: Turns bearer credentials into principals.
        audit_log: Audit trail, also the governor's denial recorder.
        governor: Tenant and role checks.
        cache: Tenant-scoped cache.
        limiter: Fixed window rate limiter.
        scheduler: Maintenance job scheduler.
        redis_client: Shared Redis client when a component uses Redis.
        database: Audit database when audit records are persisted in SQL.
    """

    settings: Settings
    jwt_manager: JWTManager
    resolver: AuthContextResolver
    audit_log: AuditLog
    governor: AccessGovernor
    cache: ScopedCache
    limiter: RateLimiter
    scheduler: MaintenanceScheduler
    redis_client: RedisClient | None = None
    database: Database | None = None

    async def startup(self) -> None:
        """Open connections and start maintenance.

        A backing store that cannot be reached is logged and left
        disconnected; the cache and the limiter then fail open.
        """
        if self.redis_client is not None:
            try:
                await self.redis_client.connect()
                logger.info("redis_connected", url=self.settings.redis.url)
            except StorageUnavailable as e:
                logger.warning("redis_connect_failed", error=str(e))

        if self.database is not None:
            try:
                await self.database.connect()
                if self.settings.database.url.startswith("sqlite"):
                    await self.database.create_tables()
            except StorageUnavailable as e:
                logger.warning("database_connect_failed", error=str(e))

        if self.settings.maintenance.enabled:
            await self.scheduler.start()

    async def shutdown(self) -> None:
        """Stop maintenance and close connections."""
        await self.scheduler.stop()

        if self.redis_client is not None:
            await self.redis_client.close()
            logger.info("redis_closed")

        if self.database is not None:
            await self.database.close()


def build_components(settings: Settings) -> GovernanceComponents:
    """Build every component from settings without connecting anything.

    Args:
        settings: Application settings.

    Returns:
        Wired components; call startup() before serving traffic.
    """
    redis_client = RedisClient(settings.redis) if settings.uses_redis else None

    database: Database | None = None
    if settings.audit.backend == "database":
        database = Database.from_settings(settings.database)
        audit_store = SQLAlchemyAuditStore(database)
    else:
        audit_store = InMemoryAuditStore()

    audit_log = AuditLog(
        audit_store,
        default_page_size=settings.audit.default_page_size,
        max_page_size=settings.audit.max_page_size,
    )

    if settings.cache.backend == "redis" and redis_client is not None:
        cache_backend = RedisCacheBackend(redis_client, namespace=settings.cache.namespace)
    else:
        cache_backend = InMemoryCacheBackend()
    cache = ScopedCache(cache_backend, default_ttl=settings.cache.default_ttl_seconds)

    if settings.rate_limit.backend == "redis" and redis_client is not None:
        window_store = RedisRateWindowStore(redis_client, namespace=settings.cache.namespace)
    else:
        window_store = InMemoryRateWindowStore()
    limiter = RateLimiter(window_store)

    scheduler = MaintenanceScheduler()
    register_maintenance_tasks(
        scheduler,
        cache=cache,
        limiter=limiter,
        audit_log=audit_log,
        maintenance=settings.maintenance,
        audit=settings.audit,
    )

    jwt_manager = JWTManager(settings.jwt)
    return GovernanceComponents(
        settings=settings,
        jwt_manager=jwt_manager,
        resolver=AuthContextResolver(jwt_manager),
        audit_log=audit_log,
        governor=audit_log.governor,
        cache=cache,
        limiter=limiter,
        scheduler=scheduler,
        redis_client=redis_client,
        database=database,
    )
