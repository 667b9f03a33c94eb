# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database connection management using SQLAlchemy async.

Uses SQLAlchemy 2.0 async API with the asyncpg driver in production and
aiosqlite in tests. A Database instance is created by the application
factory and handed to the components that need it.

Example:
    from src.infrastructure.database.connection import Database

    database = Database(settings.database.url)
    await database.connect()

    async with database.session() as session:
        result = await session.execute(select(AuditLogModel))
        rows = result.scalars().all()

    await database.close()
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import asyncpg
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from src.core.config.settings import DatabaseSettings
from src.core.exceptions import StorageUnavailable
from src.infrastructure.database.models import Base
from src.utils.logging import get_logger

logger = get_logger(__name__)

# Failed asyncpg connects surface as unwrapped OSError.
DATABASE_ERRORS = (
    SQLAlchemyError,
    OSError,
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
)


class Database:
    """Async engine and session factory for one database.

    Attributes:
        _url: SQLAlchemy async connection URL.
        _engine_options: Extra keyword arguments for create_async_engine.
        _engine: Engine, None until connected.
        _sessionmaker: Session factory, None until connected.
    """

    def __init__(self, url: str, **engine_options: object) -> None:
        """Initialize the database without connecting.

        Args:
            url: SQLAlchemy async connection URL.
            **engine_options: Passed through to create_async_engine.
        """
        self._url = url
        self._engine_options = engine_options
        self._engine: Optional[AsyncEngine] = None
        self._sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None

    @classmethod
    def from_settings(cls, settings: DatabaseSettings) -> "Database":
        """Create a database configured with a connection pool."""
        options: dict[str, object] = {"echo": settings.echo}
        if not settings.url.startswith("sqlite"):
            options.update(
                pool_size=settings.pool_size,
                max_overflow=settings.max_overflow,
                pool_pre_ping=True,
                pool_recycle=1800,
            )
        return cls(settings.url, **options)

    @property
    def is_connected(self) -> bool:
        """Check if the engine has been created."""
        return self._engine is not None

    async def connect(self) -> None:
        """Create the engine and session factory.

        Raises:
            StorageUnavailable: If engine creation fails.
        """
        if self._engine is not None:
            return

        try:
            self._engine = create_async_engine(self._url, **self._engine_options)
            self._sessionmaker = async_sessionmaker(
                bind=self._engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )
        except SQLAlchemyError as e:
            raise StorageUnavailable("Failed to initialize database connection", e) from e

        logger.info("database_connected", dialect=self._engine.dialect.name)

    async def close(self) -> None:
        """Dispose of the engine and all pooled connections."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._sessionmaker = None
            logger.info("database_closed")

    async def create_tables(self) -> None:
        """Create all tables that do not exist yet.

        Intended for tests and local development; deployed databases are
        managed by Alembic migrations.
        """
        engine = self._get_engine()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    def _get_engine(self) -> AsyncEngine:
        if self._engine is None:
            raise StorageUnavailable("Database not initialized. Call connect() first.")
        return self._engine

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Get an async session.

        The session is committed on success and rolled back on exception.

        Yields:
            AsyncSession for database operations.

        Raises:
            StorageUnavailable: If the database has not been initialized or
                if a database operation fails.
        """
        if self._sessionmaker is None:
            raise StorageUnavailable("Database not initialized. Call connect() first.")

        async with self._sessionmaker() as session:
            try:
                yield session
                await session.commit()
            except DATABASE_ERRORS as e:
                try:
                    await session.rollback()
                except DATABASE_ERRORS as rollback_error:
                    logger.warning("database_rollback_failed", error=str(rollback_error))
                raise StorageUnavailable("Database operation failed", e) from e
            except Exception:
                await session.rollback()
                raise

    async def check_connection(self) -> bool:
        """Check if the database is reachable.

        Returns:
            True if the database is reachable, False otherwise.
        """
        if self._engine is None:
            return False

        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except DATABASE_ERRORS:
            return False
