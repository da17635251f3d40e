"""Database connection and session management for priceanalyzer.

Provides async SQLAlchemy session management with connection pooling. A
Database instance is created from DBConfig and passed to the components that
need it; nothing here is a module-level singleton.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from priceanalyzer.config import DBConfig
from priceanalyzer.db.models import Base


class Database:
    """Owns the async engine and session factory for one DB URL."""

    def __init__(self, config: DBConfig, logger: structlog.stdlib.BoundLogger | None = None):
        self.config = config
        self.log = logger or structlog.get_logger(__name__)

        # Build engine kwargs
        engine_kwargs = {"echo": config.echo}

        # SQLite doesn't support connection pooling parameters
        if not self.is_sqlite:
            engine_kwargs.update({
                "pool_size": config.pool_size,
                "max_overflow": config.pool_max_overflow,
                "pool_timeout": config.pool_timeout,
                "pool_pre_ping": True,  # Verify connections before using
                "pool_recycle": 3600,  # Recycle connections after 1 hour
            })

        self._engine: AsyncEngine | None = create_async_engine(config.url, **engine_kwargs)
        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,  # Don't expire objects after commit
        )

    @property
    def is_sqlite(self) -> bool:
        return "sqlite" in self.config.url.lower()

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database has been closed")
        return self._engine

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get async database session (context manager).

        The caller controls the transaction; the session is always closed.

        Usage:
            async with database.session() as session:
                async with session.begin():
                    await session.execute(stmt)
        """
        if self._engine is None:
            raise RuntimeError("Database has been closed")
        session = self._session_factory()
        try:
            yield session
        finally:
            await session.close()

    async def init_db(self, drop: bool = False) -> None:
        """Create all tables.

        For production, manage the schema out of band; this is a convenience
        for development and testing.
        """
        async with self.engine.begin() as conn:
            if drop:
                await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)

    async def ping(self, timeout: float) -> bool:
        """Check connectivity, waiting at most ``timeout`` seconds."""

        async def _probe() -> None:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))

        try:
            await asyncio.wait_for(_probe(), timeout=timeout)
        except (SQLAlchemyError, OSError, asyncio.TimeoutError, RuntimeError) as e:
            self.log.error("database_ping_failed", error=str(e))
            return False
        return True

    async def close(self) -> bool:
        """Dispose the engine. Returns False if it was already closed."""
        if self._engine is None:
            self.log.info("database_close_skipped", reason="already closed")
            return False
        engine, self._engine = self._engine, None
        await engine.dispose()
        self.log.info("database_closed")
        return True
