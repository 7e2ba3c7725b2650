"""Database engine and session management."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for all models."""


class Database:
    """Owns the async engine and session factory.

    Created explicitly at application start and disposed at shutdown.
    """

    def __init__(self, url: str, echo: bool = False, pool_size: int | None = None,
                 max_overflow: int | None = None) -> None:
        self.url = url
        self.echo = echo
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self._engine: AsyncEngine | None = None
        self._sessionmaker: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database is not connected")
        return self._engine

    @property
    def sessionmaker(self) -> async_sessionmaker[AsyncSession]:
        if self._sessionmaker is None:
            raise RuntimeError("Database is not connected")
        return self._sessionmaker

    def connect(self) -> None:
        """Create the engine and session factory."""
        if self._engine is not None:
            return
        kwargs: dict = {"echo": self.echo}
        # SQLite pools do not accept sizing arguments
        if not self.url.startswith("sqlite") and self.pool_size is not None:
            kwargs["pool_size"] = self.pool_size
            kwargs["max_overflow"] = self.max_overflow or 0
        self._engine = create_async_engine(self.url, **kwargs)
        self._sessionmaker = async_sessionmaker(self._engine, expire_on_commit=False)
        logger.info("Database engine created")

    async def create_all(self) -> None:
        """Create all tables (development and tests)."""
        # Import models so they register on the metadata
        import app.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Unit of work: commit on success, roll back on error."""
        async with self.sessionmaker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def dispose(self) -> None:
        """Dispose the engine and release pooled connections."""
        if self._engine is not None:
            await self._engine.dispose()
            logger.info("Database engine disposed")
        self._engine = None
        self._sessionmaker = None
