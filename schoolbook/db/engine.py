"""Async database engine, session factory, and lifespan management.

Uses SQLAlchemy 2.0 async with asyncpg driver for PostgreSQL.
The engine is owned by a Database object built at application startup and
stored on ``app.state``; request handlers reach it through ``get_session``.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from schoolbook.config import DatabaseSettings
from schoolbook.models.base import Base

logger = logging.getLogger(__name__)


class Database:
    """Engine plus session factory for one process."""

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine
        self.session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, db_settings: DatabaseSettings, *, echo: bool = False) -> Database:
        """Build a pooled PostgreSQL engine from settings."""
        engine = create_async_engine(
            db_settings.database_url,
            echo=echo,
            pool_size=db_settings.pool_size,
            max_overflow=db_settings.max_overflow,
            pool_pre_ping=True,
            pool_recycle=3600,
        )
        return cls(engine)

    async def create_all(self) -> None:
        """Create missing tables. Development convenience only."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        """Close every pooled connection."""
        await self.engine.dispose()

    @contextlib.asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Yield a session that is rolled back if the block raises."""
        async with self.session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Dependency for FastAPI — yields an async DB session.

    Usage:
        @router.get("/example")
        async def handler(db: AsyncSession = Depends(get_session)):
            ...

    Services commit explicitly; anything left uncommitted is rolled back.
    """
    database: Database = request.app.state.database
    async with database.session() as session:
        yield session


@contextlib.asynccontextmanager
async def db_lifespan(database: Database, *, create_tables: bool) -> AsyncGenerator[None, None]:
    """Context manager for database lifecycle.

    Usage in FastAPI lifespan:
        async with db_lifespan(database, create_tables=not settings.is_production):
            yield
    """
    if create_tables:
        await database.create_all()
        logger.info("Database tables ensured")
    try:
        yield
    finally:
        await database.dispose()
        logger.info("Database engine disposed")
