"""SQLAlchemy async database configuration for the user_service.

The :class:`Database` handle owns the async engine and session factory. It
is created once when the application starts, shared through ``app.state``
and disposed on shutdown; handlers receive a per-request session through the
:func:`get_db` dependency.
"""

from __future__ import annotations

import logging
from typing import Any, AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncAttrs,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

logger = logging.getLogger(__name__)


class Base(AsyncAttrs, declarative_base()):
    """Abstract declarative base for all ORM models."""

    __abstract__ = True


class Database:
    """Storage handle: async engine plus session factory."""

    def __init__(self, url: str, echo: bool = False, **engine_kwargs: Any) -> None:
        self.engine: AsyncEngine = create_async_engine(url, echo=echo, **engine_kwargs)
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def create_schema(self) -> None:
        """Create any missing tables for the registered models."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema is up to date")

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("Database engine disposed")


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields an asynchronous database session.

    Sessions are created from the :class:`Database` stored on
    ``app.state.database``; the session is rolled back if the handler fails
    and closed when the request is done.
    """
    database: Database = request.app.state.database
    async with database.session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
