"""Async SQLAlchemy engine and session management.

The engine and session factory live on a ``Database`` object owned by the
application lifespan (or by the worker process) and reach request handlers
through ``request.app.state``; nothing here is module-global.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import structlog
from fastapi import Request
from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from skilltrack.config import Settings
from skilltrack.db.base import Base

logger = structlog.get_logger()


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _record: Any) -> None:  # noqa: ANN401
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Owns the connection pool and hands out sessions."""

    def __init__(self, url: str, settings: Settings | None = None) -> None:
        backend = make_url(url).get_backend_name()
        kwargs: dict[str, Any] = {"echo": False, "pool_pre_ping": True}

        if backend == "postgresql":
            # Bounded pool + bounded connect/statement time: a dead store fails fast.
            s = settings or Settings()
            kwargs.update(
                pool_size=s.db_pool_size,
                max_overflow=s.db_max_overflow,
                pool_timeout=s.db_pool_timeout_seconds,
                pool_recycle=s.db_pool_recycle_seconds,
                connect_args={
                    "timeout": s.db_connect_timeout_seconds,
                    "statement_cache_size": 0,
                    "server_settings": {"statement_timeout": str(s.db_statement_timeout_ms)},
                },
            )

        self.engine: AsyncEngine = create_async_engine(url, **kwargs)
        if backend == "sqlite":
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Open a session; uncommitted work is rolled back on exit."""
        async with self.session_factory() as session:
            yield session

    async def create_all(self) -> None:
        """Create every table (tests and local development; production uses Alembic)."""
        import skilltrack.db.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        """Dispose of the engine and its pooled connections."""
        await self.engine.dispose()


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session (FastAPI dependency)."""
    database: Database | None = getattr(request.app.state, "db", None)
    if database is None:
        msg = "Database not initialized. Attach a Database to app.state.db first."
        raise RuntimeError(msg)
    async with database.session() as session:
        yield session


@asynccontextmanager
async def transaction(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Commit on success; roll back and re-raise the original error on failure.

    A failing rollback is logged and never replaces the error that caused it.
    """
    try:
        yield session
        await session.commit()
    except BaseException:
        try:
            await session.rollback()
        except Exception:
            logger.warning("rollback_failed", exc_info=True)
        raise
