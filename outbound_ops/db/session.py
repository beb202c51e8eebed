"""Async SQLAlchemy session management."""

from __future__ import annotations

import time
from typing import AsyncGenerator

import structlog
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from ..core.config import get_settings
from ..telemetry.context import record_db_query

logger = structlog.get_logger(__name__)


class Base(DeclarativeBase):
    """Declarative base for SQLAlchemy models."""


_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def instrument_engine(engine: AsyncEngine, slow_query_ms: float) -> None:
    """Attach cursor timing hooks feeding the per-request DB budget."""

    sync_engine = engine.sync_engine

    @event.listens_for(sync_engine, "before_cursor_execute")
    def _before(conn, cursor, statement, parameters, context, executemany):  # noqa: ANN001
        conn.info.setdefault("query_start", []).append(time.perf_counter())

    @event.listens_for(sync_engine, "after_cursor_execute")
    def _after(conn, cursor, statement, parameters, context, executemany):  # noqa: ANN001
        started = conn.info["query_start"].pop()
        duration_ms = (time.perf_counter() - started) * 1000
        record_db_query(duration_ms)
        if slow_query_ms > 0 and duration_ms >= slow_query_ms:
            logger.warning(
                "db.slow_query",
                duration_ms=round(duration_ms, 2),
                statement=statement[:200],
            )

    @event.listens_for(sync_engine, "handle_error")
    def _on_error(context):  # noqa: ANN001
        logger.error("db.error", error=str(context.original_exception))


def get_engine() -> AsyncEngine:
    """Return a singleton async engine bound to the configured database."""

    global _engine
    if _engine is None:
        settings = get_settings()
        if not settings.database_url:
            raise RuntimeError("DATABASE_URL is not configured")
        _engine = create_async_engine(settings.database_url, pool_pre_ping=True)
        instrument_engine(_engine, settings.db_slow_query_ms)
    return _engine


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """Return a lazily initialised session factory."""

    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(get_engine(), expire_on_commit=False)
    return _session_factory


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields an async session."""

    session_factory = get_sessionmaker()
    async with session_factory() as session:
        yield session


async def check_database(session: AsyncSession) -> None:
    """Run a trivial statement; raises when the database is unreachable."""

    await session.execute(text("SELECT 1"))


async def init_db(engine: AsyncEngine | None = None) -> None:
    """Create tables for all registered models if they do not exist."""

    # Import models to ensure metadata is populated before create_all.
    from .. import models  # noqa: F401

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
