"""Pytest configuration and fixtures shared by the test suite."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Callable

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool, StaticPool

from outbound_ops import models  # noqa: F401  (registers tables on Base.metadata)
from outbound_ops.core.config import get_settings
from outbound_ops.db import Base


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start_ms: float = 1_700_000_000_000) -> None:
        self.now = start_ms

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@asynccontextmanager
async def open_sqlite(path: Path | None = None) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """Create a schema on SQLite and yield a session factory.

    Without ``path`` the database lives in memory on one shared connection;
    with ``path`` every session gets its own connection to the file, which is
    what concurrent writers need.
    """

    if path is None:
        engine = create_async_engine(
            "sqlite+aiosqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_async_engine(
            f"sqlite+aiosqlite:///{path}",
            connect_args={"timeout": 30},
            poolclass=NullPool,
        )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield async_sessionmaker(engine, expire_on_commit=False)
    finally:
        await engine.dispose()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sqlite_db() -> Callable[..., object]:
    """Factory for :func:`open_sqlite`, for use inside ``asyncio.run`` blocks."""

    return open_sqlite


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    """Isolate every test from a developer ``.env`` and from cached settings."""

    monkeypatch.setenv("APP_ENV", "test")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class ApiHarness:
    """A TestClient wired to a throwaway SQLite file."""

    def __init__(self, client: TestClient, sessionmaker: async_sessionmaker[AsyncSession], cache) -> None:
        self.client = client
        self.sessionmaker = sessionmaker
        self.cache = cache

    def run(self, coro_factory: Callable[[AsyncSession], object]):
        async def _runner():
            async with self.sessionmaker() as session:
                return await coro_factory(session)

        return asyncio.run(_runner())

    def provision(self, ops_id: str, *, role: str = "FTE", email: str | None = None) -> None:
        from outbound_ops.models import UserModel

        async def _provision(session: AsyncSession) -> None:
            if await session.get(UserModel, ops_id) is None:
                session.add(
                    UserModel(
                        ops_id=ops_id,
                        name=f"User {ops_id}",
                        role=role,
                        email=email or f"{ops_id.lower()}@spxexpress.com",
                    )
                )
                await session.commit()

        self.run(_provision)

    def login(self, ops_id: str, *, role: str = "FTE", email: str | None = None) -> str:
        """Provision a user with a live session and attach the cookie to the client."""

        from outbound_ops.repositories.auth_sessions import SqlAlchemyAuthSessionsRepository
        from outbound_ops.services.sessions import create_session

        self.provision(ops_id, role=role, email=email)

        async def _login(session: AsyncSession) -> str:
            return await create_session(SqlAlchemyAuthSessionsRepository(session), ops_id)

        session_id = self.run(_login)
        self.client.cookies.set(get_settings().session_cookie_name, session_id)
        return session_id


@pytest.fixture
def api(tmp_path, fake_clock) -> ApiHarness:
    from outbound_ops.api.dependencies import get_server_cache
    from outbound_ops.db import get_session
    from outbound_ops.main import create_app
    from outbound_ops.services.server_cache import ServerCache

    db_path = tmp_path / "api.sqlite"
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{db_path}",
        connect_args={"timeout": 30},
        poolclass=NullPool,
    )

    async def _create_schema() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(_create_schema())
    sessionmaker = async_sessionmaker(engine, expire_on_commit=False)
    cache = ServerCache(max_entries=500, clock=fake_clock)

    async def _session_override() -> AsyncIterator[AsyncSession]:
        async with sessionmaker() as session:
            yield session

    app = create_app()
    app.dependency_overrides[get_session] = _session_override
    app.dependency_overrides[get_server_cache] = lambda: cache
    client = TestClient(app)
    yield ApiHarness(client, sessionmaker, cache)
    client.close()
    asyncio.run(engine.dispose())
