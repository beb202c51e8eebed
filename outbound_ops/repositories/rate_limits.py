"""Session-scoped fixed-window counters."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime, timedelta

from sqlalchemy import case
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.rate_limit import SessionRateLimitModel


class SessionRateLimitRepository(ABC):
    """Interface describing operations for tracking per-session quotas."""

    @abstractmethod
    async def increment(
        self,
        session_id: str,
        *,
        window: timedelta,
        now: datetime,
    ) -> tuple[int, datetime]:
        """Count one request and return ``(count, expires_at)`` after the update.

        A missing or expired counter restarts at 1 with ``expires_at = now + window``;
        a live counter is incremented and keeps its expiry.
        """


class InMemorySessionRateLimitRepository(SessionRateLimitRepository):
    """Process-local counters for tests and single-worker development."""

    def __init__(self) -> None:
        self._counters: dict[str, tuple[int, datetime]] = {}
        # Locks exist only while a caller holds or awaits them.
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    async def increment(
        self,
        session_id: str,
        *,
        window: timedelta,
        now: datetime,
    ) -> tuple[int, datetime]:
        lock = self._locks.setdefault(session_id, asyncio.Lock())
        self._lock_users[session_id] = self._lock_users.get(session_id, 0) + 1
        try:
            async with lock:
                current = self._counters.get(session_id)
                if current is None or current[1] < now:
                    updated = (1, now + window)
                else:
                    updated = (current[0] + 1, current[1])
                self._counters[session_id] = updated
                return updated
        finally:
            self._lock_users[session_id] -= 1
            if not self._lock_users[session_id]:
                del self._lock_users[session_id]
                del self._locks[session_id]


def _insert_for(session: AsyncSession):
    dialect = session.bind.dialect.name if session.bind is not None else "postgresql"
    if dialect == "sqlite":
        return sqlite.insert
    return postgresql.insert


class SqlAlchemySessionRateLimitRepository(SessionRateLimitRepository):
    """Persists counters with a single ``INSERT .. ON CONFLICT DO UPDATE .. RETURNING``.

    The read-modify-write happens inside the database statement, so concurrent
    requests for one session never lose increments.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def increment(
        self,
        session_id: str,
        *,
        window: timedelta,
        now: datetime,
    ) -> tuple[int, datetime]:
        table = SessionRateLimitModel
        insert = _insert_for(self._session)
        stmt = insert(table).values(session_id=session_id, count=1, expires_at=now + window)
        expired = table.expires_at < now
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.session_id],
            set_={
                "count": case((expired, 1), else_=table.count + 1),
                "expires_at": case((expired, stmt.excluded.expires_at), else_=table.expires_at),
            },
        ).returning(table.count, table.expires_at)
        try:
            result = await self._session.execute(stmt)
            count, expires_at = result.one()
            await self._session.commit()
        except Exception:
            await self._session.rollback()
            raise
        return int(count), expires_at
