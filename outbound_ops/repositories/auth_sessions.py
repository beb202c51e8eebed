from __future__ import annotations

from datetime import datetime
from typing import Protocol

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.auth import AuthSession
from ..models.auth_session import AuthSessionModel
from .users import SqlAlchemyUsersRepository


class AuthSessionsRepository(Protocol):
    async def create(self, ops_id: str, expires_at: datetime) -> str: ...

    async def get_with_user(self, session_id: str, now: datetime) -> AuthSession | None: ...

    async def is_active(self, session_id: str, now: datetime) -> bool: ...

    async def delete(self, session_id: str) -> None: ...

    async def touch(self, session_id: str, last_seen_at: datetime) -> None: ...


class SqlAlchemyAuthSessionsRepository:
    """Cookie-backed browser sessions stored in ``auth_sessions``."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, ops_id: str, expires_at: datetime) -> str:
        model = AuthSessionModel(ops_id=ops_id, expires_at=expires_at)
        self._session.add(model)
        await self._session.commit()
        return model.session_id

    async def get_with_user(self, session_id: str, now: datetime) -> AuthSession | None:
        result = await self._session.execute(
            select(AuthSessionModel).where(
                AuthSessionModel.session_id == session_id,
                AuthSessionModel.expires_at > now,
            )
        )
        model = result.unique().scalar_one_or_none()
        if not model:
            return None
        return AuthSession(
            session_id=model.session_id,
            expires_at=model.expires_at,
            last_seen_at=model.last_seen_at,
            user=SqlAlchemyUsersRepository._to_domain(model.user),
        )

    async def is_active(self, session_id: str, now: datetime) -> bool:
        result = await self._session.execute(
            select(AuthSessionModel.session_id).where(
                AuthSessionModel.session_id == session_id,
                AuthSessionModel.expires_at > now,
            )
        )
        return result.scalar_one_or_none() is not None

    async def delete(self, session_id: str) -> None:
        await self._session.execute(
            delete(AuthSessionModel).where(AuthSessionModel.session_id == session_id)
        )
        await self._session.commit()

    async def touch(self, session_id: str, last_seen_at: datetime) -> None:
        await self._session.execute(
            update(AuthSessionModel)
            .where(AuthSessionModel.session_id == session_id)
            .values(last_seen_at=last_seen_at)
        )
        await self._session.commit()
