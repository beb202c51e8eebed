from __future__ import annotations

from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.auth import SeatalkSession
from ..domain.common import utcnow
from ..models.seatalk_session import SeatalkSessionModel


class SeatalkSessionsRepository(Protocol):
    async def reset(self, session_id: str) -> None: ...

    async def mark_authenticated(self, session_id: str, email: str) -> bool: ...

    async def get_authenticated(self, session_id: str) -> SeatalkSession | None: ...

    async def link_auth_session(self, session_id: str, auth_session_id: str) -> None: ...


class SqlAlchemySeatalkSessionsRepository:
    """State of SeaTalk QR handshakes."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def reset(self, session_id: str) -> None:
        """Create the handshake, or return an existing one to the unauthenticated state."""

        model = await self._session.get(SeatalkSessionModel, session_id)
        if model is None:
            self._session.add(SeatalkSessionModel(session_id=session_id, authenticated=False))
        else:
            model.authenticated = False
            model.email = None
            model.auth_session_id = None
            model.updated_at = utcnow()
        await self._session.commit()

    async def mark_authenticated(self, session_id: str, email: str) -> bool:
        model = await self._session.get(SeatalkSessionModel, session_id)
        if model is None:
            return False
        model.authenticated = True
        model.email = email
        model.updated_at = utcnow()
        await self._session.commit()
        return True

    async def get_authenticated(self, session_id: str) -> SeatalkSession | None:
        result = await self._session.execute(
            select(SeatalkSessionModel).where(
                SeatalkSessionModel.session_id == session_id,
                SeatalkSessionModel.authenticated.is_(True),
            )
        )
        model = result.scalar_one_or_none()
        if not model:
            return None
        return SeatalkSession(
            session_id=model.session_id,
            authenticated=model.authenticated,
            email=model.email,
            auth_session_id=model.auth_session_id,
        )

    async def link_auth_session(self, session_id: str, auth_session_id: str) -> None:
        model = await self._session.get(SeatalkSessionModel, session_id)
        if model is None:
            return
        model.auth_session_id = auth_session_id
        await self._session.commit()
