from __future__ import annotations

from typing import Protocol

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.users import ProcessorLookup, User
from ..models.user import UserModel

PROCESSOR_LOOKUP_LIMIT = 10


class UsersRepository(Protocol):
    """Read access to provisioned operators."""

    async def get_by_ops_id(self, ops_id: str) -> User | None: ...

    async def get_by_email(self, email: str) -> User | None: ...

    async def list_processors(self, query: str | None = None) -> list[ProcessorLookup]: ...


class InMemoryUsersRepository:
    """Dictionary-backed repository used by API tests."""

    def __init__(self, users: list[User] | None = None) -> None:
        self._users: dict[str, User] = {user.ops_id: user for user in users or []}

    def add(self, user: User) -> None:
        self._users[user.ops_id] = user

    async def get_by_ops_id(self, ops_id: str) -> User | None:
        return self._users.get(ops_id)

    async def get_by_email(self, email: str) -> User | None:
        normalized = email.lower()
        for user in self._users.values():
            if user.email and user.email.lower() == normalized:
                return user
        return None

    async def list_processors(self, query: str | None = None) -> list[ProcessorLookup]:
        needle = (query or "").lower()
        matches = sorted(
            (
                user
                for user in self._users.values()
                if user.role == "Processor" and needle in user.name.lower()
            ),
            key=lambda user: user.name,
        )
        return [
            ProcessorLookup(name=user.name, ops_id=user.ops_id)
            for user in matches[:PROCESSOR_LOOKUP_LIMIT]
        ]


class SqlAlchemyUsersRepository:
    """SQLAlchemy-backed repository for user lookups."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_ops_id(self, ops_id: str) -> User | None:
        model = await self._session.get(UserModel, ops_id)
        if not model:
            return None
        return self._to_domain(model)

    async def get_by_email(self, email: str) -> User | None:
        result = await self._session.execute(
            select(UserModel).where(func.lower(UserModel.email) == email.lower()).limit(1)
        )
        model = result.scalar_one_or_none()
        if not model:
            return None
        return self._to_domain(model)

    async def list_processors(self, query: str | None = None) -> list[ProcessorLookup]:
        stmt = select(UserModel.name, UserModel.ops_id).where(UserModel.role == "Processor")
        if query:
            stmt = stmt.where(UserModel.name.ilike(f"%{query}%"))
        result = await self._session.execute(
            stmt.order_by(UserModel.name.asc()).limit(PROCESSOR_LOOKUP_LIMIT)
        )
        return [ProcessorLookup(name=name, ops_id=ops_id) for name, ops_id in result.all()]

    @staticmethod
    def _to_domain(model: UserModel) -> User:
        return User(
            ops_id=model.ops_id,
            name=model.name,
            role=model.role,
            email=model.email,
            department=model.department,
        )
