from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from ...domain.auth import AuthSession
from ...domain.users import User
from ...repositories.users import UsersRepository
from ..dependencies import get_current_session, get_users_repository

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/ops/{ops_id}", response_model=User)
async def get_user_by_ops_id(
    ops_id: str,
    _: AuthSession = Depends(get_current_session),
    repo: UsersRepository = Depends(get_users_repository),
) -> User:
    user = await repo.get_by_ops_id(ops_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user
