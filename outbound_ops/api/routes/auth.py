from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse

from ...core.config import get_settings
from ...domain.auth import (
    AuthSession,
    GoogleLoginRequest,
    LogoutRequest,
    SeatalkCallbackRequest,
    SeatalkCheckResponse,
    SeatalkSessionRequest,
)
from ...domain.common import utcnow
from ...domain.users import User, UserResponse
from ...repositories.auth_sessions import AuthSessionsRepository
from ...repositories.rate_limits import SessionRateLimitRepository
from ...repositories.seatalk_sessions import SeatalkSessionsRepository
from ...repositories.users import UsersRepository
from ...services.sessions import (
    GoogleTokenError,
    clear_session_cookie,
    create_session,
    is_allowed_domain,
    set_session_cookie,
    verify_google_id_token,
)
from ..dependencies import (
    apply_session_rate_limit,
    enforce_ip_rate_limit,
    get_auth_sessions_repository,
    get_current_session,
    get_optional_session,
    get_seatalk_sessions_repository,
    get_session_rate_limit_repository,
    get_users_repository,
    require_webhook_secret,
)

router = APIRouter(prefix="/auth", tags=["auth"])
logger = structlog.get_logger(__name__)


def _login_response(user: User, session_id: str) -> JSONResponse:
    response = JSONResponse(UserResponse(user=user).model_dump(mode="json"))
    set_session_cookie(response, session_id)
    return response


def require_seatalk_enabled() -> None:
    if not get_settings().seatalk_enabled:
        raise HTTPException(status_code=status.HTTP_410_GONE, detail="Seatalk login is disabled")


async def _provisioned_user(users: UsersRepository, email: str) -> User:
    if not is_allowed_domain(email):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Email domain is not allowed")
    user = await users.get_by_email(email)
    if user is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User not provisioned")
    return user


@router.post("/google", dependencies=[Depends(enforce_ip_rate_limit("auth-google"))])
async def google_login(
    payload: GoogleLoginRequest,
    users: UsersRepository = Depends(get_users_repository),
    sessions: AuthSessionsRepository = Depends(get_auth_sessions_repository),
) -> JSONResponse:
    """Exchange a Google ID token for a session cookie."""

    client_id = get_settings().google_client_id
    if not client_id:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Google client ID is not configured",
        )
    try:
        claims = await verify_google_id_token(payload.id_token, client_id)
    except GoogleTokenError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc

    email = claims.get("email")
    if not email or not claims.get("email_verified"):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Google email is not verified")

    user = await _provisioned_user(users, email)
    session_id = await create_session(sessions, user.ops_id)
    logger.info("auth.login", method="google", ops_id=user.ops_id)
    return _login_response(user, session_id)


@router.post("/seatalk/session", dependencies=[Depends(require_seatalk_enabled)])
async def seatalk_session(
    payload: SeatalkSessionRequest,
    seatalk: SeatalkSessionsRepository = Depends(get_seatalk_sessions_repository),
) -> dict[str, bool]:
    await seatalk.reset(payload.session_id)
    return {"success": True}


@router.get(
    "/seatalk/check",
    response_model=SeatalkCheckResponse | None,
    dependencies=[Depends(require_seatalk_enabled)],
)
async def seatalk_check(
    session_id: str | None = Query(default=None),
    seatalk: SeatalkSessionsRepository = Depends(get_seatalk_sessions_repository),
) -> SeatalkCheckResponse | None:
    if not session_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="session_id is required")
    record = await seatalk.get_authenticated(session_id)
    if record is None:
        return None
    return SeatalkCheckResponse(email=record.email, authenticated=record.authenticated)


@router.post(
    "/seatalk/callback",
    dependencies=[
        Depends(enforce_ip_rate_limit("seatalk-callback", webhook=True)),
        Depends(require_seatalk_enabled),
        Depends(require_webhook_secret),
    ],
)
async def seatalk_callback(
    payload: SeatalkCallbackRequest,
    seatalk: SeatalkSessionsRepository = Depends(get_seatalk_sessions_repository),
) -> dict[str, bool]:
    """Called by the SeaTalk integration once the user has scanned the QR code."""

    if not await seatalk.mark_authenticated(payload.session_id, payload.email):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Seatalk session not found")
    return {"success": True}


@router.post(
    "/seatalk/login",
    dependencies=[
        Depends(enforce_ip_rate_limit("auth-seatalk-login")),
        Depends(require_seatalk_enabled),
    ],
)
async def seatalk_login(
    payload: SeatalkSessionRequest,
    seatalk: SeatalkSessionsRepository = Depends(get_seatalk_sessions_repository),
    users: UsersRepository = Depends(get_users_repository),
    sessions: AuthSessionsRepository = Depends(get_auth_sessions_repository),
) -> JSONResponse:
    record = await seatalk.get_authenticated(payload.session_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Seatalk session not authenticated")
    if not record.email:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Seatalk email is missing")

    user = await _provisioned_user(users, record.email)

    session_id = record.auth_session_id
    if session_id and not await sessions.is_active(session_id, utcnow()):
        session_id = None
    if not session_id:
        session_id = await create_session(sessions, user.ops_id)
        await seatalk.link_auth_session(payload.session_id, session_id)

    logger.info("auth.login", method="seatalk", ops_id=user.ops_id)
    return _login_response(user, session_id)


@router.post("/logout")
async def logout(
    request: Request,
    payload: LogoutRequest | None = None,
    session: AuthSession | None = Depends(get_optional_session),
    sessions: AuthSessionsRepository = Depends(get_auth_sessions_repository),
    rate_limits: SessionRateLimitRepository = Depends(get_session_rate_limit_repository),
) -> JSONResponse:
    if session is not None:
        await apply_session_rate_limit(rate_limits, session)

    session_id = request.cookies.get(get_settings().session_cookie_name)
    if session_id:
        await sessions.delete(session_id)

    response = JSONResponse({"success": True})
    clear_session_cookie(response)
    return response


async def _read_json_object(request: Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


@router.post("/login")
async def password_login(request: Request) -> None:
    body = await _read_json_object(request)
    if not body.get("ops_id"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="ops_id is required")
    raise HTTPException(status_code=status.HTTP_410_GONE, detail="Password login is disabled")


@router.post("/change-password")
async def change_password(request: Request) -> None:
    body = await _read_json_object(request)
    if not body.get("ops_id"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="ops_id is required")
    raise HTTPException(status_code=status.HTTP_410_GONE, detail="Password login is disabled")


@router.get("/me", response_model=UserResponse)
async def me(session: AuthSession = Depends(get_current_session)) -> UserResponse:
    return UserResponse(user=session.user)
