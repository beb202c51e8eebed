from __future__ import annotations

from collections.abc import Callable

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import get_settings
from ..db import get_session
from ..domain.auth import AuthSession
from ..domain.rate_limits import RateLimitExceededPayload, RateLimitStatus
from ..repositories.auth_sessions import AuthSessionsRepository, SqlAlchemyAuthSessionsRepository
from ..repositories.dispatch_reports import (
    DispatchReportsRepository,
    SqlAlchemyDispatchReportsRepository,
)
from ..repositories.dispatch_sheet_rows import (
    DispatchSheetRowsRepository,
    SqlAlchemyDispatchSheetRowsRepository,
)
from ..repositories.hubs import HubsRepository, SqlAlchemyHubsRepository
from ..repositories.kpi import KpiRepository, SqlAlchemyKpiRepository
from ..repositories.rate_limits import (
    SessionRateLimitRepository,
    SqlAlchemySessionRateLimitRepository,
)
from ..repositories.seatalk_sessions import (
    SeatalkSessionsRepository,
    SqlAlchemySeatalkSessionsRepository,
)
from ..repositories.users import SqlAlchemyUsersRepository, UsersRepository
from ..services.google_sheets import GoogleSheetsClient, build_sheets_client
from ..services.ip_rate_limit import enforce_ip_rate_limit as check_ip_rate_limit
from ..services.rate_limit import enforce_session_rate_limit as check_session_rate_limit
from ..services.server_cache import ServerCache
from ..services.sessions import load_session

STAFF_ROLES = ("Admin", "Data Team")

_server_cache: ServerCache | None = None


def get_server_cache() -> ServerCache:
    global _server_cache
    if _server_cache is None:
        _server_cache = ServerCache(max_entries=get_settings().server_cache_max_entries)
    return _server_cache


async def get_users_repository(
    session: AsyncSession = Depends(get_session),
) -> UsersRepository:
    return SqlAlchemyUsersRepository(session)


async def get_auth_sessions_repository(
    session: AsyncSession = Depends(get_session),
) -> AuthSessionsRepository:
    return SqlAlchemyAuthSessionsRepository(session)


async def get_seatalk_sessions_repository(
    session: AsyncSession = Depends(get_session),
) -> SeatalkSessionsRepository:
    return SqlAlchemySeatalkSessionsRepository(session)


async def get_session_rate_limit_repository(
    session: AsyncSession = Depends(get_session),
) -> SessionRateLimitRepository:
    return SqlAlchemySessionRateLimitRepository(session)


async def get_dispatch_reports_repository(
    session: AsyncSession = Depends(get_session),
) -> DispatchReportsRepository:
    return SqlAlchemyDispatchReportsRepository(session)


async def get_dispatch_sheet_rows_repository(
    session: AsyncSession = Depends(get_session),
) -> DispatchSheetRowsRepository:
    return SqlAlchemyDispatchSheetRowsRepository(session)


async def get_hubs_repository(
    session: AsyncSession = Depends(get_session),
) -> HubsRepository:
    return SqlAlchemyHubsRepository(session)


async def get_kpi_repository(
    session: AsyncSession = Depends(get_session),
) -> KpiRepository:
    return SqlAlchemyKpiRepository(session)


def get_sheets_client_factory() -> Callable[[], GoogleSheetsClient]:
    """Sheets clients are built lazily so a missing config only fails the live fetch."""

    return build_sheets_client


async def get_optional_session(
    request: Request,
    repo: AuthSessionsRepository = Depends(get_auth_sessions_repository),
) -> AuthSession | None:
    session_id = request.cookies.get(get_settings().session_cookie_name)
    if not session_id:
        return None
    return await load_session(repo, session_id)


async def get_current_session(
    session: AuthSession | None = Depends(get_optional_session),
) -> AuthSession:
    if session is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return session


def require_roles(*roles: str) -> Callable[..., AuthSession]:
    """Dependency factory restricting a route to sessions whose user has one of ``roles``."""

    allowed = set(roles)

    async def dependency(session: AuthSession = Depends(get_current_session)) -> AuthSession:
        if session.user.role not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return session

    return dependency


def rate_limit_exceeded(rate_limit: RateLimitStatus) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail=RateLimitExceededPayload().error,
        headers={"Retry-After": str(rate_limit.retry_after_seconds)},
    )


async def apply_session_rate_limit(
    repo: SessionRateLimitRepository,
    session: AuthSession,
) -> RateLimitStatus:
    rate_limit = await check_session_rate_limit(repo, session.session_id)
    if not rate_limit.allowed:
        raise rate_limit_exceeded(rate_limit)
    return rate_limit


def enforce_session_rate_limit(
    *roles: str,
) -> Callable[..., AuthSession]:
    """Dependency factory: resolve the session (optionally role-gated) and count the request."""

    session_dependency = require_roles(*roles) if roles else get_current_session

    async def dependency(
        session: AuthSession = Depends(session_dependency),
        repo: SessionRateLimitRepository = Depends(get_session_rate_limit_repository),
    ) -> AuthSession:
        await apply_session_rate_limit(repo, session)
        return session

    return dependency


def enforce_ip_rate_limit(
    key_prefix: str,
    *,
    webhook: bool = False,
) -> Callable[..., RateLimitStatus]:
    """Dependency factory limiting unauthenticated endpoints per client address.

    Auth endpoints use ``AUTH_RATE_LIMIT_*``; webhook endpoints use
    ``WEBHOOK_RATE_LIMIT_*``.
    """

    async def dependency(
        request: Request,
        cache: ServerCache = Depends(get_server_cache),
    ) -> RateLimitStatus:
        settings = get_settings()
        if webhook:
            window_ms = settings.webhook_rate_limit_window_ms
            limit = settings.webhook_rate_limit_max_requests
        else:
            window_ms = settings.auth_rate_limit_window_ms
            limit = settings.auth_rate_limit_max_requests
        rate_limit = check_ip_rate_limit(
            request.headers,
            key_prefix,
            window_ms=window_ms,
            limit=int(limit),
            cache=cache,
        )
        if not rate_limit.allowed:
            raise rate_limit_exceeded(rate_limit)
        return rate_limit

    return dependency


def require_webhook_secret(request: Request) -> None:
    secret = get_settings().webhook_secret
    if not secret:
        return
    provided = request.headers.get("x-webhook-secret") or request.query_params.get("secret")
    if provided != secret:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
