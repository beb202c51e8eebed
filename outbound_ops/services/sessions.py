"""Cookie sessions and identity checks shared by the login flows."""

from __future__ import annotations

from datetime import timedelta
from typing import Any

import structlog
from fastapi import Response
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token as google_id_token
from starlette.concurrency import run_in_threadpool

from ..core.config import Settings, get_settings
from ..domain.auth import AuthSession
from ..domain.common import utcnow
from ..repositories.auth_sessions import AuthSessionsRepository

logger = structlog.get_logger(__name__)


class GoogleTokenError(ValueError):
    """The ID token could not be verified for the configured client."""


def is_allowed_domain(email: str, settings: Settings | None = None) -> bool:
    settings = settings or get_settings()
    _, _, domain = email.partition("@")
    domain = domain.lower()
    return bool(domain) and domain in settings.allowed_email_domains


def cookie_secure(settings: Settings) -> bool:
    if settings.cookie_secure is not None:
        return settings.cookie_secure
    return settings.is_production


def cookie_domain(settings: Settings) -> str | None:
    domain = settings.cookie_domain
    return domain if domain and domain != "localhost" else None


def session_max_age_seconds(settings: Settings) -> int:
    return max(1, int(settings.session_ttl_hours * 60 * 60))


def set_session_cookie(response: Response, session_id: str, settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    response.set_cookie(
        settings.session_cookie_name,
        session_id,
        max_age=session_max_age_seconds(settings),
        path="/",
        domain=cookie_domain(settings),
        secure=cookie_secure(settings),
        httponly=True,
        samesite="lax",
    )


def clear_session_cookie(response: Response, settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    response.set_cookie(
        settings.session_cookie_name,
        "",
        max_age=0,
        path="/",
        domain=cookie_domain(settings),
        secure=cookie_secure(settings),
        httponly=True,
        samesite="lax",
    )


async def create_session(repo: AuthSessionsRepository, ops_id: str, settings: Settings | None = None) -> str:
    settings = settings or get_settings()
    expires_at = utcnow() + timedelta(hours=settings.session_ttl_hours)
    session_id = await repo.create(ops_id, expires_at)
    logger.info("auth.session.created", ops_id=ops_id)
    return session_id


async def load_session(
    repo: AuthSessionsRepository,
    session_id: str,
    *,
    touch: bool = True,
    settings: Settings | None = None,
) -> AuthSession | None:
    """Resolve an unexpired session and refresh ``last_seen_at`` when it is stale."""

    settings = settings or get_settings()
    now = utcnow()
    session = await repo.get_with_user(session_id, now)
    if session is None:
        return None
    refresh_after = timedelta(minutes=settings.session_refresh_minutes)
    if touch and (session.last_seen_at is None or now - session.last_seen_at > refresh_after):
        await repo.touch(session.session_id, now)
        session = session.model_copy(update={"last_seen_at": now})
    return session


def _verify_google_token(token: str, client_id: str) -> dict[str, Any]:
    return google_id_token.verify_oauth2_token(token, google_requests.Request(), audience=client_id)


async def verify_google_id_token(token: str, client_id: str) -> dict[str, Any]:
    """Verify signature, audience and expiry of a Google ID token; returns its claims."""

    try:
        return await run_in_threadpool(_verify_google_token, token, client_id)
    except ValueError as exc:
        logger.info("auth.google.invalid_token", error=str(exc))
        raise GoogleTokenError(str(exc) or "Google login failed") from exc
