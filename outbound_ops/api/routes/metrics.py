from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse

from ...core.config import get_settings
from ...domain.auth import AuthSession
from ...services.http_cache import NO_STORE
from ...telemetry.context import metrics_state
from ..dependencies import get_optional_session

router = APIRouter(tags=["metrics"])


def _provided_token(request: Request) -> str | None:
    authorization = request.headers.get("authorization")
    if authorization:
        return authorization.replace("Bearer ", "", 1)
    return request.query_params.get("token")


@router.get("/metrics")
async def metrics_snapshot(
    request: Request,
    session: AuthSession | None = Depends(get_optional_session),
) -> JSONResponse:
    """Uptime and request counters; guarded by ``METRICS_TOKEN`` or an Admin session."""

    token = get_settings().metrics_token
    if token:
        if _provided_token(request) != token:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    elif session is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    elif session.user.role != "Admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return JSONResponse(metrics_state.snapshot(), headers={"Cache-Control": NO_STORE})
