from __future__ import annotations

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ...core.config import get_settings
from ...db import check_database, get_session
from ...domain.common import utcnow
from ...services.dates import isoformat_ms
from ...services.http_cache import NO_STORE

router = APIRouter(tags=["health"])

_NO_STORE_HEADERS = {"Cache-Control": NO_STORE}


async def _database_error(session: AsyncSession) -> JSONResponse | None:
    try:
        await check_database(session)
    except Exception as exc:  # any driver error means "not healthy"
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"status": "error", "error": str(exc) or "Database check failed"},
            headers=_NO_STORE_HEADERS,
        )
    return None


@router.get("/health")
async def health(session: AsyncSession = Depends(get_session)) -> JSONResponse:
    error = await _database_error(session)
    if error is not None:
        return error
    settings = get_settings()
    return JSONResponse(
        {
            "status": "ok",
            "timestamp": isoformat_ms(utcnow()),
            "app": settings.project_name,
            "version": settings.app_version,
        },
        headers=_NO_STORE_HEADERS,
    )


@router.get("/health/readiness")
async def readiness(session: AsyncSession = Depends(get_session)) -> JSONResponse:
    error = await _database_error(session)
    if error is not None:
        return error
    return JSONResponse({"status": "ok", "timestamp": isoformat_ms(utcnow())}, headers=_NO_STORE_HEADERS)


@router.get("/ping")
async def ping() -> JSONResponse:
    return JSONResponse({"status": "ok", "timestamp": isoformat_ms(utcnow())}, headers=_NO_STORE_HEADERS)
