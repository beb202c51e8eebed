from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from ...domain.auth import AuthSession
from ...domain.common import clamp_int
from ...domain.hubs import Hub, HubListResponse, HubPayload
from ...repositories.hubs import HubsRepository
from ...services.http_cache import HUB_CACHE_CONTROL, HUB_CACHE_MS
from ...services.server_cache import ServerCache
from ..dependencies import (
    STAFF_ROLES,
    enforce_session_rate_limit,
    get_current_session,
    get_hubs_repository,
    get_server_cache,
)

router = APIRouter(prefix="/hubs", tags=["hubs"])
logger = structlog.get_logger(__name__)

DEFAULT_LIMIT = 10


def _invalidate(cache: ServerCache) -> None:
    cache.invalidate("hubs:")
    cache.invalidate("lookup:")


@router.get("", response_model=HubListResponse)
async def list_hubs(
    response: Response,
    limit: str | None = Query(default=None),
    offset: str | None = Query(default=None),
    active: str | None = Query(default=None),
    _: AuthSession = Depends(get_current_session),
    repo: HubsRepository = Depends(get_hubs_repository),
    cache: ServerCache = Depends(get_server_cache),
) -> HubListResponse:
    effective_limit = clamp_int(limit or DEFAULT_LIMIT, default=DEFAULT_LIMIT, minimum=1)
    effective_offset = clamp_int(offset or 0, default=0, minimum=0)
    active_filter = None if active is None else active == "true"

    async def load() -> HubListResponse:
        total, hubs = await repo.list(active=active_filter, limit=effective_limit, offset=effective_offset)
        return HubListResponse(hubs=hubs, total=total)

    cache_key = f"hubs:{'all' if active_filter is None else str(active_filter).lower()}:{effective_limit}:{effective_offset}"
    payload = await cache.with_cache(cache_key, HUB_CACHE_MS, load)
    response.headers["Cache-Control"] = HUB_CACHE_CONTROL
    return payload


@router.post("", response_model=Hub)
async def create_hub(
    payload: HubPayload,
    session: AuthSession = Depends(enforce_session_rate_limit(*STAFF_ROLES)),
    repo: HubsRepository = Depends(get_hubs_repository),
    cache: ServerCache = Depends(get_server_cache),
) -> Hub:
    hub = await repo.create(payload)
    _invalidate(cache)
    logger.info("hubs.created", hub_id=hub.id, ops_id=session.user.ops_id)
    return hub


@router.patch("/{hub_id}", response_model=Hub)
async def update_hub(
    hub_id: str,
    payload: HubPayload,
    session: AuthSession = Depends(enforce_session_rate_limit(*STAFF_ROLES)),
    repo: HubsRepository = Depends(get_hubs_repository),
    cache: ServerCache = Depends(get_server_cache),
) -> Hub:
    hub = await repo.update(hub_id, payload)
    if hub is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Hub not found")
    _invalidate(cache)
    logger.info("hubs.updated", hub_id=hub_id, ops_id=session.user.ops_id)
    return hub


@router.delete("/{hub_id}", response_model=Hub)
async def deactivate_hub(
    hub_id: str,
    session: AuthSession = Depends(enforce_session_rate_limit(*STAFF_ROLES)),
    repo: HubsRepository = Depends(get_hubs_repository),
    cache: ServerCache = Depends(get_server_cache),
) -> Hub:
    """Soft delete: the hub stays in the table with ``active = false``."""

    hub = await repo.deactivate(hub_id)
    if hub is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Hub not found")
    _invalidate(cache)
    logger.info("hubs.deactivated", hub_id=hub_id, ops_id=session.user.ops_id)
    return hub
