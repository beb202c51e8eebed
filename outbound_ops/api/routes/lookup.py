"""Cached reference data for the dispatch form."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from ...domain.auth import AuthSession
from ...domain.hubs import ClusterLookup, HubLookup
from ...domain.sheets import LhTripSummary
from ...domain.users import ProcessorLookup
from ...repositories.dispatch_sheet_rows import DispatchSheetRowsRepository
from ...repositories.hubs import HubsRepository
from ...repositories.users import UsersRepository
from ...services.http_cache import (
    LH_TRIP_CACHE_CONTROL,
    LH_TRIP_CACHE_MS,
    LOOKUP_CACHE_CONTROL,
    LOOKUP_CACHE_MS,
)
from ...services.server_cache import ServerCache
from ..dependencies import (
    get_current_session,
    get_dispatch_sheet_rows_repository,
    get_hubs_repository,
    get_server_cache,
    get_users_repository,
)

router = APIRouter(
    prefix="/lookup",
    tags=["lookup"],
    dependencies=[Depends(get_current_session)],
)


@router.get("/clusters", response_model=list[ClusterLookup])
async def lookup_clusters(
    response: Response,
    region: str | None = Query(default=None),
    query: str | None = Query(default=None),
    repo: HubsRepository = Depends(get_hubs_repository),
    cache: ServerCache = Depends(get_server_cache),
) -> list[ClusterLookup]:
    async def load() -> list[ClusterLookup]:
        return await repo.list_clusters(region=region or None, query=query or None)

    rows = await cache.with_cache(f"lookup:clusters:{region or 'all'}:{query or ''}", LOOKUP_CACHE_MS, load)
    response.headers["Cache-Control"] = LOOKUP_CACHE_CONTROL
    return rows


@router.get("/hubs", response_model=list[HubLookup])
async def lookup_hubs(
    response: Response,
    cluster: str | None = Query(default=None),
    repo: HubsRepository = Depends(get_hubs_repository),
    cache: ServerCache = Depends(get_server_cache),
) -> list[HubLookup]:
    async def load() -> list[HubLookup]:
        return await repo.list_hub_lookups(cluster=cluster or None)

    rows = await cache.with_cache(f"lookup:hubs:{cluster or 'all'}", LOOKUP_CACHE_MS, load)
    response.headers["Cache-Control"] = LOOKUP_CACHE_CONTROL
    return rows


@router.get("/processors", response_model=list[ProcessorLookup])
async def lookup_processors(
    response: Response,
    query: str | None = Query(default=None),
    repo: UsersRepository = Depends(get_users_repository),
    cache: ServerCache = Depends(get_server_cache),
) -> list[ProcessorLookup]:
    async def load() -> list[ProcessorLookup]:
        return await repo.list_processors(query or None)

    rows = await cache.with_cache(f"lookup:processors:{query or 'all'}", LOOKUP_CACHE_MS, load)
    response.headers["Cache-Control"] = LOOKUP_CACHE_CONTROL
    return rows


@router.get("/lh-trip")
async def lookup_lh_trip(
    response: Response,
    lh_trip: str | None = Query(default=None, alias="lhTrip"),
    lh_trip_snake: str | None = Query(default=None, alias="lh_trip"),
    repo: DispatchSheetRowsRepository = Depends(get_dispatch_sheet_rows_repository),
    cache: ServerCache = Depends(get_server_cache),
) -> dict[str, LhTripSummary | None]:
    """Prefill values for one LH trip, aggregated from the synced sheet rows."""

    trip = (lh_trip or lh_trip_snake or "").strip().upper()
    if not trip:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="lhTrip is required")

    async def load() -> LhTripSummary | None:
        return await repo.lh_trip_summary(trip)

    row = await cache.with_cache(f"lookup:lh-trip:{trip}", LH_TRIP_CACHE_MS, load)
    response.headers["Cache-Control"] = LH_TRIP_CACHE_CONTROL
    return {"row": row}
