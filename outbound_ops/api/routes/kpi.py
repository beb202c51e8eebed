from __future__ import annotations

from datetime import datetime
from typing import Awaitable, Callable

from fastapi import APIRouter, Depends, Query, Response

from ...domain.common import clamp_int
from ...domain.kpi import KpiIntraday, KpiMdt, KpiPage, KpiProductivity, KpiWorkstation
from ...repositories.kpi import KpiRepository
from ...services.dates import parse_datetime_text
from ...services.http_cache import KPI_CACHE_CONTROL, KPI_CACHE_MS
from ...services.server_cache import ServerCache
from ..dependencies import get_current_session, get_kpi_repository, get_server_cache

router = APIRouter(prefix="/kpi", tags=["kpi"], dependencies=[Depends(get_current_session)])

RANGE_DEFAULT_LIMIT = 50
RANGE_MAX_LIMIT = 500
INTRADAY_DEFAULT_LIMIT = 100
INTRADAY_MAX_LIMIT = 1000

RangeLoader = Callable[..., Awaitable[tuple[int, list]]]


async def _range_page(
    name: str,
    loader: RangeLoader,
    cache: ServerCache,
    response: Response,
    start_date: str | None,
    end_date: str | None,
    limit: str | None,
    offset: str | None,
) -> KpiPage:
    effective_limit = clamp_int(limit or RANGE_DEFAULT_LIMIT, default=RANGE_DEFAULT_LIMIT, minimum=1, maximum=RANGE_MAX_LIMIT)
    effective_offset = clamp_int(offset or 0, default=0, minimum=0)
    start: datetime | None = parse_datetime_text(start_date)
    end: datetime | None = parse_datetime_text(end_date)

    async def load() -> KpiPage:
        total, rows = await loader(start=start, end=end, limit=effective_limit, offset=effective_offset)
        return KpiPage(rows=rows, total=total, limit=effective_limit, offset=effective_offset)

    cache_key = f"kpi:{name}:{start_date or 'all'}:{end_date or 'all'}:{effective_limit}:{effective_offset}"
    page = await cache.with_cache(cache_key, KPI_CACHE_MS, load)
    response.headers["Cache-Control"] = KPI_CACHE_CONTROL
    return page


@router.get("/mdt", response_model=KpiPage[KpiMdt])
async def kpi_mdt(
    response: Response,
    start_date: str | None = Query(default=None, alias="startDate"),
    end_date: str | None = Query(default=None, alias="endDate"),
    limit: str | None = Query(default=None),
    offset: str | None = Query(default=None),
    repo: KpiRepository = Depends(get_kpi_repository),
    cache: ServerCache = Depends(get_server_cache),
):
    return await _range_page("mdt", repo.list_mdt, cache, response, start_date, end_date, limit, offset)


@router.get("/workstation", response_model=KpiPage[KpiWorkstation])
async def kpi_workstation(
    response: Response,
    start_date: str | None = Query(default=None, alias="startDate"),
    end_date: str | None = Query(default=None, alias="endDate"),
    limit: str | None = Query(default=None),
    offset: str | None = Query(default=None),
    repo: KpiRepository = Depends(get_kpi_repository),
    cache: ServerCache = Depends(get_server_cache),
):
    return await _range_page("workstation", repo.list_workstation, cache, response, start_date, end_date, limit, offset)


@router.get("/productivity", response_model=KpiPage[KpiProductivity])
async def kpi_productivity(
    response: Response,
    start_date: str | None = Query(default=None, alias="startDate"),
    end_date: str | None = Query(default=None, alias="endDate"),
    limit: str | None = Query(default=None),
    offset: str | None = Query(default=None),
    repo: KpiRepository = Depends(get_kpi_repository),
    cache: ServerCache = Depends(get_server_cache),
):
    return await _range_page("productivity", repo.list_productivity, cache, response, start_date, end_date, limit, offset)


@router.get("/intraday", response_model=KpiPage[KpiIntraday])
async def kpi_intraday(
    response: Response,
    day: str | None = Query(default=None, alias="date"),
    limit: str | None = Query(default=None),
    offset: str | None = Query(default=None),
    repo: KpiRepository = Depends(get_kpi_repository),
    cache: ServerCache = Depends(get_server_cache),
):
    effective_limit = clamp_int(limit or INTRADAY_DEFAULT_LIMIT, default=INTRADAY_DEFAULT_LIMIT, minimum=1, maximum=INTRADAY_MAX_LIMIT)
    effective_offset = clamp_int(offset or 0, default=0, minimum=0)
    parsed_day = parse_datetime_text(day)

    async def load() -> KpiPage:
        total, rows = await repo.list_intraday(
            day=parsed_day.date() if parsed_day else None,
            limit=effective_limit,
            offset=effective_offset,
        )
        return KpiPage(rows=rows, total=total, limit=effective_limit, offset=effective_offset)

    page = await cache.with_cache(f"kpi:intraday:{day or 'all'}:{effective_limit}:{effective_offset}", KPI_CACHE_MS, load)
    response.headers["Cache-Control"] = KPI_CACHE_CONTROL
    return page
