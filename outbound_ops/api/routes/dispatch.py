from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse

from ...domain.auth import AuthSession
from ...domain.common import clamp_int
from ...domain.dispatch import (
    ALLOWED_DISPATCH_FIELDS,
    DEFAULT_DISPATCH_FIELDS,
    DispatchFilters,
    DispatchListResponse,
    DispatchSubmitRequest,
    DispatchSubmitResponse,
    DispatchSubmitResult,
    DispatchVerifyRequest,
    DispatchVerifyResult,
)
from ...repositories.dispatch_reports import DispatchReportsRepository
from ...repositories.rate_limits import SessionRateLimitRepository
from ...services.dates import parse_datetime_text
from ...services.dispatch_submit import normalize_dispatch_rows
from ..dependencies import (
    STAFF_ROLES,
    apply_session_rate_limit,
    enforce_session_rate_limit,
    get_current_session,
    get_dispatch_reports_repository,
    get_session_rate_limit_repository,
)

router = APIRouter(prefix="/dispatch", tags=["dispatch"])
logger = structlog.get_logger(__name__)

DEFAULT_LIMIT = 20
MAX_LIMIT = 200


def _selected_fields(raw: str | None) -> list[str]:
    if not raw:
        return list(DEFAULT_DISPATCH_FIELDS)
    fields = [field.strip() for field in raw.split(",")]
    selected = [field for field in fields if field in ALLOWED_DISPATCH_FIELDS]
    return selected or list(DEFAULT_DISPATCH_FIELDS)


@router.get("", response_model=DispatchListResponse)
async def list_dispatch_reports(
    status_filter: str | None = Query(default=None, alias="status"),
    region: str | None = Query(default=None),
    start_date: str | None = Query(default=None, alias="startDate"),
    end_date: str | None = Query(default=None, alias="endDate"),
    limit: str | None = Query(default=None),
    offset: str | None = Query(default=None),
    fields: str | None = Query(default=None),
    _: AuthSession = Depends(get_current_session),
    repo: DispatchReportsRepository = Depends(get_dispatch_reports_repository),
) -> DispatchListResponse:
    effective_limit = clamp_int(limit or DEFAULT_LIMIT, default=DEFAULT_LIMIT, minimum=1, maximum=MAX_LIMIT)
    effective_offset = clamp_int(offset or 0, default=0, minimum=0)
    filters = DispatchFilters(
        status=status_filter or None,
        region=region or None,
        start_date=parse_datetime_text(start_date),
        end_date=parse_datetime_text(end_date),
    )
    total, rows = await repo.list(
        filters,
        limit=effective_limit,
        offset=effective_offset,
        fields=_selected_fields(fields),
    )
    return DispatchListResponse(rows=rows, total=total, limit=effective_limit, offset=effective_offset)


@router.post("/submit", response_model=DispatchSubmitResponse, response_model_exclude_none=True)
async def submit_dispatch_reports(
    payload: DispatchSubmitRequest,
    session: AuthSession = Depends(get_current_session),
    rate_limits: SessionRateLimitRepository = Depends(get_session_rate_limit_repository),
    repo: DispatchReportsRepository = Depends(get_dispatch_reports_repository),
):
    """Validate every row and insert them all, or reject the whole batch."""

    if not session.user.ops_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User ops_id is missing")
    await apply_session_rate_limit(rate_limits, session)

    normalized, failures = normalize_dispatch_rows(payload.rows)
    if failures:
        logger.info("dispatch.submit.rejected", rows=len(payload.rows), failed=len(failures))
        results = [
            DispatchSubmitResult(row_index=failure.row_index, status="error", errors=failure.errors)
            for failure in failures
        ]
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "error": "Validation failed",
                "details": {"rows": [result.model_dump(mode="json", by_alias=True) for result in results]},
            },
        )

    created = await repo.create_many(normalized, session.user.ops_id)
    logger.info("dispatch.submit.created", rows=created, ops_id=session.user.ops_id)
    return DispatchSubmitResponse(
        submitted=len(normalized),
        created_count=created,
        results=[
            DispatchSubmitResult(row_index=index, status="created") for index in range(len(normalized))
        ],
    )


@router.post("/verify")
async def verify_dispatch_reports(
    payload: DispatchVerifyRequest,
    session: AuthSession = Depends(enforce_session_rate_limit(*STAFF_ROLES)),
    repo: DispatchReportsRepository = Depends(get_dispatch_reports_repository),
) -> dict[str, list[DispatchVerifyResult]]:
    if not session.user.ops_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User ops_id is missing")
    updated = await repo.confirm(payload.rows, session.user.ops_id)
    logger.info("dispatch.verify", requested=len(payload.rows), updated=updated)
    return {"results": [DispatchVerifyResult(dispatch_ids=[dispatch_id]) for dispatch_id in payload.rows]}
