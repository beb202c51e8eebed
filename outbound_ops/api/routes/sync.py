"""Webhook fed by the Apps Script trigger on the dispatch Google Sheet."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status

from ...core.config import get_settings
from ...domain.sheets import SheetSyncResponse
from ...repositories.dispatch_sheet_rows import DispatchSheetRowsRepository
from ...services.google_sheets import GoogleSheetsClient, SheetsError
from ...services.sheet_ingest import parse_rows, rows_from_body
from ...telemetry import SHEET_ROWS
from ..dependencies import (
    enforce_ip_rate_limit,
    get_dispatch_sheet_rows_repository,
    get_sheets_client_factory,
    require_webhook_secret,
)

router = APIRouter(prefix="/sync", tags=["sync"])
logger = structlog.get_logger(__name__)


def require_sync_enabled() -> None:
    if not get_settings().feature_google_sheets_sync:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Google Sheets sync is disabled")


async def _read_body(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        return {}


@router.post(
    "/google-sheets",
    response_model=SheetSyncResponse,
    dependencies=[
        Depends(require_sync_enabled),
        Depends(require_webhook_secret),
        Depends(enforce_ip_rate_limit("sync-google-sheets", webhook=True)),
    ],
)
async def sync_google_sheets(
    request: Request,
    repo: DispatchSheetRowsRepository = Depends(get_dispatch_sheet_rows_repository),
    client_factory: Callable[[], GoogleSheetsClient] = Depends(get_sheets_client_factory),
) -> SheetSyncResponse:
    """Upsert rows pushed in the body, or pull the whole sheet when none are pushed."""

    raw_rows = rows_from_body(await _read_body(request))
    source = "body"
    if raw_rows is None:
        source = "sheet"
        try:
            raw_rows = await client_factory().fetch_rows()
        except SheetsError as exc:
            logger.error("sheets.sync.fetch_failed", error=str(exc))
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc

    parsed, ignored = parse_rows(raw_rows)
    if parsed:
        await repo.upsert_many(parsed)
    SHEET_ROWS.labels(outcome="synced").inc(len(parsed))
    SHEET_ROWS.labels(outcome="ignored").inc(ignored)
    logger.info("sheets.sync.completed", source=source, synced=len(parsed), ignored=ignored)
    return SheetSyncResponse(synced=len(parsed), ignored=ignored)
