"""Read-only client for the dispatch Google Sheet (Sheets API v4 values endpoint)."""

from __future__ import annotations

import asyncio
from typing import Any
from urllib.parse import quote

import httpx
import structlog

from ..core.config import Settings, get_settings
from .sheet_ingest import to_text, zip_rows

logger = structlog.get_logger(__name__)

SHEETS_API_BASE = "https://sheets.googleapis.com/v4/spreadsheets"


class SheetsError(RuntimeError):
    """Base class for failures fetching the sheet; the message is client-safe."""


class SheetsConfigurationError(SheetsError):
    """Raised when the sheet id or API key is missing."""


class SheetsTimeoutError(SheetsError):
    def __init__(self) -> None:
        super().__init__("Google Sheets request timed out")


class SheetsHTTPError(SheetsError):
    def __init__(self, status_code: int) -> None:
        super().__init__(f"Google Sheets fetch failed: {status_code}")
        self.status_code = status_code


class SheetsNetworkError(SheetsError):
    pass


class GoogleSheetsClient:
    """Fetches the configured range and returns one dict per data row.

    A single attempt is made per call; callers decide whether to retry.
    """

    def __init__(
        self,
        *,
        sheet_id: str,
        api_key: str,
        sheet_range: str,
        timeout_seconds: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._sheet_id = sheet_id
        self._api_key = api_key
        self._range = sheet_range
        self._timeout_seconds = timeout_seconds
        self._timeout = httpx.Timeout(timeout_seconds)
        self._transport = transport

    @property
    def url(self) -> str:
        return f"{SHEETS_API_BASE}/{self._sheet_id}/values/{quote(self._range, safe='')}"

    async def _get(self, params: dict[str, str]) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            return await client.get(self.url, params=params)

    async def fetch_values(self) -> list[list[Any]]:
        params = {
            "key": self._api_key,
            "valueRenderOption": "FORMATTED_VALUE",
            "dateTimeRenderOption": "FORMATTED_STRING",
        }
        try:
            # httpx limits each phase separately; the deadline caps the whole exchange.
            response = await asyncio.wait_for(self._get(params), timeout=self._timeout_seconds)
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            logger.warning("sheets.fetch.timeout", sheet_range=self._range)
            raise SheetsTimeoutError() from exc
        except httpx.HTTPError as exc:
            logger.warning("sheets.fetch.network_error", error=str(exc))
            raise SheetsNetworkError(f"Google Sheets request failed: {exc}") from exc

        if not response.is_success:
            logger.warning("sheets.fetch.failed", status=response.status_code)
            raise SheetsHTTPError(response.status_code)

        payload = response.json()
        values = payload.get("values") if isinstance(payload, dict) else None
        return values if isinstance(values, list) else []

    async def fetch_rows(self) -> list[dict[str, Any]]:
        values = await self.fetch_values()
        if not values:
            return []
        header_row, *data_rows = values
        headers = [to_text(header) for header in header_row] if isinstance(header_row, list) else []
        if not headers:
            return []
        rows = zip_rows(headers, data_rows)
        logger.info("sheets.fetch.completed", rows=len(rows))
        return rows


def build_sheets_client(
    settings: Settings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> GoogleSheetsClient:
    settings = settings or get_settings()
    if not settings.google_sheets_id or not settings.google_sheets_api_key:
        raise SheetsConfigurationError("GOOGLE_SHEETS_ID and GOOGLE_SHEETS_API_KEY are required")
    return GoogleSheetsClient(
        sheet_id=settings.google_sheets_id,
        api_key=settings.google_sheets_api_key,
        sheet_range=settings.google_sheets_range,
        timeout_seconds=settings.google_sheets_timeout_seconds,
        transport=transport,
    )
