"""Tests for the Google Sheets values client using httpx's mock transport."""

import asyncio
import time

import httpx
import pytest

from outbound_ops.core.config import Settings
from outbound_ops.services.google_sheets import (
    GoogleSheetsClient,
    SheetsConfigurationError,
    SheetsHTTPError,
    SheetsNetworkError,
    SheetsTimeoutError,
    build_sheets_client,
)


def make_client(handler, **kwargs):
    return GoogleSheetsClient(
        sheet_id="sheet-1",
        api_key="key-1",
        sheet_range="Dispatch!A:Z",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def test_fetch_rows_zips_header_row():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = request.url
        return httpx.Response(
            200,
            json={"values": [["Trip Number", "", "Origin"], ["LT1", "x", "North"], ["LT2"]]},
        )

    rows = asyncio.run(make_client(handler).fetch_rows())

    assert rows == [{"Trip Number": "LT1", "Origin": "North"}, {"Trip Number": "LT2"}]
    assert seen["url"].path == "/v4/spreadsheets/sheet-1/values/Dispatch!A:Z"
    assert seen["url"].params["key"] == "key-1"
    assert seen["url"].params["valueRenderOption"] == "FORMATTED_VALUE"


def test_empty_sheet_gives_no_rows():
    rows = asyncio.run(make_client(lambda request: httpx.Response(200, json={})).fetch_rows())
    assert rows == []


def test_non_success_status_raises_with_code():
    client = make_client(lambda request: httpx.Response(403, json={"error": "denied"}))

    with pytest.raises(SheetsHTTPError) as exc_info:
        asyncio.run(client.fetch_rows())

    assert exc_info.value.status_code == 403
    assert str(exc_info.value) == "Google Sheets fetch failed: 403"


def test_timeout_is_reported():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(SheetsTimeoutError, match="Google Sheets request timed out"):
        asyncio.run(make_client(handler).fetch_rows())


def test_slow_response_body_hits_overall_deadline():
    async def trickle():
        for _ in range(50):
            await asyncio.sleep(0.1)
            yield b" "

    def handler(request):
        return httpx.Response(200, content=trickle())

    client = make_client(handler, timeout_seconds=0.3)
    started = time.perf_counter()
    with pytest.raises(SheetsTimeoutError, match="Google Sheets request timed out"):
        asyncio.run(client.fetch_rows())

    assert time.perf_counter() - started < 2


def test_network_error_is_reported():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(SheetsNetworkError):
        asyncio.run(make_client(handler).fetch_rows())


def test_build_client_requires_configuration():
    with pytest.raises(SheetsConfigurationError):
        build_sheets_client(Settings(GOOGLE_SHEETS_ID="", GOOGLE_SHEETS_API_KEY=""))


def test_build_client_from_settings():
    client = build_sheets_client(Settings(GOOGLE_SHEETS_ID="abc", GOOGLE_SHEETS_API_KEY="k"))
    assert client.url.startswith("https://sheets.googleapis.com/v4/spreadsheets/abc/values/")
