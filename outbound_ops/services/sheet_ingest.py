"""Parsing of dispatch rows exported from the Google Sheet.

Sheet headers drift (casing, spaces, punctuation), so every header is
reduced to lowercase alphanumerics and resolved through ``HEADER_ALIASES``.
Each parsed row carries a ``row_key`` that stays stable across re-syncs so
the webhook can upsert idempotently.
"""

from __future__ import annotations

import hashlib
import json
import math
import re
from datetime import datetime, timedelta
from typing import Any, Mapping, Sequence

from ..domain.sheets import SheetParsedRow
from .dates import isoformat_ms, parse_datetime_text

HEADER_ALIASES: dict[str, str] = {
    "dispatchdate": "dispatch_date",
    "origin": "origin",
    "todeststationname": "to_dest_station_name",
    "tripnumber": "trip_number",
    "tripno": "trip_number",
    "tonumber": "to_number",
    "toparcelquantity": "to_parcel_quantity",
    "loadedtimestamp": "loaded_timestamp",
    "operator": "operator",
    "departuretimestamp": "departure_timestamp",
    "trucksize": "truck_size",
    "vehiclenumber": "vehicle_number",
    "drivername": "driver_name",
}

SPREADSHEET_EPOCH_OFFSET_DAYS = 25569
MS_PER_DAY = 86400 * 1000

_HEADER_STRIP = re.compile(r"[^a-z0-9]")
_SERIAL_PATTERN = re.compile(r"^\d+(\.\d+)?$")
_OPERATOR_PATTERN = re.compile(r"\[([^\]]+)\]\s*(.+)")
_UNIX_EPOCH = datetime(1970, 1, 1)


def normalize_header(value: str) -> str:
    return _HEADER_STRIP.sub("", value.lower())


def to_text(value: Any) -> str:
    """Stringify a cell the way the sheet export renders it, trimmed."""

    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def parse_integer(value: str | None) -> int | None:
    if not value:
        return None
    normalized = value.replace(",", "").strip()
    if not normalized:
        return None
    try:
        number = float(normalized)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return math.trunc(number)


def serial_to_datetime(serial: float) -> datetime | None:
    """Spreadsheet serial day number (1900 date system) to a UTC datetime."""

    epoch_ms = (serial - SPREADSHEET_EPOCH_OFFSET_DAYS) * MS_PER_DAY
    try:
        return _UNIX_EPOCH + timedelta(milliseconds=math.trunc(epoch_ms))
    except OverflowError:
        return None


def parse_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    text = value.strip()
    if not text:
        return None
    if _SERIAL_PATTERN.match(text):
        return serial_to_datetime(float(text))
    return parse_datetime_text(text)


def _json_compatible(value: Any) -> Any:
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        if value.is_integer():
            return int(value)
        return value
    if isinstance(value, Mapping):
        return {str(key): _json_compatible(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_compatible(item) for item in value]
    return value


def canonical_json(raw_row: Mapping[str, Any]) -> str:
    """Compact JSON byte-compatible with a browser ``JSON.stringify``."""

    return json.dumps(_json_compatible(raw_row), separators=(",", ":"), ensure_ascii=False)


def build_row_key(
    trip_number: str,
    dispatch_date: datetime | None = None,
    to_number: str | None = None,
    loaded_timestamp: datetime | None = None,
    raw_row: Mapping[str, Any] | None = None,
) -> str:
    parts = [
        dispatch_date.date().isoformat() if dispatch_date else "",
        trip_number,
        to_number or "",
        isoformat_ms(loaded_timestamp) if loaded_timestamp else "",
    ]
    base = "|".join(part for part in parts if part)
    if base:
        return base
    payload = canonical_json(raw_row) if raw_row is not None else trip_number
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def split_operator(value: str) -> tuple[str | None, str | None]:
    """``"[OPS123] Jane Doe"`` -> ``("OPS123", "Jane Doe")``; otherwise ``(None, value)``."""

    if not value:
        return None, None
    match = _OPERATOR_PATTERN.search(value)
    if match:
        return match.group(1).strip(), match.group(2).strip() or None
    return None, value


def parse_row(raw_row: Mapping[str, Any]) -> SheetParsedRow | None:
    """Map one sheet row onto the stored shape; ``None`` when it has no trip number."""

    canonical: dict[str, str] = {}
    for key, value in raw_row.items():
        header = normalize_header(str(key))
        if not header:
            continue
        field = HEADER_ALIASES.get(header)
        if field:
            canonical[field] = to_text(value)

    trip_number = canonical.get("trip_number", "").upper()
    if not trip_number:
        return None

    operator = canonical.get("operator", "")
    operator_ops_id, operator_name = split_operator(operator)
    dispatch_date = parse_datetime(canonical.get("dispatch_date"))
    to_number = canonical.get("to_number") or None
    loaded_timestamp = parse_datetime(canonical.get("loaded_timestamp"))

    return SheetParsedRow(
        row_key=build_row_key(trip_number, dispatch_date, to_number, loaded_timestamp, raw_row),
        dispatch_date=dispatch_date,
        origin=canonical.get("origin") or None,
        to_dest_station_name=canonical.get("to_dest_station_name") or None,
        trip_number=trip_number,
        to_number=to_number,
        to_parcel_quantity=parse_integer(canonical.get("to_parcel_quantity")),
        loaded_timestamp=loaded_timestamp,
        operator_raw=operator or None,
        operator_ops_id=operator_ops_id,
        operator_name=operator_name,
        departure_timestamp=parse_datetime(canonical.get("departure_timestamp")),
        truck_size=canonical.get("truck_size") or None,
        vehicle_number=canonical.get("vehicle_number") or None,
        driver_name=canonical.get("driver_name") or None,
        raw_payload=_json_compatible(dict(raw_row)),
    )


def zip_rows(headers: Sequence[Any], rows: Sequence[Any]) -> list[dict[str, Any]]:
    """Pair array rows with a header row, skipping blank headers and non-array rows."""

    names = [to_text(header) for header in headers]
    records: list[dict[str, Any]] = []
    for row in rows:
        if not isinstance(row, list):
            continue
        record: dict[str, Any] = {}
        for index, name in enumerate(names):
            if name and index < len(row):
                record[name] = row[index]
        records.append(record)
    return records


def rows_from_body(body: Any) -> list[dict[str, Any]] | None:
    """Raw rows pushed in a webhook body.

    ``None`` means the body carries no ``rows`` list and the caller should fetch
    the sheet itself. Unusable shapes give ``[]``.
    """

    if not isinstance(body, Mapping) or not isinstance(body.get("rows"), list):
        return None
    rows = body["rows"]
    if not rows:
        return []
    if isinstance(rows[0], list):
        headers = body.get("headers")
        if isinstance(headers, list):
            return zip_rows(headers, rows)
        return zip_rows(rows[0], rows[1:])
    if isinstance(rows[0], Mapping):
        return [dict(row) for row in rows if isinstance(row, Mapping)]
    return []


def parse_rows(raw_rows: Sequence[Mapping[str, Any]]) -> tuple[list[SheetParsedRow], int]:
    """Parse every row; returns the parsed rows and how many were ignored."""

    parsed = [row for row in (parse_row(raw) for raw in raw_rows) if row is not None]
    return parsed, len(raw_rows) - len(parsed)
