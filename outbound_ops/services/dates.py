"""Lenient datetime parsing for form submissions and spreadsheet cells.

All results are naive datetimes in UTC; inputs without an offset are taken
to already be UTC.
"""

from __future__ import annotations

from datetime import datetime, timezone

from dateutil import parser as date_parser

# Fields missing from free-form text (``"Jan 2 10:00"``) are filled from here.
_FREEFORM_DEFAULT = datetime(2001, 1, 1)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_datetime_text(value: str | None) -> datetime | None:
    """Parse ISO-8601 first, then free-form text such as ``"1/2/2025 9:05 PM"``.

    Returns ``None`` when neither understands the value.
    """

    if not value:
        return None
    text = value.strip()
    if not text:
        return None
    iso = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        return to_naive_utc(datetime.fromisoformat(iso))
    except ValueError:
        pass
    try:
        parsed = date_parser.parse(text, default=_FREEFORM_DEFAULT)
    except (ValueError, OverflowError):
        return None
    return to_naive_utc(parsed)


def coerce_datetime(value: object) -> datetime | None:
    if isinstance(value, datetime):
        return to_naive_utc(value)
    if value is None or value == "":
        return None
    return parse_datetime_text(str(value))


def isoformat_ms(value: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a trailing ``Z``."""

    value = to_naive_utc(value)
    return value.isoformat(timespec="milliseconds") + "Z"
