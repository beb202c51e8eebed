from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how every table stores datetimes."""

    return datetime.now(timezone.utc).replace(tzinfo=None)


def clamp_int(raw: object, *, default: int, minimum: int, maximum: int | None = None) -> int:
    """Coerce a query-string number into ``[minimum, maximum]``; junk yields ``default``."""

    try:
        value = int(float(str(raw)))
    except (TypeError, ValueError, OverflowError):
        return default
    value = max(value, minimum)
    if maximum is not None:
        value = min(value, maximum)
    return value
