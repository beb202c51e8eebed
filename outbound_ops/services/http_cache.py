"""``Cache-Control`` values for cached read endpoints."""

from __future__ import annotations

import math

NO_STORE = "no-store"


def to_cache_seconds(ms: float) -> int:
    if not math.isfinite(ms) or ms <= 0:
        return 0
    return max(1, math.floor(ms / 1000))


def build_cache_control(
    max_age_seconds: int,
    *,
    stale_while_revalidate_seconds: int = 0,
    scope: str = "private",
) -> str:
    parts = [scope, f"max-age={max(0, max_age_seconds)}"]
    if stale_while_revalidate_seconds > 0:
        parts.append(f"stale-while-revalidate={stale_while_revalidate_seconds}")
    return ", ".join(parts)


LOOKUP_CACHE_MS = 60_000
LOOKUP_CACHE_CONTROL = build_cache_control(
    to_cache_seconds(LOOKUP_CACHE_MS),
    stale_while_revalidate_seconds=to_cache_seconds(LOOKUP_CACHE_MS * 5),
)

LH_TRIP_CACHE_MS = 60_000
LH_TRIP_CACHE_CONTROL = build_cache_control(
    to_cache_seconds(LH_TRIP_CACHE_MS),
    stale_while_revalidate_seconds=to_cache_seconds(LH_TRIP_CACHE_MS * 2),
)

KPI_CACHE_MS = 30_000
KPI_CACHE_CONTROL = build_cache_control(
    to_cache_seconds(KPI_CACHE_MS),
    stale_while_revalidate_seconds=to_cache_seconds(KPI_CACHE_MS * 2),
)

HUB_CACHE_MS = 30_000
HUB_CACHE_CONTROL = build_cache_control(
    to_cache_seconds(HUB_CACHE_MS),
    stale_while_revalidate_seconds=to_cache_seconds(HUB_CACHE_MS * 2),
)
