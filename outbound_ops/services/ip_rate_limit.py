"""Per-client-address rate limiting for unauthenticated endpoints.

Counters live in the process-local :class:`ServerCache`, so limits are per
worker rather than global. Clients with no forwarding headers all share the
``unknown`` bucket.
"""

from __future__ import annotations

from typing import Mapping

import structlog

from ..domain.rate_limits import RateLimitCounter, RateLimitStatus
from ..telemetry import RATE_LIMIT_BLOCKS
from .rate_limit import retry_after_seconds
from .server_cache import ServerCache

logger = structlog.get_logger(__name__)

UNKNOWN_CLIENT = "unknown"


def get_client_ip(headers: Mapping[str, str]) -> str:
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip() or UNKNOWN_CLIENT
    return headers.get("x-real-ip") or UNKNOWN_CLIENT


def enforce_ip_rate_limit(
    headers: Mapping[str, str],
    key_prefix: str,
    *,
    window_ms: float,
    limit: int,
    cache: ServerCache,
) -> RateLimitStatus:
    ip = get_client_ip(headers)
    key = f"rate:{key_prefix}:{ip}"
    now = cache.now_ms()

    existing: RateLimitCounter | None = cache.get(key)
    if existing is None or existing.expires_at_ms <= now:
        cache.set(key, RateLimitCounter(count=1, expires_at_ms=now + window_ms), window_ms)
        return RateLimitStatus(allowed=True, retry_after_seconds=0, limit=limit)

    count = existing.count + 1
    remaining_ms = existing.expires_at_ms - now
    cache.set(key, RateLimitCounter(count=count, expires_at_ms=existing.expires_at_ms), remaining_ms)

    if count > limit:
        RATE_LIMIT_BLOCKS.labels(strategy="ip", scope=key_prefix).inc()
        logger.info("rate_limit.blocked", strategy="ip", scope=key_prefix, ip=ip, count=count)
        return RateLimitStatus(
            allowed=False,
            retry_after_seconds=retry_after_seconds(remaining_ms),
            limit=limit,
        )
    return RateLimitStatus(allowed=True, retry_after_seconds=0, limit=limit)
