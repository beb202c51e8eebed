"""Session-scoped rate limiting backed by the session counter repository."""

from __future__ import annotations

import math
from datetime import datetime, timedelta

import structlog

from ..core.config import get_settings
from ..domain.common import utcnow
from ..domain.rate_limits import RateLimitStatus
from ..repositories.rate_limits import SessionRateLimitRepository
from ..telemetry import RATE_LIMIT_BLOCKS

logger = structlog.get_logger(__name__)


def retry_after_seconds(remaining_ms: float) -> int:
    return max(1, math.ceil(remaining_ms / 1000))


async def enforce_session_rate_limit(
    repo: SessionRateLimitRepository,
    session_id: str,
    *,
    window_ms: float | None = None,
    limit: int | None = None,
    now: datetime | None = None,
) -> RateLimitStatus:
    """Count one request for ``session_id`` and report whether it is within quota."""

    settings = get_settings()
    effective_window_ms = settings.rate_limit_window_ms if window_ms is None else window_ms
    effective_limit = int(settings.rate_limit_max_requests if limit is None else limit)
    window_seconds = max(1, math.floor(effective_window_ms / 1000))
    now = now or utcnow()

    count, expires_at = await repo.increment(
        session_id, window=timedelta(seconds=window_seconds), now=now
    )
    if count <= effective_limit:
        return RateLimitStatus(allowed=True, retry_after_seconds=0, limit=effective_limit)

    remaining_ms = (expires_at - now).total_seconds() * 1000
    RATE_LIMIT_BLOCKS.labels(strategy="session", scope="session").inc()
    logger.info("rate_limit.blocked", strategy="session", count=count, limit=effective_limit)
    return RateLimitStatus(
        allowed=False,
        retry_after_seconds=retry_after_seconds(remaining_ms),
        limit=effective_limit,
    )
