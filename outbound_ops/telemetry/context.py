"""Per-request context and process-wide request counters."""

from __future__ import annotations

import contextvars
import time
from dataclasses import dataclass, field


@dataclass
class RequestMetrics:
    db_ms: float = 0.0
    db_queries: int = 0


@dataclass
class RequestContext:
    route: str
    request_id: str
    metrics: RequestMetrics = field(default_factory=RequestMetrics)


_request_ctx: contextvars.ContextVar[RequestContext | None] = contextvars.ContextVar(
    "request_context", default=None
)


def get_request_context() -> RequestContext | None:
    return _request_ctx.get()


def set_request_context(context: RequestContext) -> contextvars.Token[RequestContext | None]:
    return _request_ctx.set(context)


def reset_request_context(token: contextvars.Token[RequestContext | None]) -> None:
    _request_ctx.reset(token)


def record_db_query(duration_ms: float) -> None:
    """Attribute a finished query to the active request, if any."""

    context = _request_ctx.get()
    if context is None:
        return
    context.metrics.db_ms += duration_ms
    context.metrics.db_queries += 1


class MetricsState:
    """Uptime and request/error totals exposed by the JSON metrics endpoint."""

    def __init__(self) -> None:
        self.started_at = time.time()
        self.requests_total = 0
        self.errors_total = 0

    def record_request(self, status_code: int) -> None:
        self.requests_total += 1
        if status_code >= 500:
            self.errors_total += 1

    def snapshot(self) -> dict[str, int]:
        return {
            "uptime_seconds": int(time.time() - self.started_at),
            "requests_total": self.requests_total,
            "errors_total": self.errors_total,
        }


metrics_state = MetricsState()
