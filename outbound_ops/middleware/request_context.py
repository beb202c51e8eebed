"""
Request correlation, access logging and performance budgets.

Every response carries ``X-Request-ID`` (taken from the client or generated).
Unhandled exceptions are logged and converted into a generic 500 envelope that
echoes the request id so support can find the matching log line.
"""

from __future__ import annotations

import time
import uuid
from typing import Awaitable, Callable

import structlog
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from ..core.config import get_settings
from ..telemetry.context import (
    RequestContext,
    metrics_state,
    reset_request_context,
    set_request_context,
)

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def _over_budget(value: float, budget: float) -> bool:
    return budget > 0 and value > budget


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        settings = get_settings()
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        route = request.url.path
        method = request.method
        context = RequestContext(route=route, request_id=request_id)

        token = set_request_context(context)
        structlog.contextvars.bind_contextvars(request_id=request_id)
        start = time.perf_counter()
        status_code = 500
        try:
            try:
                response = await call_next(request)
            except Exception:
                logger.exception("api.error", route=route, method=method)
                response = JSONResponse(
                    status_code=500,
                    content={"error": "Internal server error", "request_id": request_id},
                )
            status_code = response.status_code
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            ms = (time.perf_counter() - start) * 1000
            db_ms = context.metrics.db_ms
            db_queries = context.metrics.db_queries
            metrics_state.record_request(status_code)
            logger.info(
                "api.request",
                route=route,
                method=method,
                status=status_code,
                ms=round(ms, 2),
                db_ms=round(db_ms, 2),
                db_queries=db_queries,
            )
            if (
                _over_budget(ms, settings.request_budget_ms)
                or _over_budget(db_ms, settings.db_budget_ms)
                or _over_budget(db_queries, settings.db_query_budget)
            ):
                logger.warning(
                    "api.performance_budget",
                    route=route,
                    method=method,
                    status=status_code,
                    ms=round(ms, 2),
                    db_ms=round(db_ms, 2),
                    db_queries=db_queries,
                    budget={
                        "request_ms": settings.request_budget_ms,
                        "db_ms": settings.db_budget_ms,
                        "db_queries": settings.db_query_budget,
                    },
                )
            structlog.contextvars.unbind_contextvars("request_id")
            reset_request_context(token)
