"""Prometheus counters for the dashboard API and optional OTLP tracing."""

from __future__ import annotations

import re
import time

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Match

from ..core.config import get_settings

REQUEST_COUNT = Counter(
    "outbound_ops_http_requests_total",
    "HTTP requests by route template and status",
    labelnames=("method", "route", "status"),
)
REQUEST_LATENCY = Histogram(
    "outbound_ops_http_request_duration_seconds",
    "HTTP request latency by route template",
    labelnames=("method", "route"),
    buckets=(0.025, 0.05, 0.1, 0.25, 0.5, 1, 2, 5),
)
RATE_LIMIT_BLOCKS = Counter(
    "outbound_ops_rate_limit_blocked_total",
    "Requests rejected by a rate limiter",
    labelnames=("strategy", "scope"),
)
SHEET_ROWS = Counter(
    "outbound_ops_sheet_rows_total",
    "Google Sheets rows processed by the sync webhook",
    labelnames=("outcome",),
)

# Unmatched paths (404s) are collapsed so scanners cannot blow up label cardinality.
UNMATCHED_ROUTE = "unmatched"
_UNSCRAPED_ROUTES = re.compile(r"/(ping|health(/readiness)?)$")
_tracing_configured = False


def route_label(request: Request) -> str:
    """The route template serving ``request``, e.g. ``/api/hubs/{hub_id}``.

    Routing runs downstream of this middleware, so the app's routes are matched
    against the scope again here. A path that only matches another method keeps
    its template.
    """

    partial: str | None = None
    for route in request.app.router.routes:
        match, _ = route.matches(request.scope)
        if match == Match.FULL:
            return getattr(route, "path", UNMATCHED_ROUTE)
        if match == Match.PARTIAL and partial is None:
            partial = getattr(route, "path", None)
    return partial or UNMATCHED_ROUTE


class PrometheusMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        start = time.perf_counter()
        response = await call_next(request)
        route = route_label(request)
        if route == get_settings().prometheus_metrics_path or _UNSCRAPED_ROUTES.search(route):
            return response
        REQUEST_COUNT.labels(method=request.method, route=route, status=str(response.status_code)).inc()
        REQUEST_LATENCY.labels(method=request.method, route=route).observe(time.perf_counter() - start)
        return response


def setup_prometheus(app: FastAPI) -> None:
    """Count requests and expose the registry in the Prometheus text format."""

    app.add_middleware(PrometheusMiddleware)

    @app.get(get_settings().prometheus_metrics_path, include_in_schema=False)
    async def prometheus_metrics() -> Response:  # pragma: no cover - trivial
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


def parse_otlp_headers(raw: str | None) -> dict[str, str]:
    """``"k1=v1,k2=v2"`` into a dict; entries without ``=`` are dropped."""

    if not raw:
        return {}
    pairs = (part.split("=", 1) for part in raw.split(",") if "=" in part)
    return {key.strip(): value.strip() for key, value in pairs if key.strip()}


def configure_tracing(app: FastAPI) -> None:
    """Export spans over OTLP/HTTP when ``OTEL_EXPORTER_OTLP_ENDPOINT`` is set."""

    global _tracing_configured
    settings = get_settings()
    if not settings.otel_exporter_otlp_endpoint:
        return
    if _tracing_configured:
        # The provider is process-wide; later apps (tests, reloads) only need instrumenting.
        FastAPIInstrumentor.instrument_app(app)
        return

    provider = TracerProvider(
        resource=Resource.create(
            {
                "service.name": settings.otel_service_name or settings.project_name,
                "service.version": settings.app_version,
                "deployment.environment": settings.app_env,
            }
        )
    )
    provider.add_span_processor(
        BatchSpanProcessor(
            OTLPSpanExporter(
                endpoint=settings.otel_exporter_otlp_endpoint,
                headers=parse_otlp_headers(settings.otel_exporter_otlp_headers),
            )
        )
    )
    trace.set_tracer_provider(provider)
    FastAPIInstrumentor.instrument_app(app, tracer_provider=provider, excluded_urls="ping,health")
    _tracing_configured = True
