from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.errors import register_exception_handlers
from .api.routes.auth import router as auth_router
from .api.routes.dispatch import router as dispatch_router
from .api.routes.health import router as health_router
from .api.routes.hubs import router as hubs_router
from .api.routes.kpi import router as kpi_router
from .api.routes.lookup import router as lookup_router
from .api.routes.metrics import router as metrics_router
from .api.routes.sync import router as sync_router
from .api.routes.users import router as users_router
from .core.config import get_settings
from .core.logging_setup import configure_logging
from .db import init_db
from .middleware.request_context import RequestContextMiddleware
from .telemetry import configure_tracing, setup_prometheus


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging()
    app = FastAPI(title=settings.project_name, version=settings.app_version)

    allow_origins = settings.cors_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in allow_origins],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestContextMiddleware)
    register_exception_handlers(app)

    @app.on_event("startup")
    async def _startup() -> None:
        await init_db()

    app.include_router(health_router, prefix=settings.api_prefix)
    app.include_router(metrics_router, prefix=settings.api_prefix)
    app.include_router(auth_router, prefix=settings.api_prefix)
    app.include_router(users_router, prefix=settings.api_prefix)
    app.include_router(dispatch_router, prefix=settings.api_prefix)
    app.include_router(hubs_router, prefix=settings.api_prefix)
    app.include_router(lookup_router, prefix=settings.api_prefix)
    app.include_router(kpi_router, prefix=settings.api_prefix)
    app.include_router(sync_router, prefix=settings.api_prefix)

    if settings.enable_prometheus_metrics:
        setup_prometheus(app)
    configure_tracing(app)

    return app


app = create_app()
