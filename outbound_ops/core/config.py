import math
from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_POSITIVE_DEFAULTS: dict[str, float] = {
    "rate_limit_window_ms": 60_000,
    "rate_limit_max_requests": 60,
    "auth_rate_limit_window_ms": 60_000,
    "auth_rate_limit_max_requests": 20,
    "webhook_rate_limit_window_ms": 60_000,
    "webhook_rate_limit_max_requests": 60,
    "session_ttl_hours": 12,
    "session_refresh_minutes": 10,
}


def parse_positive_number(value: object, fallback: float) -> float:
    """Return ``value`` as a positive number, or ``fallback`` when it is not one."""

    if value is None or value == "":
        return fallback
    try:
        parsed = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return fallback
    if not math.isfinite(parsed) or parsed <= 0:
        return fallback
    return parsed


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    api_prefix: str = "/api"
    project_name: str = Field(default="Outbound Internal Tool", alias="APP_NAME")
    app_version: str = Field(default="1.0.0", alias="APP_VERSION")
    app_env: str = Field(default="development", alias="APP_ENV")
    log_level: str = Field(default="info", alias="LOG_LEVEL")
    cors_origins_raw: str = Field(default="", alias="CORS_ORIGINS")

    database_url: str | None = Field(
        default=None,
        alias="DATABASE_URL",
        description="SQLAlchemy async connection string for the primary database",
    )
    db_slow_query_ms: float = Field(default=200, alias="DB_SLOW_QUERY_MS")

    # Rate limiting
    rate_limit_window_ms: float = Field(default=60_000, alias="RATE_LIMIT_WINDOW_MS")
    rate_limit_max_requests: float = Field(default=60, alias="RATE_LIMIT_MAX_REQUESTS")
    auth_rate_limit_window_ms: float = Field(default=60_000, alias="AUTH_RATE_LIMIT_WINDOW_MS")
    auth_rate_limit_max_requests: float = Field(default=20, alias="AUTH_RATE_LIMIT_MAX_REQUESTS")
    webhook_rate_limit_window_ms: float = Field(default=60_000, alias="WEBHOOK_RATE_LIMIT_WINDOW_MS")
    webhook_rate_limit_max_requests: float = Field(default=60, alias="WEBHOOK_RATE_LIMIT_MAX_REQUESTS")
    server_cache_max_entries: int = Field(default=500, alias="SERVER_CACHE_MAX_ENTRIES")

    # Sessions
    session_cookie_name: str = "soc5_session"
    session_ttl_hours: float = Field(default=12, alias="SESSION_TTL_HOURS")
    session_refresh_minutes: float = Field(default=10, alias="SESSION_REFRESH_MINUTES")
    cookie_secure: bool | None = Field(default=None, alias="COOKIE_SECURE")
    cookie_domain: str | None = Field(default=None, alias="COOKIE_DOMAIN")

    # Identity providers
    google_client_id: str | None = Field(default=None, alias="GOOGLE_CLIENT_ID")
    allowed_email_domains_raw: str = Field(
        default="shopeemobile-external.com,spxexpress.com",
        alias="ALLOWED_EMAIL_DOMAINS",
    )
    seatalk_enabled: bool = Field(default=True, alias="SEATALK_ENABLED")

    # Google Sheets sync
    feature_google_sheets_sync: bool = Field(default=True, alias="FEATURE_GOOGLE_SHEETS_SYNC")
    google_sheets_id: str | None = Field(default=None, alias="GOOGLE_SHEETS_ID")
    google_sheets_api_key: str | None = Field(default=None, alias="GOOGLE_SHEETS_API_KEY")
    google_sheets_range: str = Field(default="dispatch_sync!A:L", alias="GOOGLE_SHEETS_RANGE")
    google_sheets_timeout_seconds: float = Field(default=15.0, gt=0)
    webhook_secret: str | None = Field(default=None, alias="WEBHOOK_SECRET")

    # Request budgets
    request_budget_ms: float = Field(default=2000, alias="REQUEST_BUDGET_MS")
    db_budget_ms: float = Field(default=1000, alias="DB_BUDGET_MS")
    db_query_budget: float = Field(default=20, alias="DB_QUERY_BUDGET")

    # Observability
    metrics_token: str | None = Field(default=None, alias="METRICS_TOKEN")
    enable_prometheus_metrics: bool = Field(
        default=True,
        alias="ENABLE_PROMETHEUS_METRICS",
        description="Expose Prometheus metrics endpoint when true",
    )
    prometheus_metrics_path: str = Field(
        default="/metrics/prometheus",
        alias="PROMETHEUS_METRICS_PATH",
        description="Path where scraped Prometheus metrics are served",
    )
    otel_exporter_otlp_endpoint: str | None = Field(
        default=None,
        alias="OTEL_EXPORTER_OTLP_ENDPOINT",
        description="OTLP HTTP endpoint for exporting traces",
    )
    otel_exporter_otlp_headers: str | None = Field(
        default=None,
        alias="OTEL_EXPORTER_OTLP_HEADERS",
        description="Comma separated key=value pairs added to OTLP requests",
    )
    otel_service_name: str | None = Field(
        default=None,
        alias="OTEL_SERVICE_NAME",
        description="Optional override for OpenTelemetry service.name",
    )

    @field_validator(*_POSITIVE_DEFAULTS.keys(), mode="before")
    @classmethod
    def _fallback_to_default(cls, value: object, info) -> float:
        return parse_positive_number(value, _POSITIVE_DEFAULTS[info.field_name])

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() == "production"

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins_raw.split(",") if origin.strip()]

    @property
    def allowed_email_domains(self) -> List[str]:
        return [
            domain.strip().lower()
            for domain in self.allowed_email_domains_raw.split(",")
            if domain.strip()
        ]


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()
