"""Domain models describing API rate limiting state."""

from __future__ import annotations

from pydantic import BaseModel, Field


class RateLimitStatus(BaseModel):
    """Represents the outcome of a rate limit check."""

    allowed: bool = Field(
        description="Whether the request is permitted under the configured quota",
    )
    retry_after_seconds: int = Field(
        description="Seconds until the window resets; zero when the request was allowed",
        ge=0,
    )
    limit: int = Field(
        description="Maximum number of requests allowed within the window",
        ge=0,
    )


class RateLimitCounter(BaseModel):
    """Fixed-window counter stored per session or per client address."""

    count: int = Field(ge=0)
    expires_at_ms: float = Field(description="Cache clock reading, in milliseconds, at which the window closes")


class RateLimitExceededPayload(BaseModel):
    """Error body returned alongside ``Retry-After`` when a limit is exceeded."""

    error: str = Field(default="Too many requests")
