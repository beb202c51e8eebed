"""Request payloads and session records used by the auth endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .users import User


class StrictModel(BaseModel):
    """Request body base that rejects unknown keys."""

    model_config = ConfigDict(extra="forbid")


def _require_text(value: str, field_name: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError(f"{field_name} is required")
    return value


class GoogleLoginRequest(StrictModel):
    id_token: str = Field(..., description="Google ID token issued to the browser")

    @field_validator("id_token")
    @classmethod
    def _strip(cls, value: str) -> str:
        return _require_text(value, "id_token")


class SeatalkSessionRequest(StrictModel):
    session_id: str = Field(..., description="QR handshake identifier generated by the browser")

    @field_validator("session_id")
    @classmethod
    def _strip(cls, value: str) -> str:
        return _require_text(value, "session_id")


class SeatalkCallbackRequest(SeatalkSessionRequest):
    email: str = Field(..., description="Email confirmed by the SeaTalk mobile app")

    @field_validator("email")
    @classmethod
    def _normalise_email(cls, value: str) -> str:
        return _require_text(value, "email").lower()


class LogoutRequest(StrictModel):
    pass


class SeatalkCheckResponse(BaseModel):
    email: Optional[str]
    authenticated: bool


class SeatalkSession(BaseModel):
    session_id: str
    authenticated: bool
    email: Optional[str] = None
    auth_session_id: Optional[str] = None


class AuthSession(BaseModel):
    """Active browser session joined with its user."""

    session_id: str
    expires_at: datetime
    last_seen_at: Optional[datetime] = None
    user: User
