"""SQLAlchemy model for rate limit counters."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ..db import Base


class SessionRateLimitModel(Base):
    """Fixed-window request counter, one row per session."""

    __tablename__ = "session_rate_limits"

    session_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
