"""Hub/cluster mapping used by lookups and the hubs admin screen."""

from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from ..db import Base


class OutboundMapModel(Base):
    __tablename__ = "outbound_map"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    cluster_name: Mapped[str | None] = mapped_column(String(160), nullable=True, index=True)
    hub_name: Mapped[str | None] = mapped_column(String(160), nullable=True)
    region: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    dock_number: Mapped[str | None] = mapped_column(String(32), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
