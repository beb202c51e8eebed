"""Dispatch reports submitted by Ops PICs and confirmed by the data team."""

from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ..db import Base
from ..domain.common import utcnow


class DispatchReportModel(Base):
    __tablename__ = "dispatch_reports"

    dispatch_id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid4())
    )
    cluster_name: Mapped[str] = mapped_column(String(160), nullable=False)
    station_name: Mapped[str] = mapped_column(String(160), nullable=False)
    region: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    count_of_to: Mapped[str] = mapped_column(String(255), nullable=False)
    total_oid_loaded: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    dock_number: Mapped[str] = mapped_column(String(32), nullable=False)
    dock_confirmed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="Pending", index=True)
    lh_trip_number: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    actual_docked_time: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    actual_depart_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    processor_name: Mapped[str | None] = mapped_column(String(160), nullable=True)
    plate_number: Mapped[str | None] = mapped_column(String(32), nullable=True)
    fleet_size: Mapped[str | None] = mapped_column(String(32), nullable=True)
    assigned_ops_id: Mapped[str] = mapped_column(String(64), nullable=False)
    submitted_by_ops_id: Mapped[str] = mapped_column(String(64), nullable=False)
    assigned_data_team_ops_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    acknowledged_by_ops_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    acknowledged_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    confirmed_by_ops_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    pending_edit_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    edit_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utcnow, nullable=False, index=True
    )
    status_updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
