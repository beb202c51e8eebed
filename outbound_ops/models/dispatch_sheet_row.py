"""Rows mirrored from the dispatch Google Sheet, keyed for idempotent re-syncs."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ..db import Base
from ..domain.common import utcnow


class DispatchSheetRowModel(Base):
    __tablename__ = "dispatch_google_sheet_rows"

    row_key: Mapped[str] = mapped_column(String(255), primary_key=True)
    dispatch_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    origin: Mapped[str | None] = mapped_column(String(160), nullable=True)
    to_dest_station_name: Mapped[str | None] = mapped_column(String(160), nullable=True)
    trip_number: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    to_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    to_parcel_quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    loaded_timestamp: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    operator_raw: Mapped[str | None] = mapped_column(String(255), nullable=True)
    operator_ops_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    operator_name: Mapped[str | None] = mapped_column(String(160), nullable=True)
    departure_timestamp: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    truck_size: Mapped[str | None] = mapped_column(String(32), nullable=True)
    vehicle_number: Mapped[str | None] = mapped_column(String(32), nullable=True)
    driver_name: Mapped[str | None] = mapped_column(String(160), nullable=True)
    raw_payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utcnow, onupdate=utcnow, nullable=False
    )
