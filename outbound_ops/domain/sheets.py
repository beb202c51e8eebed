"""Structured form of one row mirrored from the dispatch Google Sheet."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class SheetParsedRow(BaseModel):
    row_key: str = Field(description="Natural key, or a content hash when no natural key exists")
    dispatch_date: Optional[datetime] = None
    origin: Optional[str] = None
    to_dest_station_name: Optional[str] = None
    trip_number: str
    to_number: Optional[str] = None
    to_parcel_quantity: Optional[int] = None
    loaded_timestamp: Optional[datetime] = None
    operator_raw: Optional[str] = None
    operator_ops_id: Optional[str] = None
    operator_name: Optional[str] = None
    departure_timestamp: Optional[datetime] = None
    truck_size: Optional[str] = None
    vehicle_number: Optional[str] = None
    driver_name: Optional[str] = None
    raw_payload: dict[str, Any] = Field(default_factory=dict)


class SheetSyncResponse(BaseModel):
    synced: int
    ignored: int


class LhTripSummary(BaseModel):
    """Dispatch form prefill aggregated from every sheet row of one LH trip."""

    lh_trip_number: str
    cluster_name: Optional[str] = None
    station_name: Optional[str] = None
    region: Optional[str] = None
    count_of_to: Optional[str] = None
    total_oid_loaded: int = 0
    actual_docked_time: Optional[datetime] = None
    dock_number: Optional[str] = None
    actual_depart_time: Optional[datetime] = None
    processor_name: Optional[str] = None
    plate_number: Optional[str] = None
    fleet_size: Optional[str] = None
    assigned_ops_id: Optional[str] = None
    source_updated_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
