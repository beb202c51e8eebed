"""Dispatch report shapes shared by the normaliser, repository and routes."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .auth import StrictModel

DispatchStatus = Literal["Pending", "Acknowledged", "Pending_Edit", "Confirmed", "Ongoing"]

MAX_SUBMIT_ROWS = 10

DEFAULT_DISPATCH_FIELDS: tuple[str, ...] = (
    "dispatch_id",
    "cluster_name",
    "station_name",
    "region",
    "status",
    "actual_docked_time",
    "actual_depart_time",
    "processor_name",
    "plate_number",
    "created_at",
    "status_updated_at",
)

ALLOWED_DISPATCH_FIELDS: frozenset[str] = frozenset(
    DEFAULT_DISPATCH_FIELDS
    + (
        "count_of_to",
        "total_oid_loaded",
        "dock_number",
        "dock_confirmed",
        "lh_trip_number",
        "submitted_by_ops_id",
        "assigned_ops_id",
        "fleet_size",
        "assigned_data_team_ops_id",
        "acknowledged_by_ops_id",
        "acknowledged_at",
        "confirmed_by_ops_id",
        "confirmed_at",
        "pending_edit_reason",
        "edit_count",
    )
)


class NormalizedDispatchRow(BaseModel):
    """A submitted row that passed every field rule."""

    cluster_name: str
    station_name: str
    region: str
    count_of_to: str = Field(description="Free-text count of transfer orders")
    total_oid_loaded: int = Field(ge=0)
    dock_number: str
    dock_confirmed: bool = True
    status: DispatchStatus = "Pending"
    lh_trip: Optional[str] = None
    docked_time: datetime
    depart_time: Optional[datetime] = None
    processor: Optional[str] = None
    plate: Optional[str] = None
    fleet_size: Optional[str] = None
    assigned_ops_id: str


class DispatchValidationError(BaseModel):
    """Every failing field of one rejected row, keyed by canonical field name."""

    row_index: int
    id: Optional[str] = None
    errors: dict[str, str]


class DispatchFilters(BaseModel):
    status: Optional[str] = None
    region: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class DispatchSubmitRequest(StrictModel):
    rows: list[dict[str, Any]] = Field(..., min_length=1, max_length=MAX_SUBMIT_ROWS)
    submitted_by_ops_id: Optional[str] = Field(default=None, min_length=1)


class DispatchVerifyRequest(StrictModel):
    rows: list[str] = Field(..., min_length=1, description="Dispatch ids to confirm")
    verified_by_ops_id: Optional[str] = Field(default=None, min_length=1)
    send_csv: Optional[bool] = None
    send_mode: Optional[Literal["per_batch", "all"]] = None


class DispatchListResponse(BaseModel):
    rows: list[dict[str, Any]]
    total: int
    limit: int
    offset: int


class DispatchSubmitResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    row_index: int = Field(alias="rowIndex")
    status: Literal["created", "error"]
    errors: Optional[dict[str, str]] = None


class DispatchSubmitResponse(BaseModel):
    ok: bool = True
    submitted: int
    failed: int = 0
    created_count: int
    errors_count: int = 0
    results: list[DispatchSubmitResult]


class DispatchVerifyResult(BaseModel):
    dispatch_ids: list[str]
    csv_link: Optional[str] = None
    seatalk_status: str = "pending"
