"""Validation and normalisation of dispatch rows submitted from the form."""

from __future__ import annotations

import math
import re
from typing import Any, Iterable, Mapping, Sequence

from ..domain.dispatch import DispatchValidationError, NormalizedDispatchRow
from .dates import coerce_datetime

LH_TRIP_PATTERN = re.compile(r"^LT[A-Z0-9]+$")
PLATE_PATTERN = re.compile(r"^[A-Z0-9\s-]+$")
# ASCII digits only, no digit-group underscores.
_DECIMAL_NUMBER = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
_PREFIXED_INTEGER = re.compile(r"0[xX][0-9a-fA-F]+|0[oO][0-7]+|0[bB][01]+")
ALLOWED_STATUSES = frozenset({"Pending", "Acknowledged", "Pending_Edit", "Confirmed", "Ongoing"})
DEFAULT_STATUS = "Pending"

FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "cluster_name": ("cluster_name", "clusterName"),
    "station_name": ("station_name", "station", "stationName"),
    "region": ("region",),
    "count_of_to": ("count_of_to", "countTO", "countTo"),
    "total_oid_loaded": ("total_oid_loaded", "totalOIDLoaded", "totalOidLoaded"),
    "dock_number": ("dock_number", "dockNumber"),
    "dock_confirmed": ("dock_confirmed", "dockConfirmed"),
    "assigned_ops_id": ("assigned_ops_id", "assignedPIC", "assignedOpsId"),
    "actual_docked_time": ("actual_docked_time", "actualDockedTime"),
    "actual_depart_time": ("actual_depart_time", "actualDepartTime"),
    "status": ("status",),
    "lh_trip_number": ("lh_trip_number", "lh_trip", "lHTripNumber"),
    "plate_number": ("plate_number", "plateNumber"),
    "processor_name": ("processor_name", "processorName"),
    "fleet_size": ("fleet_size", "fleetSize"),
}

_REQUIRED_TEXT = ("cluster_name", "station_name", "region", "count_of_to", "dock_number", "assigned_ops_id")


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


def pick_value(row: Mapping[str, Any], keys: Iterable[str]) -> Any:
    """First alias whose value is neither ``None`` nor ``""``."""

    for key in keys:
        value = row.get(key)
        if not _is_empty(value):
            return value
    return None


def to_trimmed_string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value).strip()


def parse_bool(value: Any) -> bool:
    if value is True:
        return True
    if value is False or value is None:
        return False
    if isinstance(value, (int, float)):
        return value == 1
    if isinstance(value, str):
        normalized = value.strip().lower()
        return normalized in {"1", "true"}
    return False


def parse_integer(value: Any) -> int | None:
    """Integer with thousands separators allowed; ``None`` for fractions and junk.

    Text that is only separators and whitespace counts as zero.
    """

    if _is_empty(value) or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value) or not value.is_integer():
            return None
        return int(value)
    text = str(value).replace(",", "").strip()
    if not text:
        return 0
    if _PREFIXED_INTEGER.fullmatch(text):
        return int(text, 0)
    if not _DECIMAL_NUMBER.fullmatch(text):
        return None
    number = float(text)
    if not math.isfinite(number) or not number.is_integer():
        return None
    return int(number)


def _normalize_row(row: Mapping[str, Any]) -> tuple[NormalizedDispatchRow | None, dict[str, str]]:
    errors: dict[str, str] = {}
    values = {field: pick_value(row, aliases) for field, aliases in FIELD_ALIASES.items()}

    text = {field: to_trimmed_string(values[field]) for field in _REQUIRED_TEXT}
    for field in _REQUIRED_TEXT:
        if not text[field]:
            errors[field] = f"{field} is required"

    total_raw = values["total_oid_loaded"]
    total_oid = parse_integer(total_raw)
    if _is_empty(total_raw):
        errors["total_oid_loaded"] = "total_oid_loaded is required"
    elif total_oid is None or total_oid < 0:
        errors["total_oid_loaded"] = "total_oid_loaded must be an integer >= 0"

    if not parse_bool(values["dock_confirmed"]):
        errors["dock_confirmed"] = "dock_confirmed must be true"

    docked_time = coerce_datetime(values["actual_docked_time"])
    if docked_time is None:
        errors["actual_docked_time"] = "actual_docked_time is required"

    depart_raw = values["actual_depart_time"]
    depart_time = coerce_datetime(depart_raw)
    if not _is_empty(depart_raw) and depart_time is None:
        errors["actual_depart_time"] = "actual_depart_time must be a valid datetime"
    if docked_time and depart_time and depart_time < docked_time:
        errors["actual_depart_time"] = "actual_depart_time must be >= actual_docked_time"

    status = to_trimmed_string(values["status"])
    if status not in ALLOWED_STATUSES:
        status = DEFAULT_STATUS

    lh_trip = to_trimmed_string(values["lh_trip_number"]).upper()
    if lh_trip and not LH_TRIP_PATTERN.match(lh_trip):
        errors["lh_trip_number"] = "lh_trip_number must match ^LT[A-Z0-9]+$"

    plate = to_trimmed_string(values["plate_number"]).upper()
    if plate and not PLATE_PATTERN.match(plate):
        errors["plate_number"] = "plate_number must match ^[A-Z0-9\\s-]+$"

    if errors:
        return None, errors

    processor = to_trimmed_string(values["processor_name"])
    fleet_size = to_trimmed_string(values["fleet_size"])
    return (
        NormalizedDispatchRow(
            cluster_name=text["cluster_name"],
            station_name=text["station_name"],
            region=text["region"],
            count_of_to=text["count_of_to"],
            total_oid_loaded=total_oid,
            dock_number=text["dock_number"],
            dock_confirmed=True,
            status=status,
            lh_trip=lh_trip or None,
            docked_time=docked_time,
            depart_time=depart_time,
            processor=processor or None,
            plate=plate or None,
            fleet_size=fleet_size or None,
            assigned_ops_id=text["assigned_ops_id"],
        ),
        {},
    )


def normalize_dispatch_rows(
    rows: Sequence[Mapping[str, Any]],
) -> tuple[list[NormalizedDispatchRow], list[DispatchValidationError]]:
    """Split submitted rows into normalised rows and per-row error reports.

    Rows with any error are excluded from the first list and appear once in the
    second, keyed by their position in ``rows``. Nothing is raised.
    """

    normalized: list[NormalizedDispatchRow] = []
    failures: list[DispatchValidationError] = []
    for index, row in enumerate(rows):
        result, errors = _normalize_row(row)
        if result is None:
            row_id = row.get("id")
            failures.append(
                DispatchValidationError(
                    row_index=index,
                    id=row_id if isinstance(row_id, str) else None,
                    errors=errors,
                )
            )
            continue
        normalized.append(result)
    return normalized, failures
