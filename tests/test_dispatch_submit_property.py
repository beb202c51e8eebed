"""
Property-based tests for dispatch row normalisation.

**Property 1: Valid rows normalise with upper-cased trip and plate**
**Property 2: Unknown statuses fall back to Pending**
**Property 3: Every failing field of a row is reported at once**
"""

from datetime import datetime

from hypothesis import given, settings
from hypothesis import strategies as st

from outbound_ops.services.dispatch_submit import (
    ALLOWED_STATUSES,
    normalize_dispatch_rows,
    parse_bool,
    parse_integer,
)


def valid_row(**overrides):
    row = {
        "cluster_name": "Cluster A",
        "station_name": "Hub 1",
        "region": "NCR",
        "count_of_to": "12",
        "total_oid_loaded": 340,
        "dock_number": "D-04",
        "dock_confirmed": True,
        "assigned_ops_id": "OPS001",
        "actual_docked_time": "2025-01-02T08:00:00Z",
    }
    row.update(overrides)
    return row


trip_suffixes = st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789", min_size=1, max_size=10)
plates = st.text(alphabet="abcxyzABCXYZ0123456789- ", min_size=1, max_size=10).filter(lambda s: s.strip())


@settings(max_examples=100)
@given(suffix=trip_suffixes, plate=plates)
def test_trip_and_plate_are_upper_cased(suffix, plate):
    """Lower-case input that matches once upper-cased is accepted, not rejected."""
    rows, errors = normalize_dispatch_rows(
        [valid_row(lh_trip_number=f"lt{suffix}", plate_number=plate)]
    )

    assert errors == []
    assert rows[0].lh_trip == f"LT{suffix.upper()}"
    assert rows[0].plate == plate.strip().upper()


@settings(max_examples=100)
@given(status=st.text(max_size=15).filter(lambda s: s.strip() not in ALLOWED_STATUSES))
def test_unknown_status_falls_back_to_pending(status):
    rows, errors = normalize_dispatch_rows([valid_row(status=status)])
    assert errors == []
    assert rows[0].status == "Pending"


@settings(max_examples=100)
@given(status=st.sampled_from(sorted(ALLOWED_STATUSES)))
def test_known_status_is_kept(status):
    rows, _ = normalize_dispatch_rows([valid_row(status=f" {status} ")])
    assert rows[0].status == status


def test_normalised_row_round_trip():
    rows, errors = normalize_dispatch_rows(
        [
            valid_row(
                lh_trip_number="lt123",
                plate_number="abc-123",
                actual_depart_time="2025-01-02T17:30:00+08:00",
                processor_name="  Jane  ",
                fleet_size="",
            )
        ]
    )

    assert errors == []
    row = rows[0]
    assert row.lh_trip == "LT123"
    assert row.plate == "ABC-123"
    assert row.docked_time == datetime(2025, 1, 2, 8, 0)
    assert row.depart_time == datetime(2025, 1, 2, 9, 30)
    assert row.processor == "Jane"
    assert row.fleet_size is None
    assert row.status == "Pending"
    assert row.dock_confirmed is True


def test_empty_row_reports_every_required_field():
    rows, errors = normalize_dispatch_rows([{}])

    assert rows == []
    assert errors[0].row_index == 0
    assert set(errors[0].errors) == {
        "cluster_name",
        "station_name",
        "region",
        "count_of_to",
        "total_oid_loaded",
        "dock_number",
        "dock_confirmed",
        "assigned_ops_id",
        "actual_docked_time",
    }
    assert errors[0].errors["cluster_name"] == "cluster_name is required"


def test_camel_case_aliases_are_accepted():
    rows, errors = normalize_dispatch_rows(
        [
            {
                "clusterName": "Cluster A",
                "station": "Hub 1",
                "region": "NCR",
                "countTO": "3",
                "totalOIDLoaded": "1,250",
                "dockNumber": "7",
                "dockConfirmed": "true",
                "assignedPIC": "OPS002",
                "actualDockedTime": "2025-01-02 08:00",
                "lHTripNumber": "LT9",
            }
        ]
    )

    assert errors == []
    assert rows[0].total_oid_loaded == 1250
    assert rows[0].assigned_ops_id == "OPS002"
    assert rows[0].lh_trip == "LT9"


def test_snake_case_wins_over_alias_when_both_present():
    rows, _ = normalize_dispatch_rows([valid_row(cluster_name="Snake", clusterName="Camel")])
    assert rows[0].cluster_name == "Snake"


def test_empty_snake_case_falls_through_to_alias():
    rows, _ = normalize_dispatch_rows([valid_row(cluster_name="", clusterName="Camel")])
    assert rows[0].cluster_name == "Camel"


def test_depart_before_docked_is_rejected():
    _, errors = normalize_dispatch_rows(
        [valid_row(actual_depart_time="2025-01-02T07:59:00Z")]
    )
    assert errors[0].errors == {
        "actual_depart_time": "actual_depart_time must be >= actual_docked_time"
    }


def test_unparseable_depart_time_is_rejected():
    _, errors = normalize_dispatch_rows([valid_row(actual_depart_time="not a date")])
    assert errors[0].errors["actual_depart_time"] == "actual_depart_time must be a valid datetime"


def test_bad_trip_and_plate_are_reported_together():
    _, errors = normalize_dispatch_rows(
        [valid_row(lh_trip_number="TRIP-1", plate_number="ab_12", id="row-7")]
    )
    assert errors[0].id == "row-7"
    assert set(errors[0].errors) == {"lh_trip_number", "plate_number"}


def test_total_oid_must_be_non_negative_integer():
    for bad in (-1, "1.5", 2.5, "abc"):
        _, errors = normalize_dispatch_rows([valid_row(total_oid_loaded=bad)])
        assert errors[0].errors["total_oid_loaded"] == "total_oid_loaded must be an integer >= 0"


def test_zero_total_oid_is_valid():
    rows, errors = normalize_dispatch_rows([valid_row(total_oid_loaded=0)])
    assert errors == []
    assert rows[0].total_oid_loaded == 0


def test_failing_rows_keep_their_index():
    rows, errors = normalize_dispatch_rows([valid_row(), {}, valid_row(), valid_row(region=" ")])
    assert len(rows) == 2
    assert [error.row_index for error in errors] == [1, 3]


def test_parse_bool_variants():
    assert parse_bool(True)
    assert parse_bool(1)
    assert parse_bool(" TRUE ")
    assert parse_bool("1")
    assert not parse_bool("yes")
    assert not parse_bool(0)
    assert not parse_bool(None)


def test_parse_integer_variants():
    assert parse_integer("1,000") == 1000
    assert parse_integer(3.0) == 3
    assert parse_integer(" 42 ") == 42
    assert parse_integer("") is None
    assert parse_integer(True) is None
    assert parse_integer("NaN") is None
    assert parse_integer("1_000") is None
    assert parse_integer("١٢") is None
    assert parse_integer("1e3") == 1000
    assert parse_integer("0x10") == 16
    assert parse_integer("  ") == 0
    assert parse_integer(",") == 0


def test_blank_total_oid_counts_as_zero():
    rows, errors = normalize_dispatch_rows([valid_row(total_oid_loaded="   ")])
    assert errors == []
    assert rows[0].total_oid_loaded == 0
