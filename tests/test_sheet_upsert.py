"""
Tests for idempotent storage of sheet rows.

**Property 1: Re-syncing the same rows never duplicates them**
**Property 2: A re-sync without an operator id keeps the recorded one**
"""

import asyncio

from sqlalchemy import func, select

from conftest import open_sqlite
from outbound_ops.models import DispatchSheetRowModel
from outbound_ops.repositories.dispatch_sheet_rows import SqlAlchemyDispatchSheetRowsRepository
from outbound_ops.services.sheet_ingest import parse_rows


def sheet_rows():
    parsed, _ = parse_rows(
        [
            {"Trip Number": "LT1", "TO Number": "TO1", "TO Parcel Quantity": "10", "To Dest Station Name": "Hub A", "Vehicle Number": "ABC 1"},
            {"Trip Number": "LT1", "TO Number": "TO2", "TO Parcel Quantity": "5", "Truck Size": "6W"},
            {"Trip Number": "LT2", "TO Number": "TO3", "Operator": "[OPS7] Sam"},
        ]
    )
    return parsed


async def count_rows(sessionmaker):
    async with sessionmaker() as session:
        return await session.scalar(select(func.count()).select_from(DispatchSheetRowModel))


def test_upsert_is_idempotent():
    async def scenario():
        async with open_sqlite() as sessionmaker:
            async with sessionmaker() as session:
                repo = SqlAlchemyDispatchSheetRowsRepository(session)
                first = await repo.upsert_many(sheet_rows())
                second = await repo.upsert_many(sheet_rows())
            return first, second, await count_rows(sessionmaker)

    first, second, stored = asyncio.run(scenario())
    assert first == second == 3
    assert stored == 3


def test_upsert_spans_batches_and_repeated_keys():
    rows = sheet_rows() * 3

    async def scenario():
        async with open_sqlite() as sessionmaker:
            async with sessionmaker() as session:
                repo = SqlAlchemyDispatchSheetRowsRepository(session, batch_size=2)
                written = await repo.upsert_many(rows)
            return written, await count_rows(sessionmaker)

    written, stored = asyncio.run(scenario())
    assert written == 9
    assert stored == 3


def test_upsert_of_nothing_is_zero():
    async def scenario():
        async with open_sqlite() as sessionmaker:
            async with sessionmaker() as session:
                return await SqlAlchemyDispatchSheetRowsRepository(session).upsert_many([])

    assert asyncio.run(scenario()) == 0


def test_resync_keeps_known_operator_id():
    first, _ = parse_rows([{"Trip Number": "LT9", "Operator": "[OPS1] Jane Doe", "Driver Name": "Ann"}])
    second, _ = parse_rows([{"Trip Number": "LT9", "Operator": "Jane Smith", "Driver Name": "Bob"}])

    async def scenario():
        async with open_sqlite() as sessionmaker:
            async with sessionmaker() as session:
                repo = SqlAlchemyDispatchSheetRowsRepository(session)
                await repo.upsert_many(first)
                await repo.upsert_many(second)
            async with sessionmaker() as session:
                return await session.get(DispatchSheetRowModel, "LT9")

    stored = asyncio.run(scenario())
    assert stored.operator_ops_id == "OPS1"
    assert stored.operator_name == "Jane Smith"
    assert stored.operator_raw == "Jane Smith"
    assert stored.driver_name == "Bob"


def test_lh_trip_summary_aggregates_rows():
    async def scenario():
        async with open_sqlite() as sessionmaker:
            async with sessionmaker() as session:
                repo = SqlAlchemyDispatchSheetRowsRepository(session)
                await repo.upsert_many(sheet_rows())
                return await repo.lh_trip_summary("LT1"), await repo.lh_trip_summary("LT404")

    summary, missing = asyncio.run(scenario())
    assert missing is None
    assert summary.lh_trip_number == "LT1"
    assert summary.total_oid_loaded == 15
    assert summary.count_of_to == "TO1, TO2"
    assert summary.station_name == "Hub A"
    assert summary.plate_number == "ABC 1"
    assert summary.fleet_size == "6W"
    assert summary.updated_at is not None
