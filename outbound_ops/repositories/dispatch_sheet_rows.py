"""Idempotent storage of Google Sheet dispatch rows."""

from __future__ import annotations

from typing import Protocol, Sequence

import structlog
from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.common import utcnow
from ..domain.sheets import LhTripSummary, SheetParsedRow
from ..models.dispatch_sheet_row import DispatchSheetRowModel

logger = structlog.get_logger(__name__)

UPSERT_BATCH_SIZE = 100

_OVERWRITTEN_COLUMNS = (
    "dispatch_date",
    "origin",
    "to_dest_station_name",
    "trip_number",
    "to_number",
    "to_parcel_quantity",
    "loaded_timestamp",
    "operator_raw",
    "departure_timestamp",
    "truck_size",
    "vehicle_number",
    "driver_name",
    "raw_payload",
    "updated_at",
)


class DispatchSheetRowsRepository(Protocol):
    async def upsert_many(self, rows: Sequence[SheetParsedRow]) -> int: ...

    async def lh_trip_summary(self, trip_number: str) -> LhTripSummary | None: ...


class SqlAlchemyDispatchSheetRowsRepository:
    def __init__(self, session: AsyncSession, *, batch_size: int = UPSERT_BATCH_SIZE) -> None:
        self._session = session
        self._batch_size = batch_size

    def _insert(self):
        dialect = self._session.bind.dialect.name if self._session.bind is not None else "postgresql"
        return sqlite.insert if dialect == "sqlite" else postgresql.insert

    def _upsert_statement(self, row: SheetParsedRow):
        table = DispatchSheetRowModel
        values = row.model_dump()
        values["updated_at"] = utcnow()
        stmt = self._insert()(table).values(**values)
        set_ = {column: getattr(stmt.excluded, column) for column in _OVERWRITTEN_COLUMNS}
        # A re-sync without the bracketed operator id must not erase one already recorded.
        set_["operator_ops_id"] = func.coalesce(stmt.excluded.operator_ops_id, table.operator_ops_id)
        set_["operator_name"] = func.coalesce(stmt.excluded.operator_name, table.operator_name)
        return stmt.on_conflict_do_update(index_elements=[table.row_key], set_=set_)

    async def upsert_many(self, rows: Sequence[SheetParsedRow]) -> int:
        """Upsert on ``row_key`` in fixed-size batches, committing each batch.

        A failing batch is rolled back and re-raised; earlier batches stay committed.
        """

        if not rows:
            return 0
        for start in range(0, len(rows), self._batch_size):
            chunk = rows[start : start + self._batch_size]
            try:
                for row in chunk:
                    await self._session.execute(self._upsert_statement(row))
                await self._session.commit()
            except Exception:
                await self._session.rollback()
                logger.error("sheets.upsert.batch_failed", batch_start=start, batch_size=len(chunk))
                raise
        return len(rows)

    async def lh_trip_summary(self, trip_number: str) -> LhTripSummary | None:
        table = DispatchSheetRowModel
        result = await self._session.execute(
            select(
                table.to_dest_station_name,
                table.to_number,
                table.to_parcel_quantity,
                table.departure_timestamp,
                table.vehicle_number,
                table.truck_size,
                table.dispatch_date,
                table.updated_at,
            ).where(table.trip_number == trip_number)
        )
        rows = result.all()
        if not rows:
            return None

        to_numbers: list[str] = []
        summary = LhTripSummary(lh_trip_number=trip_number)
        for row in rows:
            if row.to_number and row.to_number not in to_numbers:
                to_numbers.append(row.to_number)
            if row.to_parcel_quantity is not None:
                summary.total_oid_loaded += row.to_parcel_quantity
            # First non-empty value wins for every descriptive field.
            summary.station_name = summary.station_name or row.to_dest_station_name
            summary.actual_depart_time = summary.actual_depart_time or row.departure_timestamp
            summary.plate_number = summary.plate_number or row.vehicle_number
            summary.fleet_size = summary.fleet_size or row.truck_size
            summary.source_updated_at = summary.source_updated_at or row.dispatch_date
            summary.updated_at = summary.updated_at or row.updated_at
        summary.count_of_to = ", ".join(to_numbers) or None
        return summary
