from __future__ import annotations

from typing import Any, Protocol, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.common import utcnow
from ..domain.dispatch import DEFAULT_DISPATCH_FIELDS, DispatchFilters, NormalizedDispatchRow
from ..models.dispatch_report import DispatchReportModel


class DispatchReportsRepository(Protocol):
    async def list(
        self,
        filters: DispatchFilters,
        *,
        limit: int,
        offset: int,
        fields: Sequence[str] | None = None,
    ) -> tuple[int, list[dict[str, Any]]]: ...

    async def create_many(self, rows: Sequence[NormalizedDispatchRow], submitted_by_ops_id: str) -> int: ...

    async def confirm(self, dispatch_ids: Sequence[str], confirmed_by_ops_id: str) -> int: ...


class SqlAlchemyDispatchReportsRepository:
    """Dispatch reports persisted in ``dispatch_reports``."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @staticmethod
    def _conditions(filters: DispatchFilters) -> list:
        conditions = []
        if filters.status:
            conditions.append(DispatchReportModel.status == filters.status)
        if filters.region:
            conditions.append(DispatchReportModel.region == filters.region)
        if filters.start_date:
            conditions.append(DispatchReportModel.created_at >= filters.start_date)
        if filters.end_date:
            conditions.append(DispatchReportModel.created_at <= filters.end_date)
        return conditions

    async def list(
        self,
        filters: DispatchFilters,
        *,
        limit: int,
        offset: int,
        fields: Sequence[str] | None = None,
    ) -> tuple[int, list[dict[str, Any]]]:
        selected = list(fields or DEFAULT_DISPATCH_FIELDS)
        conditions = self._conditions(filters)
        total = await self._session.scalar(
            select(func.count()).select_from(DispatchReportModel).where(*conditions)
        )
        columns = [getattr(DispatchReportModel, field) for field in selected]
        result = await self._session.execute(
            select(*columns)
            .where(*conditions)
            .order_by(DispatchReportModel.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        rows = [dict(zip(selected, row)) for row in result.all()]
        return int(total or 0), rows

    async def create_many(self, rows: Sequence[NormalizedDispatchRow], submitted_by_ops_id: str) -> int:
        if not rows:
            return 0
        models = [
            DispatchReportModel(
                cluster_name=row.cluster_name,
                station_name=row.station_name,
                region=row.region,
                count_of_to=row.count_of_to,
                total_oid_loaded=row.total_oid_loaded,
                dock_number=row.dock_number,
                dock_confirmed=row.dock_confirmed,
                status=row.status,
                lh_trip_number=row.lh_trip,
                actual_docked_time=row.docked_time,
                actual_depart_time=row.depart_time,
                processor_name=row.processor,
                plate_number=row.plate,
                fleet_size=row.fleet_size,
                assigned_ops_id=row.assigned_ops_id,
                submitted_by_ops_id=submitted_by_ops_id,
            )
            for row in rows
        ]
        self._session.add_all(models)
        await self._session.commit()
        return len(models)

    async def confirm(self, dispatch_ids: Sequence[str], confirmed_by_ops_id: str) -> int:
        if not dispatch_ids:
            return 0
        now = utcnow()
        result = await self._session.execute(
            update(DispatchReportModel)
            .where(DispatchReportModel.dispatch_id.in_(list(dispatch_ids)))
            .values(
                status="Confirmed",
                confirmed_by_ops_id=confirmed_by_ops_id,
                confirmed_at=now,
                status_updated_at=now,
            )
        )
        await self._session.commit()
        return result.rowcount or 0
