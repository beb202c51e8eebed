from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Protocol, Type

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import Base
from ..domain.kpi import KpiIntraday, KpiMdt, KpiProductivity, KpiWorkstation
from ..models.kpi import KpiIntradayModel, KpiMdtModel, KpiProductivityModel, KpiWorkstationModel


class KpiRepository(Protocol):
    async def list_mdt(self, *, start: datetime | None, end: datetime | None, limit: int, offset: int) -> tuple[int, list[KpiMdt]]: ...

    async def list_workstation(self, *, start: datetime | None, end: datetime | None, limit: int, offset: int) -> tuple[int, list[KpiWorkstation]]: ...

    async def list_productivity(self, *, start: datetime | None, end: datetime | None, limit: int, offset: int) -> tuple[int, list[KpiProductivity]]: ...

    async def list_intraday(self, *, day: date | None, limit: int, offset: int) -> tuple[int, list[KpiIntraday]]: ...


def _number(value: Decimal | None) -> float | None:
    return None if value is None else float(value)


class SqlAlchemyKpiRepository:
    """Read-only pages over the KPI tables, newest first."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _page(
        self,
        model: Type[Base],
        columns: list[Any],
        conditions: list[Any],
        order_by: Any,
        limit: int,
        offset: int,
    ) -> tuple[int, list[Any]]:
        total = await self._session.scalar(select(func.count()).select_from(model).where(*conditions))
        result = await self._session.execute(
            select(*columns).where(*conditions).order_by(order_by.desc()).limit(limit).offset(offset)
        )
        return int(total or 0), list(result.all())

    @staticmethod
    def _date_range(column: Any, start: datetime | None, end: datetime | None) -> list[Any]:
        conditions = []
        if start is not None:
            conditions.append(column >= start.date())
        if end is not None:
            conditions.append(column <= end.date())
        return conditions

    async def list_mdt(self, *, start, end, limit, offset):
        table = KpiMdtModel
        total, rows = await self._page(
            table,
            [table.date, table.mdt_score, table.target],
            self._date_range(table.date, start, end),
            table.date,
            limit,
            offset,
        )
        return total, [
            KpiMdt(date=row.date, mdt_score=_number(row.mdt_score), target=_number(row.target))
            for row in rows
        ]

    async def list_workstation(self, *, start, end, limit, offset):
        table = KpiWorkstationModel
        total, rows = await self._page(
            table,
            [table.date, table.workstation, table.utilization, table.efficiency],
            self._date_range(table.date, start, end),
            table.date,
            limit,
            offset,
        )
        return total, [
            KpiWorkstation(
                date=row.date,
                workstation=row.workstation,
                utilization=_number(row.utilization),
                efficiency=_number(row.efficiency),
            )
            for row in rows
        ]

    async def list_productivity(self, *, start, end, limit, offset):
        table = KpiProductivityModel
        total, rows = await self._page(
            table,
            [table.date, table.daily_average, table.weekly_average, table.monthly_total, table.trend],
            self._date_range(table.date, start, end),
            table.date,
            limit,
            offset,
        )
        return total, [
            KpiProductivity(
                date=row.date,
                daily_average=_number(row.daily_average),
                weekly_average=_number(row.weekly_average),
                monthly_total=_number(row.monthly_total),
                trend=row.trend,
            )
            for row in rows
        ]

    async def list_intraday(self, *, day, limit, offset):
        table = KpiIntradayModel
        conditions = [table.date == day] if day is not None else []
        total, rows = await self._page(
            table,
            [table.date, table.hour, table.dispatches, table.volume, table.timestamp],
            conditions,
            table.timestamp,
            limit,
            offset,
        )
        return total, [
            KpiIntraday(
                date=row.date,
                hour=row.hour,
                dispatches=_number(row.dispatches),
                volume=_number(row.volume),
                timestamp=row.timestamp,
            )
            for row in rows
        ]
