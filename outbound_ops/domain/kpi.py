"""KPI rows served to the dashboard charts."""

from __future__ import annotations

import datetime as dt
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class KpiMdt(BaseModel):
    date: Optional[dt.date] = None
    mdt_score: Optional[float] = None
    target: Optional[float] = None


class KpiWorkstation(BaseModel):
    date: Optional[dt.date] = None
    workstation: Optional[str] = None
    utilization: Optional[float] = None
    efficiency: Optional[float] = None


class KpiProductivity(BaseModel):
    date: Optional[dt.date] = None
    daily_average: Optional[float] = None
    weekly_average: Optional[float] = None
    monthly_total: Optional[float] = None
    trend: Optional[str] = None


class KpiIntraday(BaseModel):
    date: Optional[dt.date] = None
    hour: Optional[int] = None
    dispatches: Optional[float] = None
    volume: Optional[float] = None
    timestamp: Optional[dt.datetime] = None


class KpiPage(BaseModel, Generic[T]):
    rows: list[T]
    total: int
    limit: int
    offset: int
