"""Read-only KPI tables populated by the reporting pipeline."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal

from sqlalchemy import Date, DateTime, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from ..db import Base


class KpiMdtModel(Base):
    __tablename__ = "kpi_mdt"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    date: Mapped[dt.date | None] = mapped_column(Date, nullable=True, index=True)
    mdt_score: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    target: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)


class KpiWorkstationModel(Base):
    __tablename__ = "kpi_workstation"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    date: Mapped[dt.date | None] = mapped_column(Date, nullable=True, index=True)
    workstation: Mapped[str | None] = mapped_column(String(64), nullable=True)
    utilization: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    efficiency: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)


class KpiProductivityModel(Base):
    __tablename__ = "kpi_productivity"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    date: Mapped[dt.date | None] = mapped_column(Date, nullable=True, index=True)
    daily_average: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    weekly_average: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    monthly_total: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    trend: Mapped[str | None] = mapped_column(String(16), nullable=True)


class KpiIntradayModel(Base):
    __tablename__ = "kpi_intraday"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    date: Mapped[dt.date | None] = mapped_column(Date, nullable=True, index=True)
    hour: Mapped[int | None] = mapped_column(Integer, nullable=True)
    dispatches: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    volume: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    timestamp: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=False), nullable=True, index=True)
