from __future__ import annotations

from typing import Protocol

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.hubs import ClusterLookup, Hub, HubLookup, HubPayload
from ..models.outbound_map import OutboundMapModel


class HubsRepository(Protocol):
    async def list(self, *, active: bool | None, limit: int, offset: int) -> tuple[int, list[Hub]]: ...

    async def create(self, payload: HubPayload) -> Hub: ...

    async def update(self, hub_id: str, payload: HubPayload) -> Hub | None: ...

    async def deactivate(self, hub_id: str) -> Hub | None: ...

    async def list_clusters(self, *, region: str | None, query: str | None) -> list[ClusterLookup]: ...

    async def list_hub_lookups(self, *, cluster: str | None) -> list[HubLookup]: ...


class SqlAlchemyHubsRepository:
    """Outbound map rows backing the hubs admin screen and form lookups."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list(self, *, active: bool | None, limit: int, offset: int) -> tuple[int, list[Hub]]:
        conditions = []
        if active is not None:
            conditions.append(OutboundMapModel.active.is_(active))
        total = await self._session.scalar(
            select(func.count()).select_from(OutboundMapModel).where(*conditions)
        )
        result = await self._session.execute(
            select(OutboundMapModel)
            .where(*conditions)
            .order_by(OutboundMapModel.hub_name.asc())
            .offset(offset)
            .limit(limit)
        )
        return int(total or 0), [Hub.model_validate(model) for model in result.scalars().all()]

    async def create(self, payload: HubPayload) -> Hub:
        values = payload.model_dump(exclude_none=True)
        model = OutboundMapModel(**values)
        self._session.add(model)
        await self._session.commit()
        await self._session.refresh(model)
        return Hub.model_validate(model)

    async def update(self, hub_id: str, payload: HubPayload) -> Hub | None:
        model = await self._session.get(OutboundMapModel, hub_id)
        if model is None:
            return None
        for field, value in payload.model_dump(exclude_unset=True).items():
            setattr(model, field, value)
        await self._session.commit()
        return Hub.model_validate(model)

    async def deactivate(self, hub_id: str) -> Hub | None:
        model = await self._session.get(OutboundMapModel, hub_id)
        if model is None:
            return None
        model.active = False
        await self._session.commit()
        return Hub.model_validate(model)

    async def list_clusters(self, *, region: str | None, query: str | None) -> list[ClusterLookup]:
        stmt = select(OutboundMapModel.cluster_name, OutboundMapModel.region).where(
            OutboundMapModel.active.is_(True)
        )
        if region:
            stmt = stmt.where(OutboundMapModel.region == region)
        if query:
            stmt = stmt.where(OutboundMapModel.cluster_name.ilike(f"%{query}%"))
        result = await self._session.execute(
            stmt.distinct().order_by(OutboundMapModel.cluster_name.asc())
        )
        return [ClusterLookup(cluster_name=name, region=reg) for name, reg in result.all()]

    async def list_hub_lookups(self, *, cluster: str | None) -> list[HubLookup]:
        stmt = select(OutboundMapModel.hub_name, OutboundMapModel.dock_number).where(
            OutboundMapModel.active.is_(True)
        )
        if cluster:
            stmt = stmt.where(OutboundMapModel.cluster_name == cluster)
        result = await self._session.execute(stmt.order_by(OutboundMapModel.hub_name.asc()))
        return [HubLookup(hub_name=name, dock_number=dock) for name, dock in result.all()]
