from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .auth import StrictModel


class Hub(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    cluster_name: Optional[str] = None
    hub_name: Optional[str] = None
    region: Optional[str] = None
    dock_number: Optional[str] = None
    active: bool = True


class HubPayload(StrictModel):
    """Create/update body; at least one field must be present."""

    cluster_name: Optional[str] = Field(default=None, min_length=1)
    hub_name: Optional[str] = Field(default=None, min_length=1)
    region: Optional[str] = Field(default=None, min_length=1)
    dock_number: Optional[str] = Field(default=None, min_length=1)
    active: Optional[bool] = None

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    @model_validator(mode="after")
    def _not_empty(self) -> "HubPayload":
        if not self.model_fields_set:
            raise ValueError("hub data is required")
        return self


class HubListResponse(BaseModel):
    hubs: list[Hub]
    total: int


class ClusterLookup(BaseModel):
    cluster_name: Optional[str]
    region: Optional[str]


class HubLookup(BaseModel):
    hub_name: Optional[str]
    dock_number: Optional[str]
