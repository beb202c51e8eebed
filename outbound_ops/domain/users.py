from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

UserRole = Literal["FTE", "Backroom", "Data Team", "Admin", "Processor"]


class User(BaseModel):
    """Provisioned operator as exposed to the dashboard."""

    model_config = ConfigDict(from_attributes=True)

    ops_id: str = Field(..., description="Operator identifier used across dispatch records")
    name: str = Field(..., max_length=160)
    role: str = Field(..., description="One of FTE, Backroom, Data Team, Admin or Processor")
    email: Optional[str] = Field(default=None, description="Google/SeaTalk login email")
    department: Optional[str] = None


class UserResponse(BaseModel):
    """Envelope returned by login endpoints and ``/auth/me``."""

    user: User


class ProcessorLookup(BaseModel):
    name: str
    ops_id: str
