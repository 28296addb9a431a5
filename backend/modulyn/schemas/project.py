from datetime import datetime
from pydantic import BaseModel, Field

from modulyn.schemas.common import UtcDatetime


class ProjectCreate(BaseModel):
    name: str = Field(min_length=1, max_length=160)
    description: str = Field(min_length=1)
    status: str = "planning"
    location: str | None = None
    budget: float | None = Field(default=None, ge=0)
    start_date: UtcDatetime | None = None
    end_date: UtcDatetime | None = None


class ProjectUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=160)
    description: str | None = None
    status: str | None = None
    location: str | None = None
    budget: float | None = Field(default=None, ge=0)
    start_date: UtcDatetime | None = None
    end_date: UtcDatetime | None = None


class TeamMemberCreate(BaseModel):
    user_id: int
    role: str = Field(min_length=1, max_length=80)


class TeamMemberResponse(BaseModel):
    user_id: int
    role: str
    created_at: datetime

    class Config:
        from_attributes = True


class ProjectResponse(BaseModel):
    id: int
    tenant_id: int
    name: str
    description: str
    status: str
    location: str | None
    budget: float | None
    start_date: datetime | None
    end_date: datetime | None
    created_at: datetime
    team_members: list[TeamMemberResponse] = []

    class Config:
        from_attributes = True
