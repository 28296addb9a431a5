from datetime import datetime
from pydantic import BaseModel, Field

from modulyn.schemas.common import UtcDatetime


class EventCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    start: UtcDatetime
    end: UtcDatetime
    description: str | None = None
    type: str = "appointment"
    location: str | None = None
    lead_id: int | None = None
    assigned_to: int | None = None


class EventUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    start: UtcDatetime | None = None
    end: UtcDatetime | None = None
    description: str | None = None
    type: str | None = None
    status: str | None = None
    location: str | None = None
    lead_id: int | None = None
    assigned_to: int | None = None


class EventResponse(BaseModel):
    id: int
    tenant_id: int
    title: str
    description: str | None
    type: str
    status: str
    location: str | None
    start: datetime
    end: datetime
    lead_id: int | None
    assigned_to: int | None
    created_by: int | None
    created_at: datetime

    class Config:
        from_attributes = True
