from datetime import datetime
from pydantic import BaseModel, EmailStr, Field

from modulyn.schemas.common import UtcDatetime


class CallBase(BaseModel):
    duration: int | None = Field(default=None, ge=0)
    notes: str | None = None
    lead_id: int | None = None
    project_id: int | None = None
    scheduled_at: UtcDatetime | None = None
    outcome: str | None = None
    follow_up_date: UtcDatetime | None = None


class CallCreate(CallBase):
    type: str = Field(min_length=1, max_length=40)
    status: str = "scheduled"
    user_id: int | None = None


class CallUpdate(CallBase):
    type: str | None = Field(default=None, min_length=1, max_length=40)
    status: str | None = None
    user_id: int | None = None


class CallNoteCreate(BaseModel):
    content: str = Field(min_length=1)


class CallNoteResponse(BaseModel):
    id: int
    call_id: int
    user_id: int | None
    content: str
    created_at: datetime

    class Config:
        from_attributes = True


class CallResponse(CallBase):
    id: int
    tenant_id: int
    type: str
    status: str
    user_id: int | None
    scheduled_at: datetime | None
    follow_up_date: datetime | None
    created_at: datetime

    class Config:
        from_attributes = True


class CallDetail(CallResponse):
    call_notes: list[CallNoteResponse] = []


class ColdCallBase(BaseModel):
    email: EmailStr | None = None
    agent_id: int | None = None
    source: str | None = None
    priority: str | None = None
    comments: str | None = None
    date: str | None = None


class ColdCallCreate(ColdCallBase):
    name: str = Field(min_length=1, max_length=160)
    phone: str = Field(min_length=1, max_length=30)
    status: str = "pending"


class ColdCallUpdate(ColdCallBase):
    name: str | None = Field(default=None, min_length=1, max_length=160)
    phone: str | None = Field(default=None, min_length=1, max_length=30)
    status: str | None = None


class ColdCallResponse(ColdCallBase):
    id: int
    tenant_id: int
    name: str
    phone: str
    email: str | None
    status: str
    is_converted: bool
    converted_by: int | None
    converted_at: datetime | None
    created_at: datetime

    class Config:
        from_attributes = True


class ColdCallAssign(BaseModel):
    ids: list[int] = Field(min_length=1)
    agent_id: int


class ColdCallIds(BaseModel):
    ids: list[int] = Field(min_length=1)
