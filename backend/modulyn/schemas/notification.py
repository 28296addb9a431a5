from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from modulyn.schemas.common import UtcDatetime


class NotificationResponse(BaseModel):
    id: int
    user_id: int
    type: str
    title: str
    message: str
    related_to_type: str | None
    related_to_id: int | None
    metadata: dict[str, Any] = Field(validation_alias="meta")
    is_read: bool
    is_dismissed: bool
    remind_later: datetime | None
    created_at: datetime

    class Config:
        from_attributes = True


class DismissRequest(BaseModel):
    remind_later: UtcDatetime | None = None
