from datetime import datetime
from pydantic import BaseModel, EmailStr, Field

from modulyn.models.lead import LeadStatus


class LeadBase(BaseModel):
    phone: str | None = None
    source: str | None = None
    notes: str | None = None
    assigned_to: int | None = None

    budget: float | None = None
    preferred_property_type: str | None = None
    preferred_location: str | None = None
    preferred_bedrooms: int | None = None
    preferred_bathrooms: int | None = None
    preferred_area: str | None = None
    preferred_amenities: str | None = None


class LeadCreate(LeadBase):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: EmailStr
    status: LeadStatus = LeadStatus.new


class LeadUpdate(LeadBase):
    first_name: str | None = None
    last_name: str | None = None
    email: EmailStr | None = None
    status: LeadStatus | None = None


class LeadResponse(LeadBase):
    id: int
    tenant_id: int
    first_name: str
    last_name: str
    email: EmailStr
    status: LeadStatus
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
