from datetime import datetime
from pydantic import BaseModel, Field


class PropertyCreate(BaseModel):
    name: str = Field(min_length=1)
    type: str = Field(min_length=1)
    current_price: float = Field(ge=0)
    status: str = "available"
    location: str | None = None
    area: str | None = None
    bedrooms: int | None = None
    bathrooms: int | None = None
    amenities: str | None = None
    description: str | None = None
    image_url: str | None = None


class PropertyUpdate(BaseModel):
    name: str | None = None
    type: str | None = None
    current_price: float | None = Field(default=None, ge=0)
    status: str | None = None
    location: str | None = None
    area: str | None = None
    bedrooms: int | None = None
    bathrooms: int | None = None
    amenities: str | None = None
    description: str | None = None
    image_url: str | None = None


class PropertyResponse(BaseModel):
    id: int
    tenant_id: int
    name: str
    type: str
    status: str
    location: str | None
    area: str | None
    current_price: float
    bedrooms: int | None
    bathrooms: int | None
    amenities: str | None
    description: str | None
    image_url: str | None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
