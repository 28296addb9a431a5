from datetime import datetime
from pydantic import BaseModel, EmailStr, Field

from modulyn.models.user import UserRole

MONTH_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


class DesignationCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    description: str | None = None


class DesignationUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=120)
    description: str | None = None


class DesignationResponse(BaseModel):
    id: int
    name: str
    description: str | None
    created_at: datetime

    class Config:
        from_attributes = True


class TeamCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    description: str | None = None


class TeamUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=120)
    description: str | None = None


class TeamResponse(BaseModel):
    id: int
    name: str
    description: str | None
    created_at: datetime

    class Config:
        from_attributes = True


class TeamHierarchyCreate(BaseModel):
    team_id: int
    parent_team_id: int | None = None


class TeamHierarchyUpdate(BaseModel):
    team_id: int | None = None
    parent_team_id: int | None = None


class TeamHierarchyResponse(BaseModel):
    id: int
    team_id: int
    parent_team_id: int | None
    created_at: datetime

    class Config:
        from_attributes = True


class TeamRevenueCreate(BaseModel):
    team_id: int
    month: str = Field(pattern=MONTH_PATTERN)
    revenue_target: float | None = None
    revenue_actual: float | None = None


class TeamRevenueUpdate(BaseModel):
    team_id: int | None = None
    month: str | None = Field(default=None, pattern=MONTH_PATTERN)
    revenue_target: float | None = None
    revenue_actual: float | None = None


class TeamRevenueResponse(BaseModel):
    id: int
    team_id: int
    month: str
    revenue_target: float | None
    revenue_actual: float | None
    created_at: datetime

    class Config:
        from_attributes = True


class TeamUserCreate(BaseModel):
    email: EmailStr
    password: str
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    role: UserRole = UserRole.agent
    designation_id: int | None = None
    reporting_to: int | None = None


class TeamUserUpdate(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    role: UserRole | None = None
    designation_id: int | None = None
    reporting_to: int | None = None
    is_active: bool | None = None


class TeamUserResponse(BaseModel):
    id: int
    email: EmailStr
    full_name: str
    first_name: str | None
    last_name: str | None
    phone: str | None
    role: UserRole
    is_admin: bool
    is_active: bool
    designation_id: int | None
    reporting_to: int | None
    created_at: datetime

    class Config:
        from_attributes = True
