from datetime import datetime
from typing import Any

from pydantic import BaseModel, EmailStr, Field

from modulyn.models.join_request import JoinRequestStatus
from modulyn.models.tenant import SubscriptionPlan, SubscriptionStatus


class TenantSignup(BaseModel):
    company_name: str = Field(min_length=2, max_length=160)
    full_name: str = Field(min_length=1, max_length=120)
    email: EmailStr
    password: str
    plan: SubscriptionPlan = SubscriptionPlan.starter


class TenantSummary(BaseModel):
    id: int
    name: str
    slug: str
    logo_url: str | None
    member_count: int = 0


class TenantResponse(BaseModel):
    id: int
    name: str
    slug: str
    logo_url: str | None
    theme_color: str | None
    feature_flags: dict[str, Any]
    subscription_plan: SubscriptionPlan
    subscription_status: SubscriptionStatus
    trial_start: datetime | None
    trial_ends: datetime | None
    is_paid: bool
    created_at: datetime
    member_count: int = 0

    class Config:
        from_attributes = True


class JoinRequestResponse(BaseModel):
    id: int
    tenant_id: int
    user_id: int
    status: JoinRequestStatus
    reviewed_by: int | None
    reviewed_at: datetime | None
    created_at: datetime

    class Config:
        from_attributes = True
