from datetime import datetime
import enum

from sqlalchemy import JSON, Boolean, DateTime, Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from modulyn.core.database import Base


class SubscriptionPlan(str, enum.Enum):
    starter = "starter"
    professional = "professional"
    enterprise = "enterprise"


class SubscriptionStatus(str, enum.Enum):
    trialing = "trialing"
    active = "active"
    past_due = "past_due"
    canceled = "canceled"


class Tenant(Base):
    __tablename__ = "tenants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(160), nullable=False, index=True)
    slug: Mapped[str] = mapped_column(String(160), unique=True, nullable=False)
    logo_url: Mapped[str | None] = mapped_column(String(500))
    theme_color: Mapped[str | None] = mapped_column(String(20))
    feature_flags: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)

    subscription_plan: Mapped[SubscriptionPlan] = mapped_column(
        Enum(SubscriptionPlan), default=SubscriptionPlan.starter, nullable=False
    )
    subscription_status: Mapped[SubscriptionStatus] = mapped_column(
        Enum(SubscriptionStatus), default=SubscriptionStatus.trialing, nullable=False
    )
    trial_start: Mapped[datetime | None] = mapped_column(DateTime)
    trial_ends: Mapped[datetime | None] = mapped_column(DateTime)
    is_paid: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
