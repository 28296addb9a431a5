import re
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import func
from sqlalchemy.orm import Session

from modulyn.core.config import get_settings
from modulyn.models.tenant import SubscriptionPlan, SubscriptionStatus, Tenant
from modulyn.models.user import User


@dataclass(frozen=True)
class PlanLimit:
    name: str
    max_users: int | None
    price_usd: int


PLAN_LIMITS: dict[SubscriptionPlan, PlanLimit] = {
    SubscriptionPlan.starter: PlanLimit("Starter", 5, 29),
    SubscriptionPlan.professional: PlanLimit("Professional", 20, 79),
    SubscriptionPlan.enterprise: PlanLimit("Enterprise", None, 199),
}

SEARCHABLE_STATUSES = (SubscriptionStatus.active, SubscriptionStatus.trialing)

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    return _SLUG_RE.sub("-", name.lower()).strip("-") or "company"


def unique_slug(db: Session, name: str) -> str:
    base = slugify(name)
    slug = base
    n = 2
    while db.query(Tenant.id).filter(Tenant.slug == slug).first():
        slug = f"{base}-{n}"
        n += 1
    return slug


def new_tenant(db: Session, name: str, plan: SubscriptionPlan = SubscriptionPlan.starter) -> Tenant:
    now = datetime.utcnow()
    tenant = Tenant(
        name=name.strip(),
        slug=unique_slug(db, name),
        subscription_plan=plan,
        subscription_status=SubscriptionStatus.trialing,
        trial_start=now,
        trial_ends=now + timedelta(days=get_settings().TRIAL_DAYS),
        feature_flags={},
    )
    db.add(tenant)
    db.flush()
    return tenant


def trial_expired(tenant: Tenant, now: datetime | None = None) -> bool:
    now = now or datetime.utcnow()
    return bool(tenant.trial_ends and tenant.trial_ends < now and not tenant.is_paid)


def member_count(db: Session, tenant_id: int) -> int:
    return db.query(func.count(User.id)).filter(User.tenant_id == tenant_id).scalar() or 0


def user_limits(db: Session, tenant: Tenant) -> dict:
    limit = PLAN_LIMITS.get(tenant.subscription_plan, PLAN_LIMITS[SubscriptionPlan.starter])
    current = member_count(db, tenant.id)
    remaining = None if limit.max_users is None else max(0, limit.max_users - current)
    return {
        "tenant_id": tenant.id,
        "plan": tenant.subscription_plan.value,
        "plan_name": limit.name,
        "current_users": current,
        "max_users": limit.max_users,
        "remaining_slots": remaining,
        "can_add_users": remaining is None or remaining > 0,
    }
