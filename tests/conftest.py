"""
pytest configuration and fixtures for the CRM API tests.

Every test runs against a fresh in-memory SQLite database.
"""
import os
from datetime import datetime, timedelta

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["SMTP_HOST"] = ""

import pytest
from fastapi.testclient import TestClient

from modulyn.core.database import Base, SessionLocal, engine
from modulyn.core.security import create_access_token, get_password_hash
from modulyn.main import app
from modulyn.models import Lead, Property, SubscriptionStatus, Tenant, User, UserRole

PASSWORD = "Secret123!"
# Hashing is slow; one hash serves every fixture user.
PASSWORD_HASH = get_password_hash(PASSWORD)


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


def make_tenant(db, name="Acme Realty", **fields) -> Tenant:
    now = datetime.utcnow()
    tenant = Tenant(
        name=name,
        slug=name.lower().replace(" ", "-"),
        subscription_status=fields.pop("subscription_status", SubscriptionStatus.trialing),
        trial_start=now,
        trial_ends=fields.pop("trial_ends", now + timedelta(days=14)),
        feature_flags={},
        **fields,
    )
    db.add(tenant)
    db.commit()
    db.refresh(tenant)
    return tenant


def make_user(db, tenant, email, role=UserRole.agent, **fields) -> User:
    user = User(
        tenant_id=tenant.id,
        email=email,
        full_name=fields.pop("full_name", email.split("@")[0].title()),
        hashed_password=PASSWORD_HASH,
        role=role,
        **fields,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_lead(db, tenant, **fields) -> Lead:
    lead = Lead(
        tenant_id=tenant.id,
        first_name=fields.pop("first_name", "Jane"),
        last_name=fields.pop("last_name", "Buyer"),
        email=fields.pop("email", "jane.buyer@example.com"),
        **fields,
    )
    db.add(lead)
    db.commit()
    db.refresh(lead)
    return lead


def make_property(db, tenant, **fields) -> Property:
    prop = Property(
        tenant_id=tenant.id,
        name=fields.pop("name", "Marina Heights 1204"),
        type=fields.pop("type", "Apartment"),
        current_price=fields.pop("current_price", 480000),
        **fields,
    )
    db.add(prop)
    db.commit()
    db.refresh(prop)
    return prop


def auth_headers(user: User) -> dict:
    token = create_access_token(str(user.id), user.tenant_id, user.session_version)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def tenant(db):
    return make_tenant(db)


@pytest.fixture
def master(db, tenant):
    return make_user(db, tenant, "owner@acmerealty.com", role=UserRole.master)


@pytest.fixture
def agent(db, tenant):
    return make_user(db, tenant, "agent@acmerealty.com", role=UserRole.agent)


@pytest.fixture
def master_headers(master):
    return auth_headers(master)


@pytest.fixture
def agent_headers(agent):
    return auth_headers(agent)
