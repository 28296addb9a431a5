from datetime import datetime, timedelta

from conftest import PASSWORD, auth_headers, make_tenant, make_user
from modulyn.core.security import create_refresh_token
from modulyn.models import AuditLog, User, UserRole


def login(client, email, password=PASSWORD):
    return client.post("/api/auth/login", data={"username": email, "password": password})


def test_login_returns_token_pair(client, master):
    response = login(client, "Owner@AcmeRealty.com")

    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["access_token"] and body["refresh_token"]

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.status_code == 200
    assert me.json()["data"]["user"]["email"] == "owner@acmerealty.com"
    assert me.json()["data"]["user"]["is_admin"] is True


def test_login_with_wrong_password(client, db, master):
    response = login(client, master.email, "Wrong123!")

    assert response.status_code == 400
    assert response.json() == {"status": "error", "message": "Incorrect email or password"}
    assert db.query(AuditLog).filter(AuditLog.action == "login_failed").count() == 1


def test_login_unknown_user(client):
    response = login(client, "nobody@acmerealty.com")
    assert response.status_code == 400


def test_repeated_failures_lock_the_account(client, db, master):
    for _ in range(5):
        assert login(client, master.email, "Wrong123!").status_code == 400

    response = login(client, master.email)
    assert response.status_code == 423

    db.expire_all()
    locked = db.query(User).filter(User.email == master.email).one()
    assert locked.locked_until > datetime.utcnow()


def test_inactive_user_cannot_login(client, db, tenant):
    make_user(db, tenant, "gone@acmerealty.com", is_active=False)
    assert login(client, "gone@acmerealty.com").status_code == 403


def test_missing_token(client):
    response = client.get("/api/auth/me")

    assert response.status_code == 401
    assert response.json()["message"] == "No authorization token"


def test_garbage_token(client):
    response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid or expired token"


def test_refresh_token_is_not_an_access_token(client, master):
    token = create_refresh_token(str(master.id), master.tenant_id, master.session_version)
    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_refresh_issues_new_pair(client, master):
    tokens = login(client, master.email).json()

    response = client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})

    assert response.status_code == 200
    assert response.json()["access_token"]


def test_revoke_invalidates_existing_tokens(client, master_headers):
    revoked = client.post("/api/auth/revoke", headers=master_headers)
    assert revoked.status_code == 200
    assert revoked.json() == {"status": "success", "data": {"session_version": 2}}

    response = client.get("/api/auth/me", headers=master_headers)
    assert response.status_code == 401
    assert response.json()["message"] == "Session revoked"


def test_expired_trial_requires_upgrade(client, db):
    tenant = make_tenant(db, "Lapsed Homes", trial_ends=datetime.utcnow() - timedelta(days=1))
    user = make_user(db, tenant, "owner@lapsedhomes.com", role=UserRole.master)

    response = client.get("/api/leads", headers=auth_headers(user))

    assert response.status_code == 402
    assert response.json()["upgradeUrl"] == "/upgrade"


def test_paid_tenant_past_trial_is_allowed(client, db):
    tenant = make_tenant(db, "Paid Homes", trial_ends=datetime.utcnow() - timedelta(days=1), is_paid=True)
    user = make_user(db, tenant, "owner@paidhomes.com", role=UserRole.master)

    assert client.get("/api/leads", headers=auth_headers(user)).status_code == 200
