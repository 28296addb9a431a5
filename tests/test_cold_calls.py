import csv
from io import StringIO

from conftest import make_tenant, make_user
from modulyn.models import ColdCall, Lead, LeadStatus, Notification
from modulyn.services.cold_calls import EXPORT_COLUMNS, parse_cold_calls_csv


def make_cold_call(db, tenant, **fields) -> ColdCall:
    row = ColdCall(
        tenant_id=tenant.id,
        name=fields.pop("name", "Omar Haddad"),
        phone=fields.pop("phone", "+971500000001"),
        **fields,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def test_create_requires_admin_and_fields(client, agent, master_headers, agent_headers):
    body = {"name": "Omar Haddad", "phone": "+971500000001", "agent_id": agent.id}

    assert client.post("/api/cold-calls", json=body, headers=agent_headers).status_code == 403
    assert client.post("/api/cold-calls", json={"name": "No phone"}, headers=master_headers).status_code == 422

    created = client.post("/api/cold-calls", json=body, headers=master_headers)
    assert created.status_code == 201
    assert created.json()["data"]["coldCall"]["status"] == "pending"
    assert created.json()["data"]["coldCall"]["is_converted"] is False


def test_agents_only_see_their_cold_calls(client, db, tenant, agent, master_headers, agent_headers):
    mine = make_cold_call(db, tenant, agent_id=agent.id)
    other = make_cold_call(db, tenant, name="Unassigned")

    listed = client.get("/api/cold-calls", headers=agent_headers).json()["data"]["coldCalls"]
    assert [row["id"] for row in listed] == [mine.id]
    assert client.get(f"/api/cold-calls/{other.id}", headers=agent_headers).status_code == 403
    assert len(client.get("/api/cold-calls", headers=master_headers).json()["data"]["coldCalls"]) == 2


def test_agent_updates_own_cold_call_but_cannot_reassign(client, db, tenant, agent, master, agent_headers):
    row = make_cold_call(db, tenant, agent_id=agent.id)

    updated = client.patch(f"/api/cold-calls/{row.id}", json={"status": "callback"}, headers=agent_headers)
    assert updated.json()["data"]["coldCall"]["status"] == "callback"

    reassign = client.patch(f"/api/cold-calls/{row.id}", json={"agent_id": master.id}, headers=agent_headers)
    assert reassign.status_code == 403


def test_bulk_assign_notifies_agent(client, db, tenant, agent, master_headers):
    first = make_cold_call(db, tenant)
    second = make_cold_call(db, tenant, name="Sara Nasser", phone="+971500000002")
    foreign = make_cold_call(db, make_tenant(db, "Other Realty"))

    response = client.post(
        "/api/cold-calls/assign",
        json={"ids": [first.id, second.id, foreign.id], "agent_id": agent.id},
        headers=master_headers,
    )

    assert response.json()["data"]["updated"] == 2
    db.expire_all()
    assert db.query(ColdCall).filter(ColdCall.id == foreign.id).one().agent_id is None
    notes = db.query(Notification).filter(Notification.user_id == agent.id).order_by(Notification.id).all()
    assert [(n.type, n.related_to_id) for n in notes] == [
        ("cold_call_assigned", first.id),
        ("cold_call_assigned", second.id),
    ]


def test_bulk_delete_is_tenant_scoped(client, db, tenant, master_headers):
    mine = make_cold_call(db, tenant)
    foreign = make_cold_call(db, make_tenant(db, "Other Realty"))

    response = client.post("/api/cold-calls/bulk-delete", json={"ids": [mine.id, foreign.id]}, headers=master_headers)

    assert response.json()["data"]["deleted"] == 1
    db.expire_all()
    assert [row.id for row in db.query(ColdCall).all()] == [foreign.id]


def test_convert_creates_lead_and_marks_call(client, db, tenant, agent, agent_headers):
    row = make_cold_call(
        db,
        tenant,
        name="Omar Al Haddad",
        email="omar@example.com",
        source="Expo",
        comments="Wants a 2BR",
        agent_id=agent.id,
    )

    response = client.post(f"/api/cold-calls/{row.id}/convert", headers=agent_headers)

    assert response.status_code == 200
    lead = response.json()["data"]["lead"]
    assert lead["first_name"] == "Omar"
    assert lead["last_name"] == "Al Haddad"
    assert lead["email"] == "omar@example.com"
    assert lead["status"] == "new"
    assert lead["assigned_to"] == agent.id
    assert lead["notes"] == "Wants a 2BR"

    db.expire_all()
    converted = db.query(ColdCall).filter(ColdCall.id == row.id).one()
    assert converted.is_converted is True
    assert converted.status == "converted"
    assert converted.converted_by == agent.id
    assert converted.converted_at is not None
    assert db.query(Notification).filter(Notification.type == "lead_created").count() == 1

    again = client.post(f"/api/cold-calls/{row.id}/convert", headers=agent_headers)
    assert again.status_code == 400
    assert db.query(Lead).count() == 1


def test_convert_without_email_is_rejected(client, db, tenant, master_headers):
    row = make_cold_call(db, tenant)

    response = client.post(f"/api/cold-calls/{row.id}/convert", headers=master_headers)

    assert response.status_code == 400
    assert db.query(Lead).count() == 0


def test_convert_unassigned_call_picks_an_agent(client, db, tenant, agent, master_headers):
    row = make_cold_call(db, tenant, name="Cher", email="cher@example.com")

    lead = client.post(f"/api/cold-calls/{row.id}/convert", headers=master_headers).json()["data"]["lead"]

    assert lead["first_name"] == "Cher"
    assert lead["last_name"] == ""
    assert lead["assigned_to"] == agent.id
    assert db.query(Lead).one().status == LeadStatus.new


def test_export_csv(client, db, tenant, agent, master_headers, agent_headers):
    make_cold_call(db, tenant, email="omar@example.com", agent_id=agent.id, comments="Call after 5, not before")
    make_cold_call(db, make_tenant(db, "Other Realty"), name="Hidden")

    assert client.get("/api/cold-calls/export/csv", headers=agent_headers).status_code == 403
    response = client.get("/api/cold-calls/export/csv", headers=master_headers)

    assert response.headers["content-type"].startswith("text/csv")
    assert "cold_calls_export.csv" in response.headers["content-disposition"]
    rows = list(csv.reader(StringIO(response.text)))
    assert rows[0] == EXPORT_COLUMNS
    assert len(rows) == 2
    record = dict(zip(rows[0], rows[1]))
    assert record["name"] == "Omar Haddad"
    assert record["agent_id"] == str(agent.id)
    assert record["comments"] == "Call after 5, not before"
    assert record["is_converted"] == "False"
    assert record["converted_at"] == ""


def test_import_csv(client, db, tenant, agent, master_headers):
    sheet = (
        "name,email,phone,agent_id,source,status\n"
        f"Omar Haddad,omar@example.com,+971500000001,{agent.id},Expo,\n"
        "No Phone,nophone@example.com,,,,\n"
        "Bad Agent,,+971500000003,424242,,\n"
        "Bad Email,not-an-email,+971500000004,,,\n"
        "Sara Nasser,,+971500000002,,Website,callback\n"
    )

    response = client.post(
        "/api/cold-calls/import/csv",
        files={"file": ("leads.csv", sheet.encode(), "text/csv")},
        headers=master_headers,
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["imported"] == 2
    assert data["parsed"] == 2
    assert [e["line"] for e in data["errors"]] == [3, 4, 5]

    rows = db.query(ColdCall).order_by(ColdCall.id).all()
    assert [(r.name, r.status, r.agent_id) for r in rows] == [
        ("Omar Haddad", "pending", agent.id),
        ("Sara Nasser", "callback", None),
    ]
    assert all(r.tenant_id == tenant.id for r in rows)


def test_import_requires_admin_and_utf8(client, agent_headers, master_headers):
    files = {"file": ("leads.csv", b"name,phone\nA,1\n", "text/csv")}
    assert client.post("/api/cold-calls/import/csv", files=files, headers=agent_headers).status_code == 403

    latin1 = {"file": ("leads.csv", "name,phone\nJosé,1\n".encode("latin-1"), "text/csv")}
    assert client.post("/api/cold-calls/import/csv", files=latin1, headers=master_headers).status_code == 400


def test_parse_trims_headers_and_cells():
    parsed, errors = parse_cold_calls_csv("name , phone\n  Omar , 123 \n", agent_ids=set())

    assert errors == []
    assert parsed[0]["name"] == "Omar"
    assert parsed[0]["phone"] == "123"
    assert parsed[0]["status"] == "pending"


def test_deleting_agent_releases_cold_calls(client, db, tenant, master_headers):
    caller = make_user(db, tenant, "caller@acmerealty.com")
    row = make_cold_call(db, tenant, agent_id=caller.id)

    assert client.delete(f"/api/team/users/{caller.id}", headers=master_headers).status_code == 204

    db.expire_all()
    assert db.query(ColdCall).filter(ColdCall.id == row.id).one().agent_id is None
