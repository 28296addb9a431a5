from datetime import datetime

from conftest import auth_headers
from modulyn.models import Event, Notification
from modulyn.services.notifications import process_due_reminders

VIEWING = {
    "title": "Viewing at Creek Vista",
    "start": "2030-05-10T14:00:00+04:00",
    "end": "2030-05-10T15:00:00+04:00",
    "location": "Dubai Creek Harbour",
}


def test_create_event_stores_utc_and_notifies(client, db, agent, master_headers):
    response = client.post("/api/events", json=dict(VIEWING, assigned_to=agent.id), headers=master_headers)

    assert response.status_code == 201
    event = response.json()["data"]["event"]
    assert event["start"] == "2030-05-10T10:00:00"
    assert event["type"] == "appointment"
    assert event["status"] == "scheduled"

    notification = db.query(Notification).one()
    assert notification.user_id == agent.id
    assert notification.type == "event_created"
    assert notification.related_to_type == "event"
    assert notification.meta == {"start": "2030-05-10T10:00:00"}


def test_event_cannot_end_before_it_starts(client, db, tenant, master, master_headers):
    body = dict(VIEWING, end="2030-05-10T13:00:00+04:00")
    assert client.post("/api/events", json=body, headers=master_headers).status_code == 400

    event = Event(tenant_id=tenant.id, title="Call", start=datetime(2030, 1, 1, 9), end=datetime(2030, 1, 1, 10), created_by=master.id)
    db.add(event)
    db.commit()
    response = client.patch(f"/api/events/{event.id}", json={"start": "2030-01-01T11:00:00"}, headers=master_headers)
    assert response.status_code == 400


def test_list_filters_by_window_and_agent(client, db, tenant, agent, master, agent_headers, master_headers):
    may = Event(tenant_id=tenant.id, title="May", start=datetime(2030, 5, 2), end=datetime(2030, 5, 2, 1), assigned_to=agent.id)
    june = Event(tenant_id=tenant.id, title="June", start=datetime(2030, 6, 2), end=datetime(2030, 6, 2, 1), assigned_to=agent.id)
    other = Event(tenant_id=tenant.id, title="Other", start=datetime(2030, 5, 3), end=datetime(2030, 5, 3, 1), assigned_to=master.id)
    db.add_all([may, june, other])
    db.commit()

    window = {"start": "2030-05-01T00:00:00", "end": "2030-05-31T23:59:59"}
    in_may = client.get("/api/events", params=window, headers=master_headers).json()["data"]["events"]
    assert [e["title"] for e in in_may] == ["May", "Other"]

    mine = client.get("/api/events", headers=agent_headers).json()["data"]["events"]
    assert [e["title"] for e in mine] == ["May", "June"]
    assert client.get(f"/api/events/{other.id}", headers=agent_headers).status_code == 403


def test_dismissed_event_comes_back_as_event_reminder(client, db, agent, master_headers):
    client.post("/api/events", json=dict(VIEWING, assigned_to=agent.id), headers=master_headers)
    notification = db.query(Notification).one()

    client.post(
        f"/api/notifications/{notification.id}/dismiss",
        json={"remind_later": "2030-05-10T09:30:00Z"},
        headers=auth_headers(agent),
    )
    assert process_due_reminders(db, now=datetime(2030, 5, 10, 9, 45)) == 1

    db.expire_all()
    reminder = db.query(Notification).one()
    assert reminder.type == "event_reminder"
    assert reminder.message.startswith("Event Reminder: Viewing at Creek Vista")


def test_delete_event(client, db, tenant, agent, agent_headers):
    own = Event(tenant_id=tenant.id, title="Mine", start=datetime(2030, 1, 1), end=datetime(2030, 1, 1, 1), created_by=agent.id)
    db.add(own)
    db.commit()

    assert client.delete(f"/api/events/{own.id}", headers=agent_headers).status_code == 204
    assert client.get(f"/api/events/{own.id}", headers=agent_headers).status_code == 404
