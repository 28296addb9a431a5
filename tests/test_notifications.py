from datetime import datetime, timedelta, timezone

import pytest

from conftest import auth_headers
from modulyn.core.config import get_settings
from modulyn.models import Notification
from modulyn.schemas.common import to_naive_utc
from modulyn.services.notifications import create_notification, process_due_reminders
from modulyn.workers.tasks import process_reminders, send_notification_email


def notify(db, user, **fields):
    return create_notification(
        db,
        tenant_id=user.tenant_id,
        user_id=user.id,
        notification_type=fields.pop("notification_type", "lead_created"),
        title=fields.pop("title", "New Lead Assigned"),
        message=fields.pop("message", "A new lead (Jane Buyer) has been assigned to you."),
        **fields,
    )


def test_list_excludes_dismissed_and_counts_unread(client, db, agent, agent_headers):
    notify(db, agent)
    read = notify(db, agent, title="Older")
    dismissed = notify(db, agent, title="Gone")
    read.is_read = True
    dismissed.is_dismissed = True
    db.commit()

    data = client.get("/api/notifications", headers=agent_headers).json()["data"]

    assert sorted(n["title"] for n in data["notifications"]) == ["New Lead Assigned", "Older"]
    assert data["unread_count"] == 1

    unread = client.get("/api/notifications", params={"unread_only": True}, headers=agent_headers).json()["data"]
    assert [n["title"] for n in unread["notifications"]] == ["New Lead Assigned"]


def test_metadata_is_exposed(client, db, agent, agent_headers):
    notify(db, agent, metadata={"lead_name": "Jane Buyer"})

    [notification] = client.get("/api/notifications", headers=agent_headers).json()["data"]["notifications"]

    assert notification["metadata"] == {"lead_name": "Jane Buyer"}


def test_mark_read_and_read_all(client, db, agent, agent_headers):
    first = notify(db, agent)
    notify(db, agent)

    response = client.patch(f"/api/notifications/{first.id}/read", headers=agent_headers)
    assert response.json()["data"]["notification"]["is_read"] is True

    response = client.post("/api/notifications/read-all", headers=agent_headers)
    assert response.json()["data"]["updated"] == 1


def test_cannot_touch_someone_elses_notification(client, db, master, agent_headers):
    theirs = notify(db, master)

    assert client.patch(f"/api/notifications/{theirs.id}/read", headers=agent_headers).status_code == 404
    assert client.post(f"/api/notifications/{theirs.id}/dismiss", headers=agent_headers).status_code == 404


def test_dismiss_with_reminder(client, db, agent, agent_headers):
    notification = notify(db, agent)
    remind_at = (datetime.utcnow() + timedelta(hours=2)).replace(microsecond=0)

    response = client.post(
        f"/api/notifications/{notification.id}/dismiss",
        json={"remind_later": remind_at.isoformat()},
        headers=agent_headers,
    )

    body = response.json()["data"]["notification"]
    assert body["is_dismissed"] is True
    assert body["remind_later"] == remind_at.isoformat()


def test_dismiss_converts_offset_to_utc(client, db, agent, agent_headers):
    notification = notify(db, agent)

    response = client.post(
        f"/api/notifications/{notification.id}/dismiss",
        json={"remind_later": "2030-01-01T12:00:00+02:00"},
        headers=agent_headers,
    )

    assert response.json()["data"]["notification"]["remind_later"] == "2030-01-01T10:00:00"
    db.expire_all()
    stored = db.query(Notification).filter(Notification.id == notification.id).one()
    assert stored.remind_later == datetime(2030, 1, 1, 10, 0)
    assert process_due_reminders(db, now=datetime(2030, 1, 1, 10, 30)) == 1


def test_to_naive_utc():
    assert to_naive_utc(datetime(2030, 1, 1, 12, 0)) == datetime(2030, 1, 1, 12, 0)
    assert to_naive_utc(datetime(2030, 1, 1, 1, 0, tzinfo=timezone(timedelta(hours=5)))) == datetime(2029, 12, 31, 20, 0)


def test_dismiss_without_body(client, db, agent, agent_headers):
    notification = notify(db, agent)

    response = client.post(f"/api/notifications/{notification.id}/dismiss", headers=agent_headers)

    assert response.status_code == 200
    assert response.json()["data"]["notification"]["remind_later"] is None


@pytest.mark.parametrize(
    "related_to_type,original_type,expected_type,prefix",
    [
        ("lead", "lead_followup", "lead_followup", "Follow-up Reminder: "),
        ("lead", "lead_created", "lead_updated", "Lead Updated: "),
        ("task", "task_assigned", "task_reminder", "Reminder: "),
        ("event", "event_created", "event_reminder", "Event Reminder: "),
        (None, "general", "task_reminder", "Reminder: "),
    ],
)
def test_due_reminders_are_reissued(db, agent, related_to_type, original_type, expected_type, prefix):
    old = notify(
        db,
        agent,
        notification_type=original_type,
        message="Call Jane back",
        related_to_type=related_to_type,
        related_to_id=7,
    )
    old.is_dismissed = True
    old.remind_later = datetime.utcnow() - timedelta(minutes=1)
    db.commit()
    old_id = old.id

    assert process_due_reminders(db) == 1

    db.expire_all()
    [fresh] = db.query(Notification).all()
    assert fresh.id != old_id
    assert fresh.type == expected_type
    assert fresh.message == f"{prefix}Call Jane back"
    assert fresh.is_dismissed is False
    assert fresh.is_read is False
    assert fresh.related_to_id == 7


def test_future_reminders_wait(db, agent):
    pending = notify(db, agent)
    pending.is_dismissed = True
    pending.remind_later = datetime.utcnow() + timedelta(hours=1)
    db.commit()

    assert process_due_reminders(db) == 0
    assert process_due_reminders(db, now=datetime.utcnow() + timedelta(hours=2)) == 1


def test_reissued_reminder_shows_up_in_list(client, db, agent):
    old = notify(db, agent)
    old.is_dismissed = True
    old.remind_later = datetime.utcnow() - timedelta(seconds=5)
    db.commit()

    process_due_reminders(db)

    data = client.get("/api/notifications", headers=auth_headers(agent)).json()["data"]
    assert data["unread_count"] == 1
    assert data["notifications"][0]["type"] == "task_reminder"


def test_reminder_task_reports_reissued_count(db, agent):
    old = notify(db, agent)
    old.is_dismissed = True
    old.remind_later = datetime.utcnow() - timedelta(minutes=5)
    db.commit()

    assert process_reminders() == {"status": "ok", "reissued": 1}


def test_email_task_skips_without_smtp(db, agent):
    notification = notify(db, agent)

    assert send_notification_email(notification.id) == {"status": "smtp_not_configured"}
    assert send_notification_email(99999)["status"] == "notification_not_found"


def test_email_queued_when_smtp_configured(db, agent, monkeypatch):
    queued = []
    monkeypatch.setattr(get_settings(), "SMTP_HOST", "smtp.example.com")
    monkeypatch.setattr(send_notification_email, "delay", queued.append)

    notification = notify(db, agent)

    assert queued == [notification.id]
