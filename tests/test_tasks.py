from datetime import datetime

from conftest import auth_headers, make_lead, make_tenant, make_user
from modulyn.models import Notification, Task, TaskComment, UserRole
from modulyn.services.notifications import process_due_reminders


def make_task(db, tenant, **fields) -> Task:
    task = Task(
        tenant_id=tenant.id,
        title=fields.pop("title", "Call Jane back"),
        description=fields.pop("description", "Confirm the viewing time"),
        **fields,
    )
    db.add(task)
    db.commit()
    db.refresh(task)
    return task


def notifications_for(client, user):
    return client.get("/api/notifications", headers=auth_headers(user)).json()["data"]["notifications"]


def test_create_task_notifies_assignee(client, db, tenant, agent, master, master_headers):
    lead = make_lead(db, tenant)

    response = client.post(
        "/api/tasks",
        json={
            "title": "Call Jane back",
            "description": "Confirm the viewing time",
            "due_date": "2030-01-01T09:00:00+04:00",
            "assigned_to": agent.id,
            "lead_id": lead.id,
            "tags": ["viewing"],
        },
        headers=master_headers,
    )

    assert response.status_code == 201
    task = response.json()["data"]["task"]
    assert task["status"] == "todo"
    assert task["priority"] == "medium"
    assert task["due_date"] == "2030-01-01T05:00:00"
    assert task["created_by"] == master.id
    assert task["tags"] == ["viewing"]

    [notification] = notifications_for(client, agent)
    assert notification["type"] == "task_assigned"
    assert notification["title"] == "Task Assigned"
    assert notification["message"] == "A new task (Call Jane back) has been assigned to you."
    assert notification["related_to_type"] == "task"
    assert notification["related_to_id"] == task["id"]


def test_create_task_requires_title_and_description(client, master_headers):
    response = client.post("/api/tasks", json={"title": "No details"}, headers=master_headers)
    assert response.status_code == 422


def test_assignee_must_belong_to_tenant(client, db, master_headers):
    outsider = make_user(db, make_tenant(db, "Other Realty"), "agent@otherrealty.com")

    response = client.post(
        "/api/tasks",
        json={"title": "Call", "description": "Call back", "assigned_to": outsider.id},
        headers=master_headers,
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Assigned user not found"


def test_dismissed_assignment_comes_back_as_task_reminder(client, db, agent, master_headers):
    task = client.post(
        "/api/tasks",
        json={"title": "Send contract", "description": "Unit 1204", "assigned_to": agent.id},
        headers=master_headers,
    ).json()["data"]["task"]
    [assigned] = notifications_for(client, agent)

    client.post(
        f"/api/notifications/{assigned['id']}/dismiss",
        json={"remind_later": "2030-01-01T08:00:00Z"},
        headers=auth_headers(agent),
    )
    assert notifications_for(client, agent) == []

    assert process_due_reminders(db, now=datetime(2030, 1, 1, 8, 5)) == 1

    [reminder] = notifications_for(client, agent)
    assert reminder["type"] == "task_reminder"
    assert reminder["message"] == "Reminder: A new task (Send contract) has been assigned to you."
    assert reminder["related_to_type"] == "task"
    assert reminder["related_to_id"] == task["id"]


def test_list_orders_by_due_date_and_scopes_agents(client, db, tenant, agent, master, master_headers, agent_headers):
    later = make_task(db, tenant, title="Later", due_date=datetime(2030, 2, 1), assigned_to=agent.id)
    undated = make_task(db, tenant, title="Someday", created_by=agent.id)
    sooner = make_task(db, tenant, title="Sooner", due_date=datetime(2030, 1, 1), assigned_to=agent.id)
    make_task(db, tenant, title="Not mine", assigned_to=master.id)

    everything = client.get("/api/tasks", headers=master_headers).json()["data"]["tasks"]
    assert [t["title"] for t in everything] == ["Sooner", "Later", "Someday", "Not mine"]

    mine = client.get("/api/tasks", headers=agent_headers).json()["data"]["tasks"]
    assert [t["id"] for t in mine] == [sooner.id, later.id, undated.id]


def test_agent_cannot_open_someone_elses_task(client, db, tenant, master, agent_headers, master_headers):
    theirs = make_task(db, tenant, assigned_to=master.id)
    foreign = make_task(db, make_tenant(db, "Other Realty"))

    assert client.get(f"/api/tasks/{theirs.id}", headers=agent_headers).status_code == 403
    assert client.get(f"/api/tasks/{foreign.id}", headers=master_headers).status_code == 404


def test_update_task_notifies_and_rejects_cleared_fields(client, db, tenant, agent, master_headers):
    task = make_task(db, tenant, assigned_to=agent.id)

    response = client.patch(f"/api/tasks/{task.id}", json={"status": "active", "priority": "high"}, headers=master_headers)
    assert response.json()["data"]["task"]["status"] == "active"
    assert response.json()["data"]["task"]["priority"] == "high"
    assert [n["type"] for n in notifications_for(client, agent)] == ["task_updated"]

    cleared = client.patch(f"/api/tasks/{task.id}", json={"title": None}, headers=master_headers)
    assert cleared.status_code == 400


def test_comments_notify_the_assignee_but_not_themselves(client, db, tenant, agent, master, master_headers, agent_headers):
    task = make_task(db, tenant, assigned_to=agent.id, created_by=master.id)

    own = client.post(f"/api/tasks/{task.id}/comments", json={"content": "On it"}, headers=agent_headers)
    assert own.status_code == 201
    assert notifications_for(client, agent) == []

    client.post(f"/api/tasks/{task.id}/comments", json={"content": "Thanks"}, headers=master_headers)
    [notification] = notifications_for(client, agent)
    assert notification["type"] == "task_commented"
    assert notification["related_to_id"] == task.id

    detail = client.get(f"/api/tasks/{task.id}", headers=agent_headers).json()["data"]["task"]
    assert [c["content"] for c in detail["comments"]] == ["On it", "Thanks"]
    master_comment_id = detail["comments"][1]["id"]

    assert client.delete(f"/api/tasks/{task.id}/comments/{master_comment_id}", headers=agent_headers).status_code == 403
    assert client.delete(f"/api/tasks/{task.id}/comments/{master_comment_id}", headers=master_headers).status_code == 204
    assert client.delete(f"/api/tasks/{task.id}/comments/9999", headers=master_headers).status_code == 404


def test_agent_deletes_only_tasks_they_created(client, db, tenant, agent, master, agent_headers):
    assigned = make_task(db, tenant, assigned_to=agent.id, created_by=master.id)
    own = make_task(db, tenant, created_by=agent.id)
    comment = TaskComment(task_id=own.id, user_id=agent.id, content="note")
    db.add(comment)
    db.commit()

    assert client.delete(f"/api/tasks/{assigned.id}", headers=agent_headers).status_code == 403
    assert client.delete(f"/api/tasks/{own.id}", headers=agent_headers).status_code == 204

    db.expire_all()
    assert db.query(Task).filter(Task.id == own.id).first() is None
    assert db.query(TaskComment).count() == 0


def test_deleting_a_user_unassigns_their_tasks(client, db, tenant, agent, master_headers):
    task = make_task(db, tenant, assigned_to=agent.id)

    assert client.delete(f"/api/team/users/{agent.id}", headers=master_headers).status_code == 204

    db.expire_all()
    assert db.query(Task).filter(Task.id == task.id).one().assigned_to is None
    assert db.query(Notification).count() == 0


def test_manager_sees_all_tasks(client, db, tenant, agent):
    manager = make_user(db, tenant, "manager@acmerealty.com", role=UserRole.manager)
    make_task(db, tenant, assigned_to=agent.id)

    tasks = client.get("/api/tasks", headers=auth_headers(manager)).json()["data"]["tasks"]

    assert len(tasks) == 1
