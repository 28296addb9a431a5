from datetime import datetime

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from modulyn.core.database import get_db
from modulyn.core.deps import get_current_user
from modulyn.core.errors import AppError
from modulyn.core.responses import success
from modulyn.models.event import Event
from modulyn.models.lead import Lead
from modulyn.models.user import User, UserRole
from modulyn.schemas.common import to_naive_utc
from modulyn.schemas.event import EventCreate, EventResponse, EventUpdate
from modulyn.services.audit import audit_event
from modulyn.services.notifications import create_notification
from modulyn.services.records import check_reference, get_owned, reject_cleared

router = APIRouter(prefix="/events", tags=["events"])


def _dump(event: Event) -> dict:
    return EventResponse.model_validate(event).model_dump(mode="json")


def _visible_event(db: Session, event_id: int, current_user: User) -> Event:
    event = get_owned(db, Event, event_id, current_user.tenant_id, "event")
    if current_user.role == UserRole.agent and current_user.id not in (event.assigned_to, event.created_by):
        raise AppError("Agents can only access their own events", 403)
    return event


def _notify_assignee(db: Session, event: Event, notification_type: str, title: str, message: str) -> None:
    if not event.assigned_to:
        return
    create_notification(
        db,
        tenant_id=event.tenant_id,
        user_id=event.assigned_to,
        notification_type=notification_type,
        title=title,
        message=message,
        related_to_type="event",
        related_to_id=event.id,
        metadata={"start": event.start.isoformat()},
    )


@router.get("")
def list_events(
    start: datetime | None = Query(default=None),
    end: datetime | None = Query(default=None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = db.query(Event).filter(Event.tenant_id == current_user.tenant_id)
    if current_user.role == UserRole.agent:
        query = query.filter(or_(Event.assigned_to == current_user.id, Event.created_by == current_user.id))
    if start is not None:
        query = query.filter(Event.start >= to_naive_utc(start))
    if end is not None:
        query = query.filter(Event.end <= to_naive_utc(end))
    events = query.order_by(Event.start, Event.id).all()
    return success(events=[_dump(event) for event in events])


@router.get("/{event_id}")
def get_event(event_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return success(event=_dump(_visible_event(db, event_id, current_user)))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_event(payload: EventCreate, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    if payload.end < payload.start:
        raise AppError("Event cannot end before it starts", 400)
    check_reference(db, User, payload.assigned_to, current_user.tenant_id, "Assigned user")
    check_reference(db, Lead, payload.lead_id, current_user.tenant_id, "Lead")

    event = Event(tenant_id=current_user.tenant_id, created_by=current_user.id, **payload.model_dump())
    db.add(event)
    db.commit()
    db.refresh(event)

    _notify_assignee(db, event, "event_created", "Event Scheduled", f"{event.title} is scheduled for {event.start:%Y-%m-%d %H:%M}.")
    audit_event(db, "event_create", "event", user_id=current_user.id, tenant_id=current_user.tenant_id, details=f"event_id={event.id}")
    return success(event=_dump(event))


@router.patch("/{event_id}")
def update_event(
    event_id: int,
    payload: EventUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    event = _visible_event(db, event_id, current_user)
    changes = payload.model_dump(exclude_unset=True)
    reject_cleared(changes, "title", "start", "end", "type", "status")
    check_reference(db, User, changes.get("assigned_to"), current_user.tenant_id, "Assigned user")
    check_reference(db, Lead, changes.get("lead_id"), current_user.tenant_id, "Lead")
    if changes.get("end", event.end) < changes.get("start", event.start):
        raise AppError("Event cannot end before it starts", 400)

    for key, value in changes.items():
        setattr(event, key, value)

    db.commit()
    db.refresh(event)

    _notify_assignee(db, event, "event_updated", "Event Updated", f"{event.title} has been updated.")
    audit_event(db, "event_update", "event", user_id=current_user.id, tenant_id=current_user.tenant_id, details=f"event_id={event.id}")
    return success(event=_dump(event))


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event(event_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    event = _visible_event(db, event_id, current_user)
    db.delete(event)
    db.commit()
    audit_event(db, "event_delete", "event", user_id=current_user.id, tenant_id=current_user.tenant_id, details=f"event_id={event_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
