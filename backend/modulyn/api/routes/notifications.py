from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from modulyn.core.database import get_db
from modulyn.core.deps import get_current_user
from modulyn.core.errors import AppError
from modulyn.core.responses import success
from modulyn.models.notification import Notification
from modulyn.models.user import User
from modulyn.schemas.notification import DismissRequest, NotificationResponse

router = APIRouter(prefix="/notifications", tags=["notifications"])


def _own_notification(db: Session, notification_id: int, user: User) -> Notification:
    row = db.query(Notification).filter(Notification.id == notification_id, Notification.user_id == user.id).first()
    if not row:
        raise AppError("Notification not found", 404)
    return row


def _dump(row: Notification) -> dict:
    return NotificationResponse.model_validate(row).model_dump(mode="json")


@router.get("")
def list_notifications(
    unread_only: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = db.query(Notification).filter(Notification.user_id == current_user.id, Notification.is_dismissed == False)
    if unread_only:
        query = query.filter(Notification.is_read == False)
    rows = query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()
    unread = (
        db.query(Notification)
        .filter(Notification.user_id == current_user.id, Notification.is_dismissed == False, Notification.is_read == False)
        .count()
    )
    return success(notifications=[_dump(r) for r in rows], unread_count=unread)


@router.patch("/{notification_id}/read")
def mark_read(notification_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    row = _own_notification(db, notification_id, current_user)
    row.is_read = True
    db.commit()
    db.refresh(row)
    return success(notification=_dump(row))


@router.post("/read-all")
def mark_all_read(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    updated = (
        db.query(Notification)
        .filter(Notification.user_id == current_user.id, Notification.is_read == False)
        .update({Notification.is_read: True}, synchronize_session=False)
    )
    db.commit()
    return success(updated=updated)


@router.post("/{notification_id}/dismiss")
def dismiss(
    notification_id: int,
    payload: DismissRequest | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    row = _own_notification(db, notification_id, current_user)
    row.is_dismissed = True
    row.remind_later = payload.remind_later if payload else None
    db.commit()
    db.refresh(row)
    return success(notification=_dump(row))
