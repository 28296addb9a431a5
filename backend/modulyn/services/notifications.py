from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from modulyn.core.config import get_settings
from modulyn.core.logging import get_logger
from modulyn.models.notification import Notification

logger = get_logger(__name__)

# related_to_type -> (reissued type, message prefix)
REMINDER_RULES = {
    "task": ("task_reminder", "Reminder: "),
    "event": ("event_reminder", "Event Reminder: "),
}


def create_notification(
    db: Session,
    *,
    tenant_id: int,
    user_id: int,
    notification_type: str,
    title: str,
    message: str,
    related_to_type: str | None = None,
    related_to_id: int | None = None,
    metadata: dict[str, Any] | None = None,
) -> Notification:
    notification = Notification(
        tenant_id=tenant_id,
        user_id=user_id,
        type=notification_type,
        title=title,
        message=message,
        related_to_type=related_to_type,
        related_to_id=related_to_id,
        meta=metadata or {},
    )
    db.add(notification)
    db.commit()
    db.refresh(notification)

    if get_settings().SMTP_HOST:
        from modulyn.workers.tasks import send_notification_email

        send_notification_email.delay(notification.id)

    return notification


def _reminder_for(notification: Notification) -> tuple[str, str]:
    if notification.related_to_type == "lead":
        if notification.type == "lead_followup":
            return "lead_followup", "Follow-up Reminder: "
        return "lead_updated", "Lead Updated: "
    return REMINDER_RULES.get(notification.related_to_type or "task", ("task_reminder", "Reminder: "))


def process_due_reminders(db: Session, now: datetime | None = None) -> int:
    """Reissue dismissed notifications whose remind-later time has passed."""
    now = now or datetime.utcnow()
    due = (
        db.query(Notification)
        .filter(
            Notification.is_dismissed == True,
            Notification.remind_later.is_not(None),
            Notification.remind_later < now,
        )
        .order_by(Notification.remind_later)
        .all()
    )

    for old in due:
        notification_type, prefix = _reminder_for(old)
        db.add(
            Notification(
                tenant_id=old.tenant_id,
                user_id=old.user_id,
                type=notification_type,
                title=old.title,
                message=f"{prefix}{old.message}",
                related_to_type=old.related_to_type,
                related_to_id=old.related_to_id,
                meta=dict(old.meta or {}),
            )
        )
        db.delete(old)

    db.commit()
    if due:
        logger.info("Reissued %d reminder notification(s)", len(due))
    return len(due)
