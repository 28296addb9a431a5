import smtplib
from email.message import EmailMessage

from modulyn.core.config import get_settings
from modulyn.core.database import SessionLocal
from modulyn.core.logging import get_logger
from modulyn.models.notification import Notification
from modulyn.models.user import User
from modulyn.services.notifications import process_due_reminders
from modulyn.workers.celery_app import celery_app

logger = get_logger(__name__)


def _send_email(to_email: str, subject: str, body: str) -> dict:
    settings = get_settings()
    if not settings.SMTP_HOST:
        return {"status": "smtp_not_configured"}

    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = settings.SMTP_FROM_EMAIL
    msg["To"] = to_email
    msg.set_content(body)

    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as server:
        if settings.SMTP_USERNAME and settings.SMTP_PASSWORD:
            server.starttls()
            server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
        server.send_message(msg)

    return {"status": "sent"}


@celery_app.task
def send_notification_email(notification_id: int) -> dict:
    db = SessionLocal()
    try:
        notification = db.query(Notification).filter(Notification.id == notification_id).first()
        if not notification:
            return {"status": "notification_not_found", "notification_id": notification_id}
        user = db.query(User).filter(User.id == notification.user_id).first()
        if not user or not user.is_active:
            return {"status": "recipient_unavailable", "notification_id": notification_id}
        return _send_email(user.email, notification.title, notification.message)
    finally:
        db.close()


@celery_app.task
def process_reminders() -> dict:
    db = SessionLocal()
    try:
        reissued = process_due_reminders(db)
        return {"status": "ok", "reissued": reissued}
    except Exception:
        logger.exception("Reminder processing failed")
        db.rollback()
        raise
    finally:
        db.close()
