from celery import Celery

from modulyn.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    "modulyn_crm",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["modulyn.workers.tasks"],
)
celery_app.conf.beat_schedule = {
    "process-notification-reminders": {
        "task": "modulyn.workers.tasks.process_reminders",
        "schedule": float(settings.REMINDER_CHECK_SECONDS),
    },
}
celery_app.conf.timezone = "UTC"
