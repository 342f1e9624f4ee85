"""Celery application configuration."""

from celery import Celery

from src.config import get_settings

settings = get_settings()

app = Celery(
    "trainer_calendar",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["src.tasks.calendar_tasks"],
)

# Celery configuration
app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="America/Sao_Paulo",
    enable_utc=True,
    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    # Result expiration
    result_expires=3600,  # 1 hour
    # Beat schedule for periodic tasks
    beat_schedule={
        "refresh-calendar-tokens-every-10-minutes": {
            "task": "calendar_tasks.refresh_expiring_tokens",
            "schedule": 600.0,  # Every 10 minutes
        },
    },
)
