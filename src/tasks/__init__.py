"""Celery tasks for trainer-calendar."""

from src.tasks.calendar_tasks import refresh_expiring_tokens

__all__ = [
    "refresh_expiring_tokens",
]
