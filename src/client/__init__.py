"""Async client for the trainer calendar API."""

from src.client.api import (
    CalendarApiClient,
    CalendarApiError,
    ProviderNotConnectedError,
    SessionExpiredError,
)
from src.client.notifications import LoggingNotifier, Notification, NotificationLevel, Notifier
from src.client.reconciler import CalendarReconciler, CalendarSnapshot, ConnectionState, EventDraft
from src.client.scheduling import ScheduledTask, TaskRegistry

__all__ = [
    "CalendarApiClient",
    "CalendarApiError",
    "CalendarReconciler",
    "CalendarSnapshot",
    "ConnectionState",
    "EventDraft",
    "LoggingNotifier",
    "Notification",
    "NotificationLevel",
    "Notifier",
    "ProviderNotConnectedError",
    "ScheduledTask",
    "SessionExpiredError",
    "TaskRegistry",
]
