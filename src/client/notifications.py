"""User-facing notifications raised by the calendar client."""

import logging
from enum import Enum
from typing import Protocol

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)


class NotificationLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


class Notification(BaseModel):
    """A toast-style message for the trainer."""

    model_config = ConfigDict(frozen=True)

    title: str
    message: str
    level: NotificationLevel = NotificationLevel.INFO


class Notifier(Protocol):
    def notify(self, notification: Notification) -> None: ...


class LoggingNotifier:
    """Notifier that writes notifications to the log."""

    def notify(self, notification: Notification) -> None:
        if notification.level is NotificationLevel.ERROR:
            logger.error(f"{notification.title}: {notification.message}")
        else:
            logger.info(f"{notification.title}: {notification.message}")
