"""Pydantic schemas for request/response validation."""

from src.schemas.calendar import (
    CalendarEntry,
    CalendarProvider,
    CalendarStatusResponse,
    EventSource,
    EventType,
    SyncResponse,
)
from src.schemas.calendar_event import CalendarEvent, CalendarEventCreate, CalendarEventUpdate
from src.schemas.student import Student, StudentCreate
from src.schemas.trainer import Trainer, TrainerCreate

__all__ = [
    "CalendarEntry",
    "CalendarEvent",
    "CalendarEventCreate",
    "CalendarEventUpdate",
    "CalendarProvider",
    "CalendarStatusResponse",
    "EventSource",
    "EventType",
    "Student",
    "StudentCreate",
    "SyncResponse",
    "Trainer",
    "TrainerCreate",
]
