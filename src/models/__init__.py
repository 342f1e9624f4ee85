"""SQLAlchemy ORM models."""

from src.models.calendar_connection import CalendarConnection
from src.models.calendar_event import CalendarEvent
from src.models.student import Student
from src.models.trainer import Trainer

__all__ = [
    "CalendarConnection",
    "CalendarEvent",
    "Student",
    "Trainer",
]
