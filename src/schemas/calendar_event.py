"""Calendar event schemas for events created in the app."""

from datetime import datetime

from pydantic import ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from src.schemas.calendar import CamelModel, EventType


class CalendarEventBase(CamelModel):
    """Base calendar event schema."""

    title: str = Field(min_length=1, max_length=500)
    description: str | None = None
    type: EventType = EventType.TRAINING
    student_id: int | None = None
    start_time: datetime
    end_time: datetime
    location: str | None = None
    is_all_day: bool = False

    @field_validator("type")
    @classmethod
    def _not_synced(cls, value: EventType) -> EventType:
        if value is EventType.SYNCED:
            raise ValueError("synced events cannot be created manually")
        return value

    @model_validator(mode="after")
    def _end_after_start(self) -> "CalendarEventBase":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class CalendarEventCreate(CalendarEventBase):
    """Schema for creating a calendar event."""

    pass


class CalendarEventUpdate(CamelModel):
    """Schema for updating a calendar event."""

    title: str | None = Field(default=None, min_length=1, max_length=500)
    description: str | None = None
    type: EventType | None = None
    student_id: int | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    location: str | None = None
    is_all_day: bool | None = None

    @field_validator("type")
    @classmethod
    def _not_synced(cls, value: EventType | None) -> EventType | None:
        if value is EventType.SYNCED:
            raise ValueError("synced events cannot be created manually")
        return value


class CalendarEvent(CalendarEventBase):
    """Schema for calendar event response."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    trainer_id: int
    created_at: datetime
    updated_at: datetime
