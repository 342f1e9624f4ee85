"""Calendar event model."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database import Base
from src.models.mixins import SoftDeleteMixin, TimestampMixin
from src.schemas.calendar import EventType


class CalendarEvent(Base, TimestampMixin, SoftDeleteMixin):
    """CalendarEvent model for events a trainer creates in the app.

    Events pulled from Google or Outlook are never stored here; they are
    regenerated on every sync.
    """

    __tablename__ = "calendar_events"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    trainer_id: Mapped[int] = mapped_column(ForeignKey("trainers.id"), nullable=False)
    student_id: Mapped[int | None] = mapped_column(ForeignKey("students.id"), nullable=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(String(50), default=EventType.TRAINING.value)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    location: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_all_day: Mapped[bool] = mapped_column(Boolean, default=False)

    # Relationships
    trainer: Mapped["Trainer"] = relationship(back_populates="calendar_events")  # noqa: F821
    student: Mapped["Student | None"] = relationship(back_populates="calendar_events")  # noqa: F821

    __table_args__ = (
        Index("idx_calendar_events_trainer_id", "trainer_id"),
        Index("idx_calendar_events_start_time", "start_time"),
        Index("idx_calendar_events_end_time", "end_time"),
    )

    def __repr__(self) -> str:
        return f"<CalendarEvent(id={self.id}, title='{self.title}')>"
