"""Trainer model."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database import Base
from src.models.mixins import TimestampMixin


class Trainer(Base, TimestampMixin):
    """Trainer model: the account that owns students, events and calendar connections."""

    __tablename__ = "trainers"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255))
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    timezone: Mapped[str] = mapped_column(String(50), default="America/Sao_Paulo")

    # Relationships
    students: Mapped[list["Student"]] = relationship(back_populates="trainer")  # noqa: F821
    calendar_events: Mapped[list["CalendarEvent"]] = relationship(  # noqa: F821
        back_populates="trainer"
    )
    calendar_connections: Mapped[list["CalendarConnection"]] = relationship(  # noqa: F821
        back_populates="trainer", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Trainer(id={self.id}, name='{self.name}')>"
