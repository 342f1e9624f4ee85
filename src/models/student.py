"""Student model."""

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database import Base
from src.models.mixins import SoftDeleteMixin, TimestampMixin


class Student(Base, TimestampMixin, SoftDeleteMixin):
    """Student model for the trainer's roster."""

    __tablename__ = "students"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    trainer_id: Mapped[int] = mapped_column(ForeignKey("trainers.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Relationships
    trainer: Mapped["Trainer"] = relationship(back_populates="students")  # noqa: F821
    calendar_events: Mapped[list["CalendarEvent"]] = relationship(  # noqa: F821
        back_populates="student"
    )

    __table_args__ = (Index("idx_students_trainer_id", "trainer_id"),)

    def __repr__(self) -> str:
        return f"<Student(id={self.id}, name='{self.name}')>"
