"""Student schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class StudentBase(BaseModel):
    """Base student schema."""

    name: str
    email: str | None = None
    phone: str | None = None


class StudentCreate(StudentBase):
    """Schema for creating a student."""

    pass


class Student(StudentBase):
    """Schema for student response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    trainer_id: int
    created_at: datetime
