"""Trainer schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class TrainerBase(BaseModel):
    """Base trainer schema."""

    name: str
    email: str
    timezone: str = "America/Sao_Paulo"


class TrainerCreate(TrainerBase):
    """Schema for creating a trainer."""

    pass


class Trainer(TrainerBase):
    """Schema for trainer response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: datetime
    updated_at: datetime
