"""Calendar provider connection model."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database import Base
from src.models.mixins import TimestampMixin


class CalendarConnection(Base, TimestampMixin):
    """OAuth tokens linking a trainer to an external calendar provider.

    A row may exist before authorization completes (it then only carries the
    pending ``oauth_state``); the provider counts as connected once an access
    token has been stored.
    """

    __tablename__ = "calendar_connections"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    trainer_id: Mapped[int] = mapped_column(ForeignKey("trainers.id"), nullable=False)
    provider: Mapped[str] = mapped_column(String(20), nullable=False)
    access_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    refresh_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    account_username: Mapped[str | None] = mapped_column(String(255), nullable=True)
    oauth_state: Mapped[str | None] = mapped_column(String(128), nullable=True, unique=True)

    # Relationships
    trainer: Mapped["Trainer"] = relationship(back_populates="calendar_connections")  # noqa: F821

    __table_args__ = (
        UniqueConstraint("trainer_id", "provider", name="uq_calendar_connection_trainer_provider"),
        Index("idx_calendar_connections_expires_at", "expires_at"),
    )

    @property
    def connected(self) -> bool:
        return bool(self.access_token)

    def clear_tokens(self) -> None:
        self.access_token = None
        self.refresh_token = None
        self.expires_at = None
        self.account_username = None
        self.oauth_state = None

    def __repr__(self) -> str:
        return f"<CalendarConnection(id={self.id}, provider='{self.provider}', connected={self.connected})>"
