"""Calendar sync schemas shared by the API and the calendar client."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CalendarProvider(str, Enum):
    """External calendar services a trainer can connect."""

    GOOGLE = "google"
    OUTLOOK = "outlook"


class EventType(str, Enum):
    """Semantic type of a calendar event."""

    TRAINING = "training"
    CONSULTATION = "consultation"
    PERSONAL = "personal"
    SYNCED = "synced"


class EventSource(str, Enum):
    """Where a calendar event came from."""

    MANUAL = "manual"
    GOOGLE = "google"
    OUTLOOK = "outlook"


# Event types that must be linked to a student
STUDENT_EVENT_TYPES = frozenset({EventType.TRAINING, EventType.CONSULTATION})

PROVIDER_LABELS = {
    CalendarProvider.GOOGLE: "Google Calendar",
    CalendarProvider.OUTLOOK: "Outlook Calendar",
}


class CamelModel(BaseModel):
    """Base schema serialized with camelCase keys, accepting either case on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProviderStatus(CamelModel):
    """Connection status for one provider."""

    connected: bool = False
    has_refresh_token: bool = False
    expires_at: datetime | None = None
    user: str | None = None


class CalendarConnections(CamelModel):
    """Connection status for every provider."""

    google: ProviderStatus = Field(default_factory=ProviderStatus)
    outlook: ProviderStatus = Field(default_factory=ProviderStatus)

    def for_provider(self, provider: CalendarProvider) -> ProviderStatus:
        return getattr(self, provider.value)


class CalendarStatusResponse(CamelModel):
    """Response for GET /api/calendar/status."""

    success: bool = True
    connections: CalendarConnections = Field(default_factory=CalendarConnections)


class AuthUrlResponse(CamelModel):
    """Response carrying a provider authorization URL."""

    success: bool = True
    auth_url: str
    message: str = ""


class AuthCallbackResponse(CamelModel):
    """Response after a provider redirected back with an authorization code."""

    success: bool = True
    message: str
    provider: CalendarProvider
    user: str | None = None


class ProviderEvents(CamelModel):
    """Provider-native events returned by a sync."""

    events: list[dict[str, Any]] = Field(default_factory=list)
    count: int = 0


class SyncResults(CamelModel):
    """Per-provider sync results; a provider is absent when it is not connected."""

    google: ProviderEvents | None = None
    outlook: ProviderEvents | None = None
    errors: list[str] = Field(default_factory=list)

    def for_provider(self, provider: CalendarProvider) -> ProviderEvents | None:
        return getattr(self, provider.value)


class ConnectedServices(CamelModel):
    """Which providers had tokens when a sync ran."""

    google: bool = False
    outlook: bool = False


class SyncResponse(CamelModel):
    """Response for POST /api/calendar/sync."""

    success: bool = True
    message: str = "Calendars synchronized"
    results: SyncResults = Field(default_factory=SyncResults)
    connected_services: ConnectedServices = Field(default_factory=ConnectedServices)


class ProviderEventsResponse(CamelModel):
    """Provider-native events for a single provider."""

    success: bool = True
    events: list[dict[str, Any]] = Field(default_factory=list)
    provider: CalendarProvider


class ProviderEventCreate(CamelModel):
    """Event to create directly at a provider."""

    title: str = Field(min_length=1)
    description: str | None = None
    start_time: datetime
    end_time: datetime
    attendees: list[str] = Field(default_factory=list)
    location: str | None = None


class ProviderEventCreated(CamelModel):
    """Provider-native event created at a provider."""

    success: bool = True
    event: dict[str, Any]
    provider: CalendarProvider


class DisconnectResponse(CamelModel):
    """Response for DELETE /api/calendar/{provider}/disconnect."""

    success: bool = True
    message: str
    had_connection: bool


class CalendarEntry(CamelModel):
    """A renderable calendar event, either created in the app or synced from a provider."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    title: str
    start: datetime
    end: datetime
    description: str | None = None
    type: EventType
    student_id: int | None = None
    student_name: str | None = None
    source: EventSource
    original_id: str | None = None

    @property
    def is_manual(self) -> bool:
        return self.source is EventSource.MANUAL


class EventRangeResponse(CamelModel):
    """Synced events of every connected provider within a period."""

    success: bool = True
    events: list[CalendarEntry] = Field(default_factory=list)
    sources: list[CalendarProvider] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    period: dict[str, datetime]
