"""Calendar connection and synchronization service."""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from sqlalchemy.orm import Session

from src.config import get_app_config
from src.models.calendar_connection import CalendarConnection
from src.schemas.calendar import (
    PROVIDER_LABELS,
    CalendarConnections,
    CalendarEntry,
    CalendarProvider,
    CalendarStatusResponse,
    ConnectedServices,
    EventRangeResponse,
    ProviderEventCreate,
    ProviderEvents,
    ProviderStatus,
    SyncResponse,
    SyncResults,
)
from src.services.calendar_providers import (
    CalendarProviderError,
    CalendarProviderService,
    ProviderNotConfiguredError,
    ProviderTokens,
)
from src.services.event_mapping import provider_events_to_entries
from src.services.google_calendar import create_google_calendar_service
from src.services.outlook_calendar import create_outlook_calendar_service

logger = logging.getLogger(__name__)

PROVIDER_FACTORIES: dict[CalendarProvider, Callable[[], CalendarProviderService]] = {
    CalendarProvider.GOOGLE: create_google_calendar_service,
    CalendarProvider.OUTLOOK: create_outlook_calendar_service,
}

# Access tokens this close to expiry are refreshed before use
TOKEN_REFRESH_MARGIN = timedelta(seconds=60)


class ProviderNotConnectedError(LookupError):
    """Raised when a trainer has no tokens for a provider."""


def get_provider_service(provider: CalendarProvider) -> CalendarProviderService:
    """Build the service for a provider; raises ProviderNotConfiguredError."""
    return PROVIDER_FACTORIES[provider]()


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes (e.g. read back from SQLite) as UTC."""
    if value is None:
        return None
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def token_expires_soon(connection: CalendarConnection, margin: timedelta = TOKEN_REFRESH_MARGIN) -> bool:
    expires_at = as_utc(connection.expires_at)
    if expires_at is None:
        return False
    return expires_at <= datetime.now(timezone.utc) + margin


class CalendarSyncService:
    """Manages a trainer's provider connections and fetches their events."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.calendar_config = get_app_config().calendar

    def get_connection(self, trainer_id: int, provider: CalendarProvider) -> CalendarConnection | None:
        return (
            self.db.query(CalendarConnection)
            .filter(
                CalendarConnection.trainer_id == trainer_id,
                CalendarConnection.provider == provider.value,
            )
            .first()
        )

    def _require_connection(self, trainer_id: int, provider: CalendarProvider) -> CalendarConnection:
        connection = self.get_connection(trainer_id, provider)
        if connection is None or not connection.connected:
            raise ProviderNotConnectedError(f"{PROVIDER_LABELS[provider]} is not connected")
        return connection

    def get_status(self, trainer_id: int) -> CalendarStatusResponse:
        """Report which providers currently hold tokens."""
        statuses = {}
        for provider in CalendarProvider:
            connection = self.get_connection(trainer_id, provider)
            if connection is None or not connection.connected:
                statuses[provider.value] = ProviderStatus()
                continue
            statuses[provider.value] = ProviderStatus(
                connected=True,
                has_refresh_token=bool(connection.refresh_token),
                expires_at=as_utc(connection.expires_at),
                user=connection.account_username,
            )
        return CalendarStatusResponse(connections=CalendarConnections(**statuses))

    def start_authorization(self, trainer_id: int, provider: CalendarProvider) -> str:
        """Record a fresh OAuth state and return the provider consent URL."""
        service = get_provider_service(provider)
        state = secrets.token_urlsafe(32)

        connection = self.get_connection(trainer_id, provider)
        if connection is None:
            connection = CalendarConnection(trainer_id=trainer_id, provider=provider.value)
            self.db.add(connection)
        connection.oauth_state = state
        self.db.commit()

        logger.info(f"Started {provider.value} authorization for trainer {trainer_id}")
        return service.generate_auth_url(state)

    async def complete_authorization(
        self, provider: CalendarProvider, code: str, state: str
    ) -> CalendarConnection:
        """Exchange the authorization code and store tokens on the pending connection."""
        connection = (
            self.db.query(CalendarConnection)
            .filter(
                CalendarConnection.provider == provider.value,
                CalendarConnection.oauth_state == state,
            )
            .first()
        )
        if connection is None:
            raise LookupError("Unknown or expired authorization state")

        service = get_provider_service(provider)
        tokens = await service.exchange_code(code)
        self._store_tokens(connection, tokens)
        connection.oauth_state = None
        self.db.commit()
        self.db.refresh(connection)

        logger.info(f"Connected {provider.value} calendar for trainer {connection.trainer_id}")
        return connection

    def disconnect(self, trainer_id: int, provider: CalendarProvider) -> bool:
        """Drop a provider's tokens. Returns whether a connection existed."""
        connection = self.get_connection(trainer_id, provider)
        had_connection = connection is not None and connection.connected
        if connection is not None:
            self.db.delete(connection)
            self.db.commit()
        logger.info(f"Disconnected {provider.value} calendar for trainer {trainer_id}")
        return had_connection

    @staticmethod
    def _store_tokens(connection: CalendarConnection, tokens: ProviderTokens) -> None:
        connection.access_token = tokens.access_token
        if tokens.refresh_token:
            connection.refresh_token = tokens.refresh_token
        connection.expires_at = tokens.expires_at
        if tokens.account_username:
            connection.account_username = tokens.account_username

    async def refresh_connection(
        self, connection: CalendarConnection, service: CalendarProviderService | None = None
    ) -> None:
        """Refresh and persist a connection's access token."""
        if not connection.refresh_token:
            raise CalendarProviderError(
                CalendarProvider(connection.provider), "No refresh token stored; reconnect required"
            )
        if service is None:
            service = get_provider_service(CalendarProvider(connection.provider))
        tokens = await service.refresh_tokens(connection.refresh_token)
        self._store_tokens(connection, tokens)
        self.db.commit()

    async def _access_token(self, connection: CalendarConnection, service: CalendarProviderService) -> str:
        if connection.refresh_token and token_expires_soon(connection):
            await self.refresh_connection(connection, service)
        if connection.access_token is None:
            provider = CalendarProvider(connection.provider)
            raise ProviderNotConnectedError(f"{PROVIDER_LABELS[provider]} is not connected")
        return connection.access_token

    async def list_provider_events(
        self, trainer_id: int, provider: CalendarProvider, max_results: int | None = None
    ) -> list[dict[str, Any]]:
        """Fetch provider-native events for one connected provider."""
        connection = self._require_connection(trainer_id, provider)
        service = get_provider_service(provider)
        access_token = await self._access_token(connection, service)
        if max_results is None:
            max_results = self.calendar_config["list_max_results"]
        return await service.list_events(access_token, max_results)

    async def create_provider_event(
        self, trainer_id: int, provider: CalendarProvider, event: ProviderEventCreate
    ) -> dict[str, Any]:
        connection = self._require_connection(trainer_id, provider)
        service = get_provider_service(provider)
        access_token = await self._access_token(connection, service)
        return await service.create_event(access_token, event)

    async def sync_all(self, trainer_id: int) -> SyncResponse:
        """Fetch events from every connected provider.

        A failing provider is reported in ``results.errors`` and does not fail
        the whole sync.
        """
        results = SyncResults()
        connected = ConnectedServices()
        max_results = self.calendar_config["sync_max_results"]

        for provider in CalendarProvider:
            connection = self.get_connection(trainer_id, provider)
            if connection is None or not connection.connected:
                continue
            setattr(connected, provider.value, True)

            try:
                service = get_provider_service(provider)
                access_token = await self._access_token(connection, service)
                events = await service.list_events(access_token, max_results)
            except (CalendarProviderError, ProviderNotConfiguredError, ProviderNotConnectedError) as e:
                logger.error(f"Sync of {provider.value} failed for trainer {trainer_id}: {e}")
                results.errors.append(f"{PROVIDER_LABELS[provider]}: {e}")
                continue

            setattr(results, provider.value, ProviderEvents(events=events, count=len(events)))

        logger.info(
            f"Synced calendars for trainer {trainer_id}: "
            f"google={connected.google} outlook={connected.outlook} errors={len(results.errors)}"
        )
        return SyncResponse(results=results, connected_services=connected)

    async def events_in_range(
        self, trainer_id: int, start: datetime, end: datetime
    ) -> EventRangeResponse:
        """Mapped events of every connected provider within a period."""
        response = EventRangeResponse(period={"startDate": start, "endDate": end})
        entries: list[CalendarEntry] = []

        for provider in CalendarProvider:
            connection = self.get_connection(trainer_id, provider)
            if connection is None or not connection.connected:
                continue
            try:
                service = get_provider_service(provider)
                access_token = await self._access_token(connection, service)
                raw_events = await service.get_events_in_range(access_token, start, end)
            except (CalendarProviderError, ProviderNotConfiguredError, ProviderNotConnectedError) as e:
                logger.error(f"Range query on {provider.value} failed for trainer {trainer_id}: {e}")
                response.errors.append(f"{PROVIDER_LABELS[provider]}: {e}")
                continue

            entries.extend(provider_events_to_entries(provider, raw_events))
            response.sources.append(provider)

        response.events = entries
        return response
