"""Client-side calendar state: provider connections and the merged event list."""

import asyncio
import logging
import webbrowser
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.client.api import CalendarApiClient, CalendarApiError
from src.client.merge import drop_provider_events, merge_synced_events, replace_manual_events
from src.client.notifications import LoggingNotifier, Notification, NotificationLevel, Notifier
from src.client.scheduling import ScheduledTask, TaskRegistry
from src.config import get_app_config
from src.schemas.calendar import (
    PROVIDER_LABELS,
    STUDENT_EVENT_TYPES,
    CalendarEntry,
    CalendarProvider,
    EventSource,
    EventType,
)
from src.schemas.calendar_event import CalendarEventCreate
from src.services.event_mapping import events_from_sync, local_event_to_entry

logger = logging.getLogger(__name__)

AUTO_SYNC_TASK = "auto-sync"


class ConnectionState(BaseModel):
    """Authorization state of one provider."""

    model_config = ConfigDict(frozen=True)

    connected: bool = False
    loading: bool = False


class CalendarSnapshot(BaseModel):
    """Everything a calendar view needs to render."""

    model_config = ConfigDict(frozen=True)

    events: tuple[CalendarEntry, ...] = ()
    connections: dict[CalendarProvider, ConnectionState] = Field(default_factory=dict)
    last_synced_at: datetime | None = None


class EventDraft(BaseModel):
    """Unvalidated input of the create-event form."""

    title: str | None = None
    description: str | None = None
    type: EventType = EventType.TRAINING
    student_id: int | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    location: str | None = None
    is_all_day: bool = False

    def validation_error(self) -> str | None:
        """Return the first problem that prevents submitting the draft."""
        if not self.title or not self.title.strip() or self.start_time is None or self.end_time is None:
            return "Title, start and end are required"
        if self.end_time <= self.start_time:
            return "End time must be after start time"
        if self.type is EventType.SYNCED:
            return "Synced events cannot be created manually"
        if self.type in STUDENT_EVENT_TYPES and self.student_id is None:
            return "Select a student for training and consultation events"
        return None


def _auth_task_name(provider: CalendarProvider) -> str:
    return f"authorize:{provider.value}"


class CalendarReconciler:
    """Keeps one trainer's merged calendar in sync with the server.

    Manual events come from the app's own event store; synced events are
    regenerated from the provider calendars on every sync and are never
    persisted here. All background work (authorization polls, the auto-sync
    timer) lives in a single TaskRegistry, cancelled by ``close()``.
    """

    def __init__(
        self,
        api: CalendarApiClient,
        notifier: Notifier | None = None,
        open_url: Callable[[str], Any] | None = None,
        auth_poll_interval: float | None = None,
        auth_timeout: float | None = None,
        auto_sync_interval: float | None = None,
    ) -> None:
        calendar_config = get_app_config().calendar
        self.api = api
        self.notifier = notifier or LoggingNotifier()
        self.open_url = open_url or webbrowser.open_new
        self.auth_poll_interval = (
            auth_poll_interval
            if auth_poll_interval is not None
            else float(calendar_config["auth_poll_interval_seconds"])
        )
        self.auth_timeout = (
            auth_timeout if auth_timeout is not None else float(calendar_config["auth_timeout_seconds"])
        )
        self.auto_sync_interval = (
            auto_sync_interval
            if auto_sync_interval is not None
            else float(calendar_config["auto_sync_interval_seconds"])
        )

        self._tasks = TaskRegistry()
        self._closed = False
        self._events: list[CalendarEntry] = []
        self._connections: dict[CalendarProvider, ConnectionState] = {
            provider: ConnectionState() for provider in CalendarProvider
        }
        self._last_synced_at: datetime | None = None

    async def __aenter__(self) -> "CalendarReconciler":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def events(self) -> tuple[CalendarEntry, ...]:
        return tuple(self._events)

    @property
    def connections(self) -> dict[CalendarProvider, ConnectionState]:
        return dict(self._connections)

    @property
    def auto_sync_armed(self) -> bool:
        return self._tasks.get(AUTO_SYNC_TASK) is not None

    def snapshot(self) -> CalendarSnapshot:
        return CalendarSnapshot(
            events=self.events,
            connections=self.connections,
            last_synced_at=self._last_synced_at,
        )

    async def start(self) -> None:
        """Load connection status and local events, then arm the auto-sync timer."""
        if self._closed:
            raise RuntimeError("Calendar reconciler is closed")
        await self.refresh_status()
        await self.load_local_events()
        self._arm_auto_sync()

    async def close(self) -> None:
        """Cancel every background task; later callbacks become no-ops."""
        if self._closed:
            return
        self._closed = True
        await self._tasks.cancel_all()
        logger.info(f"Calendar reconciler for trainer {self.api.trainer_id} closed")

    # Connection status

    def _set_connection(self, provider: CalendarProvider, **changes: bool) -> None:
        if self._closed:
            return
        previous = self._connections[provider]
        self._connections = {
            **self._connections,
            provider: previous.model_copy(update=changes),
        }
        if previous.connected != self._connections[provider].connected:
            self._arm_auto_sync()

    async def refresh_status(self) -> dict[CalendarProvider, ConnectionState]:
        """Reload provider connection flags from the server."""
        try:
            status = await self.api.get_status()
        except CalendarApiError as e:
            logger.warning(f"Failed to load calendar status: {e}")
            return self.connections

        if self._closed:
            return self.connections

        for provider in CalendarProvider:
            self._set_connection(
                provider,
                connected=status.connections.for_provider(provider).connected,
                loading=self._tasks.get(_auth_task_name(provider)) is not None,
            )
        return self.connections

    def begin_authorization(self, provider: CalendarProvider) -> ScheduledTask:
        """Start the OAuth handshake for a provider in the background.

        The returned handle resolves to True once the server reports the
        provider connected, or False on failure or when the wait times out.
        """
        if self._closed:
            raise RuntimeError("Calendar reconciler is closed")

        existing = self._tasks.get(_auth_task_name(provider))
        if existing is not None:
            return existing

        self._set_connection(provider, loading=True)
        return self._tasks.spawn(_auth_task_name(provider), self._authorize(provider))

    async def _authorize(self, provider: CalendarProvider) -> bool:
        label = PROVIDER_LABELS[provider]
        try:
            return await self._run_authorization(provider, label)
        except Exception as e:
            logger.error(f"{label} authorization failed: {e}")
            self._notify("Error", f"Failed to connect {label}", NotificationLevel.ERROR)
            return False
        finally:
            self._set_connection(provider, loading=False)

    async def _run_authorization(self, provider: CalendarProvider, label: str) -> bool:
        try:
            auth_url = await self.api.get_auth_url(provider)
        except CalendarApiError as e:
            logger.error(f"Failed to start {label} authorization: {e}")
            self._notify("Error", f"Failed to connect {label}", NotificationLevel.ERROR)
            return False

        if self._closed:
            return False
        self.open_url(auth_url)
        self._notify("Redirecting", f"Complete the authorization in {label}")

        try:
            await asyncio.wait_for(self._poll_until_connected(provider), timeout=self.auth_timeout)
        except asyncio.TimeoutError:
            logger.info(f"{label} authorization timed out after {self.auth_timeout}s")
            return False

        if self._closed:
            return False
        self._set_connection(provider, connected=True, loading=False)
        self._notify("Success", f"{label} connected", NotificationLevel.SUCCESS)
        await self.sync(silent=True)
        return True

    async def _poll_until_connected(self, provider: CalendarProvider) -> None:
        while True:
            await asyncio.sleep(self.auth_poll_interval)
            try:
                status = await self.api.get_status()
            except CalendarApiError as e:
                logger.debug(f"Waiting for {provider.value} authorization: {e}")
                continue
            if status.connections.for_provider(provider).connected:
                return

    async def disconnect(self, provider: CalendarProvider) -> bool:
        """Remove a provider's tokens and its synced events."""
        label = PROVIDER_LABELS[provider]
        try:
            await self.api.disconnect(provider)
        except CalendarApiError as e:
            logger.error(f"Failed to disconnect {label}: {e}")
            self._notify("Error", f"Failed to disconnect {label}", NotificationLevel.ERROR)
            return False

        if self._closed:
            return False
        self._tasks.cancel(_auth_task_name(provider))
        self._events = drop_provider_events(self._events, EventSource(provider.value))
        self._set_connection(provider, connected=False, loading=False)
        self._notify("Disconnected", f"{label} disconnected", NotificationLevel.SUCCESS)
        return True

    # Auto sync

    def _arm_auto_sync(self) -> None:
        if self._closed:
            return
        self._tasks.cancel(AUTO_SYNC_TASK)
        if not any(state.connected for state in self._connections.values()):
            logger.debug("No calendar connected, auto sync disarmed")
            return
        self._tasks.every(AUTO_SYNC_TASK, self.auto_sync_interval, self._auto_sync)
        logger.debug(f"Auto sync armed every {self.auto_sync_interval}s")

    async def _auto_sync(self) -> None:
        await self.sync(silent=True)

    # Events

    async def sync(self, silent: bool = False) -> bool:
        """Replace the synced partition with the providers' current events.

        Manual events are never touched. On failure the event list stays as it
        was; interactive syncs notify once, silent ones only log.
        """
        if self._closed:
            return False
        try:
            response = await self.api.sync()
        except CalendarApiError as e:
            if silent:
                logger.warning(f"Background calendar sync failed: {e}")
            else:
                logger.error(f"Calendar sync failed: {e}")
                self._notify("Error", "Failed to synchronize calendars", NotificationLevel.ERROR)
            return False

        if self._closed:
            return False

        synced = events_from_sync(response.results)
        self._events = merge_synced_events(self._events, synced)
        self._last_synced_at = datetime.now(timezone.utc)

        for error in response.results.errors:
            logger.warning(f"Calendar sync reported: {error}")

        if not silent:
            message = "Calendars synchronized."
            for provider in CalendarProvider:
                provider_result = response.results.for_provider(provider)
                if provider_result is not None:
                    message += f" {PROVIDER_LABELS[provider]}: {provider_result.count} events."
            self._notify("Success", message, NotificationLevel.SUCCESS)
        return True

    async def load_local_events(self) -> bool:
        """Reload manual events from the server, keeping synced ones."""
        try:
            events = await self.api.list_events()
            students = await self.api.list_students()
        except CalendarApiError as e:
            logger.warning(f"Failed to load calendar events: {e}")
            return False

        if self._closed:
            return False

        student_names = {student.id: student.name for student in students}
        manual = [local_event_to_entry(event, student_names) for event in events]
        self._events = replace_manual_events(self._events, manual)
        return True

    async def create_event(self, draft: EventDraft) -> CalendarEntry | None:
        """Persist a manual event, then reload manual events from the server."""
        problem = draft.validation_error()
        if problem is not None:
            self._notify("Error", problem, NotificationLevel.ERROR)
            return None

        payload = CalendarEventCreate(
            title=draft.title,
            description=draft.description,
            type=draft.type,
            student_id=draft.student_id,
            start_time=draft.start_time,
            end_time=draft.end_time,
            location=draft.location,
            is_all_day=draft.is_all_day,
        )
        try:
            created = await self.api.create_event(payload)
        except CalendarApiError as e:
            logger.error(f"Failed to create calendar event: {e}")
            self._notify("Error", "Failed to create event", NotificationLevel.ERROR)
            return None

        if self._closed:
            return None
        await self.load_local_events()
        self._notify("Success", "Event created", NotificationLevel.SUCCESS)

        created_id = str(created.id)
        for entry in self._events:
            if entry.is_manual and entry.id == created_id:
                return entry
        return local_event_to_entry(created)

    def _notify(
        self, title: str, message: str, level: NotificationLevel = NotificationLevel.INFO
    ) -> None:
        if self._closed:
            return
        self.notifier.notify(Notification(title=title, message=message, level=level))
