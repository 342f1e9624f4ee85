"""Tests for the client-side calendar reconciler."""

import asyncio
import webbrowser
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import httpx
import pytest

from src.client.api import CalendarApiClient, CalendarApiError
from src.client.notifications import Notification, NotificationLevel
from src.client.reconciler import CalendarReconciler, ConnectionState, EventDraft
from src.schemas.calendar import (
    CalendarConnections,
    CalendarProvider,
    CalendarStatusResponse,
    DisconnectResponse,
    EventSource,
    EventType,
    ProviderEvents,
    ProviderStatus,
    SyncResponse,
    SyncResults,
)
from src.schemas.calendar_event import CalendarEvent
from src.schemas.student import Student

GOOGLE = CalendarProvider.GOOGLE
OUTLOOK = CalendarProvider.OUTLOOK

STANDUP = {
    "id": "abc",
    "summary": "Standup",
    "start": {"dateTime": "2025-01-20T09:00"},
    "end": {"dateTime": "2025-01-20T09:30"},
}
REVIEW = {
    "id": "def",
    "summary": "Review",
    "start": {"dateTime": "2025-01-21T15:00"},
    "end": {"dateTime": "2025-01-21T16:00"},
}


class RecordingNotifier:
    def __init__(self) -> None:
        self.notifications: list[Notification] = []

    def notify(self, notification: Notification) -> None:
        self.notifications.append(notification)

    def levels(self) -> list[NotificationLevel]:
        return [notification.level for notification in self.notifications]


def _status(google: bool = False, outlook: bool = False) -> CalendarStatusResponse:
    return CalendarStatusResponse(
        connections=CalendarConnections(
            google=ProviderStatus(connected=google),
            outlook=ProviderStatus(connected=outlook),
        )
    )


def _sync_response(google: list[dict] | None = None, outlook: list[dict] | None = None) -> SyncResponse:
    results = SyncResults()
    if google is not None:
        results.google = ProviderEvents(events=google, count=len(google))
    if outlook is not None:
        results.outlook = ProviderEvents(events=outlook, count=len(outlook))
    return SyncResponse(results=results)


def _stored_event(event_id: int, title: str, student_id: int | None = 1, **overrides) -> CalendarEvent:
    data = {
        "id": event_id,
        "trainer_id": 4,
        "title": title,
        "type": EventType.TRAINING,
        "student_id": student_id,
        "start_time": datetime(2025, 1, 20, 7, 0),
        "end_time": datetime(2025, 1, 20, 8, 0),
        "created_at": datetime(2025, 1, 1, tzinfo=timezone.utc),
        "updated_at": datetime(2025, 1, 1, tzinfo=timezone.utc),
    }
    data.update(overrides)
    return CalendarEvent(**data)


@pytest.fixture
def api() -> AsyncMock:
    api = AsyncMock(spec=CalendarApiClient)
    api.trainer_id = 4
    api.get_status.return_value = _status()
    api.get_auth_url.return_value = "https://accounts.example.com/auth"
    api.list_events.return_value = [_stored_event(1, "Leg day")]
    api.list_students.return_value = [
        Student(id=1, trainer_id=4, name="Marina", created_at=datetime(2025, 1, 1, tzinfo=timezone.utc))
    ]
    api.sync.return_value = _sync_response(google=[STANDUP])
    api.disconnect.return_value = DisconnectResponse(message="disconnected", had_connection=True)
    return api


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def opened() -> list[str]:
    return []


@pytest.fixture
def make_reconciler(api, notifier, opened):
    def factory(**overrides) -> CalendarReconciler:
        options = {
            "auth_poll_interval": 0.01,
            "auth_timeout": 0.2,
            "auto_sync_interval": 60.0,
        }
        options.update(overrides)
        return CalendarReconciler(api, notifier=notifier, open_url=opened.append, **options)

    return factory


class TestSyncMerge:
    """Tests for merging synced provider events with manual events."""

    @pytest.mark.asyncio
    async def test_sync_appends_synced_after_manual(self, make_reconciler, notifier):
        async with make_reconciler() as reconciler:
            assert [event.id for event in reconciler.events] == ["1"]

            assert await reconciler.sync() is True

            events = reconciler.events
            assert [event.id for event in events] == ["1", "google_abc"]
            manual, synced = events
            assert manual.source is EventSource.MANUAL
            assert manual.type is EventType.TRAINING
            assert manual.student_name == "Marina"
            assert synced.title == "Standup"
            assert synced.type is EventType.SYNCED
            assert synced.source is EventSource.GOOGLE
            assert synced.start == datetime(2025, 1, 20, 9, 0)
            assert synced.end == datetime(2025, 1, 20, 9, 30)

        assert notifier.levels() == [NotificationLevel.SUCCESS]
        assert "Google Calendar: 1 events." in notifier.notifications[0].message

    @pytest.mark.asyncio
    async def test_manual_events_unchanged_by_sync(self, make_reconciler, api):
        api.list_events.return_value = [
            _stored_event(1, "Leg day"),
            _stored_event(2, "Planning", student_id=None, type=EventType.PERSONAL),
        ]
        api.sync.return_value = _sync_response(google=[STANDUP], outlook=[REVIEW])

        async with make_reconciler() as reconciler:
            before = [event for event in reconciler.events if event.is_manual]
            await reconciler.sync(silent=True)
            after = [event for event in reconciler.events if event.is_manual]

            assert after == before
            assert [event.id for event in reconciler.events if not event.is_manual] == [
                "google_abc",
                "outlook_def",
            ]

    @pytest.mark.asyncio
    async def test_repeated_sync_is_idempotent(self, make_reconciler):
        async with make_reconciler() as reconciler:
            await reconciler.sync(silent=True)
            first = reconciler.events
            await reconciler.sync(silent=True)

            assert reconciler.events == first

    @pytest.mark.asyncio
    async def test_synced_ids_tagged_with_source(self, make_reconciler, api):
        api.sync.return_value = _sync_response(google=[STANDUP], outlook=[REVIEW])

        async with make_reconciler() as reconciler:
            await reconciler.sync(silent=True)

            for event in reconciler.events:
                if not event.is_manual:
                    assert event.id.startswith(f"{event.source.value}_")

    @pytest.mark.asyncio
    async def test_stale_synced_event_removed(self, make_reconciler, api):
        async with make_reconciler() as reconciler:
            api.sync.return_value = _sync_response(google=[STANDUP])
            await reconciler.sync(silent=True)
            api.sync.return_value = _sync_response(google=[REVIEW])
            await reconciler.sync(silent=True)

            assert [event.id for event in reconciler.events] == ["1", "google_def"]

    @pytest.mark.asyncio
    async def test_silent_failure_only_logs(self, make_reconciler, api, notifier):
        async with make_reconciler() as reconciler:
            await reconciler.sync(silent=True)
            notifier.notifications.clear()
            before = reconciler.events
            api.sync.side_effect = CalendarApiError("sync failed", status_code=500)

            assert await reconciler.sync(silent=True) is False
            assert reconciler.events == before
            assert notifier.notifications == []

            assert await reconciler.sync(silent=False) is False
            assert reconciler.events == before
            assert notifier.levels() == [NotificationLevel.ERROR]

    @pytest.mark.asyncio
    async def test_snapshot(self, make_reconciler):
        async with make_reconciler() as reconciler:
            await reconciler.sync(silent=True)
            snapshot = reconciler.snapshot()

        assert len(snapshot.events) == 2
        assert snapshot.last_synced_at is not None
        assert snapshot.connections[GOOGLE] == ConnectionState()


class TestConnectionStatus:
    """Tests for status refresh and provider authorization."""

    @pytest.mark.asyncio
    async def test_refresh_status(self, make_reconciler, api):
        api.get_status.return_value = _status(google=True)

        async with make_reconciler() as reconciler:
            assert reconciler.connections[GOOGLE] == ConnectionState(connected=True)
            assert reconciler.connections[OUTLOOK] == ConnectionState()

    @pytest.mark.asyncio
    async def test_refresh_status_failure_keeps_state(self, make_reconciler, api):
        api.get_status.return_value = _status(google=True)

        async with make_reconciler() as reconciler:
            api.get_status.side_effect = CalendarApiError("down")
            connections = await reconciler.refresh_status()

            assert connections[GOOGLE].connected is True

    @pytest.mark.asyncio
    async def test_authorization_success(self, make_reconciler, api, notifier, opened):
        polls = []

        async def status():
            polls.append(True)
            return _status(google=len(polls) > 3)

        async with make_reconciler() as reconciler:
            api.get_status.side_effect = status
            handle = reconciler.begin_authorization(GOOGLE)
            assert reconciler.connections[GOOGLE] == ConnectionState(loading=True)

            assert await handle is True

            assert reconciler.connections[GOOGLE] == ConnectionState(connected=True)
            assert opened == ["https://accounts.example.com/auth"]
            api.sync.assert_awaited_once()
            assert [event.id for event in reconciler.events] == ["1", "google_abc"]
            assert reconciler.auto_sync_armed

        messages = [notification.message for notification in notifier.notifications]
        assert "Google Calendar connected" in messages

    @pytest.mark.asyncio
    async def test_authorization_ceiling(self, make_reconciler, api, notifier):
        loop = asyncio.get_running_loop()

        async with make_reconciler(auth_timeout=0.2) as reconciler:
            started = loop.time()
            handle = reconciler.begin_authorization(GOOGLE)

            await asyncio.sleep(0.1)
            assert reconciler.connections[GOOGLE].loading is True

            assert await handle is False
            assert loop.time() - started >= 0.2
            assert reconciler.connections[GOOGLE] == ConnectionState()
            api.sync.assert_not_awaited()

        assert NotificationLevel.ERROR not in notifier.levels()

    @pytest.mark.asyncio
    async def test_poll_failures_swallowed(self, make_reconciler, api):
        polls = []

        async def status():
            polls.append(True)
            if len(polls) <= 3:
                raise CalendarApiError("gateway timeout", status_code=504)
            return _status(outlook=True)

        async with make_reconciler() as reconciler:
            api.get_status.side_effect = status

            assert await reconciler.begin_authorization(OUTLOOK) is True
            assert reconciler.connections[OUTLOOK].connected is True

    @pytest.mark.asyncio
    async def test_providers_authorize_independently(self, make_reconciler, api):
        polls = []

        async def status():
            polls.append(True)
            return _status(google=len(polls) > 2)

        async with make_reconciler(auth_timeout=0.15) as reconciler:
            api.get_status.side_effect = status
            google_handle = reconciler.begin_authorization(GOOGLE)
            outlook_handle = reconciler.begin_authorization(OUTLOOK)

            results = await asyncio.gather(google_handle, outlook_handle)

            assert results == [True, False]
            assert reconciler.connections[GOOGLE] == ConnectionState(connected=True)
            assert reconciler.connections[OUTLOOK] == ConnectionState()

    @pytest.mark.asyncio
    async def test_second_authorization_reuses_task(self, make_reconciler):
        async with make_reconciler() as reconciler:
            first = reconciler.begin_authorization(GOOGLE)
            second = reconciler.begin_authorization(GOOGLE)

            assert first is second

    @pytest.mark.asyncio
    async def test_auth_url_failure(self, make_reconciler, api, notifier, opened):
        api.get_auth_url.side_effect = CalendarApiError("not configured", status_code=500)

        async with make_reconciler() as reconciler:
            assert await reconciler.begin_authorization(GOOGLE) is False
            assert reconciler.connections[GOOGLE] == ConnectionState()

        assert opened == []
        assert notifier.levels() == [NotificationLevel.ERROR]

    @pytest.mark.asyncio
    async def test_open_url_failure_resets_loading(self, api, notifier):
        def broken_browser(url: str) -> None:
            raise webbrowser.Error("no runnable browser")

        reconciler = CalendarReconciler(
            api, notifier=notifier, open_url=broken_browser, auth_poll_interval=0.01, auth_timeout=0.2
        )
        async with reconciler:
            assert await reconciler.begin_authorization(GOOGLE) is False
            assert reconciler.connections[GOOGLE] == ConnectionState()

        assert notifier.levels() == [NotificationLevel.ERROR]

    @pytest.mark.asyncio
    async def test_disconnect_drops_provider_events(self, make_reconciler, api):
        api.get_status.return_value = _status(google=True)
        api.sync.return_value = _sync_response(google=[STANDUP])

        async with make_reconciler() as reconciler:
            await reconciler.sync(silent=True)
            assert reconciler.auto_sync_armed

            assert await reconciler.disconnect(GOOGLE) is True

            assert [event.id for event in reconciler.events] == ["1"]
            assert reconciler.connections[GOOGLE].connected is False
            assert not reconciler.auto_sync_armed
            api.disconnect.assert_awaited_once_with(GOOGLE)


class TestAutoSync:
    """Tests for the periodic background sync."""

    @pytest.mark.asyncio
    async def test_auto_sync_runs_silently_while_connected(self, make_reconciler, api, notifier):
        api.get_status.return_value = _status(google=True)

        async with make_reconciler(auto_sync_interval=0.03) as reconciler:
            await asyncio.sleep(0.1)

            assert api.sync.await_count >= 2
            assert [event.id for event in reconciler.events] == ["1", "google_abc"]

        assert notifier.notifications == []

    @pytest.mark.asyncio
    async def test_no_auto_sync_without_connection(self, make_reconciler, api):
        async with make_reconciler(auto_sync_interval=0.02) as reconciler:
            await asyncio.sleep(0.06)

            assert not reconciler.auto_sync_armed
            api.sync.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_single_timer_across_status_changes(self, make_reconciler, api):
        async with make_reconciler() as reconciler:
            for google, outlook in [(True, False), (True, True), (False, True), (False, False), (True, False)]:
                api.get_status.return_value = _status(google=google, outlook=outlook)
                await reconciler.refresh_status()
                await asyncio.sleep(0)
                await asyncio.sleep(0)

                timers = [
                    task
                    for task in asyncio.all_tasks()
                    if task.get_name() == "auto-sync" and not task.done()
                ]
                expected = 1 if google or outlook else 0
                assert len(timers) == expected
                assert reconciler.auto_sync_armed is bool(expected)

    @pytest.mark.asyncio
    async def test_failed_auto_sync_keeps_events(self, make_reconciler, api):
        api.get_status.return_value = _status(google=True)

        async with make_reconciler(auto_sync_interval=0.02) as reconciler:
            await reconciler.sync(silent=True)
            before = reconciler.events
            api.sync.side_effect = CalendarApiError("down")
            await asyncio.sleep(0.07)

            assert reconciler.events == before
            assert reconciler.auto_sync_armed


class TestTeardown:
    """Tests for cancellation on close."""

    @pytest.mark.asyncio
    async def test_close_cancels_all_tasks(self, make_reconciler, api):
        api.get_status.return_value = _status(outlook=True)
        reconciler = make_reconciler(auto_sync_interval=0.02, auth_timeout=10.0)
        await reconciler.start()
        api.get_status.return_value = _status(outlook=True)
        handle = reconciler.begin_authorization(GOOGLE)
        await asyncio.sleep(0.01)

        await reconciler.close()
        sync_calls = api.sync.await_count
        await asyncio.sleep(0.06)

        assert handle.done()
        assert await handle is None
        assert api.sync.await_count == sync_calls
        assert not reconciler.auto_sync_armed
        assert [
            task for task in asyncio.all_tasks() if task.get_name().startswith(("auto-sync", "authorize"))
        ] == []

    @pytest.mark.asyncio
    async def test_callback_after_close_is_noop(self, make_reconciler, api, notifier):
        gate = asyncio.Event()

        async def slow_sync():
            await gate.wait()
            return _sync_response(google=[STANDUP])

        reconciler = make_reconciler()
        await reconciler.start()
        before = reconciler.events
        api.sync.side_effect = slow_sync

        pending = asyncio.create_task(reconciler.sync())
        await asyncio.sleep(0)
        await reconciler.close()
        gate.set()

        assert await pending is False
        assert reconciler.events == before
        assert notifier.notifications == []

    @pytest.mark.asyncio
    async def test_closed_reconciler_rejects_new_work(self, make_reconciler):
        reconciler = make_reconciler()
        await reconciler.close()

        with pytest.raises(RuntimeError):
            reconciler.begin_authorization(GOOGLE)
        with pytest.raises(RuntimeError):
            await reconciler.start()
        assert await reconciler.sync() is False


class TestLocalEvents:
    """Tests for manual events created in the app."""

    @pytest.mark.asyncio
    async def test_load_local_events_keeps_synced(self, make_reconciler, api):
        async with make_reconciler() as reconciler:
            await reconciler.sync(silent=True)
            api.list_events.return_value = [_stored_event(1, "Leg day"), _stored_event(5, "Cardio")]

            assert await reconciler.load_local_events() is True

            assert [event.id for event in reconciler.events] == ["1", "5", "google_abc"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "draft",
        [
            EventDraft(start_time=datetime(2025, 1, 20, 9), end_time=datetime(2025, 1, 20, 10)),
            EventDraft(title="Session", start_time=datetime(2025, 1, 20, 9)),
            EventDraft(
                title="Session",
                student_id=1,
                start_time=datetime(2025, 1, 20, 10),
                end_time=datetime(2025, 1, 20, 9),
            ),
            EventDraft(
                title="Session",
                type=EventType.CONSULTATION,
                start_time=datetime(2025, 1, 20, 9),
                end_time=datetime(2025, 1, 20, 10),
            ),
        ],
    )
    async def test_invalid_draft_rejected(self, make_reconciler, api, notifier, draft):
        reconciler = make_reconciler()

        assert await reconciler.create_event(draft) is None

        api.create_event.assert_not_awaited()
        assert notifier.levels() == [NotificationLevel.ERROR]
        await reconciler.close()

    @pytest.mark.asyncio
    async def test_create_event_waits_for_server(self, make_reconciler, api, notifier):
        created = _stored_event(9, "Session", start_time=datetime(2025, 1, 22, 9), end_time=datetime(2025, 1, 22, 10))
        api.create_event.return_value = created

        async with make_reconciler() as reconciler:
            api.list_events.return_value = [_stored_event(1, "Leg day"), created]
            entry = await reconciler.create_event(
                EventDraft(
                    title="Session",
                    student_id=1,
                    start_time=datetime(2025, 1, 22, 9),
                    end_time=datetime(2025, 1, 22, 10),
                )
            )

            assert entry is not None
            assert entry.id == "9"
            assert entry.student_name == "Marina"
            assert [event.id for event in reconciler.events] == ["1", "9"]
            payload = api.create_event.await_args.args[0]
            assert payload.student_id == 1
            assert api.list_events.await_count == 2

        assert notifier.levels() == [NotificationLevel.SUCCESS]

    @pytest.mark.asyncio
    async def test_create_event_server_failure(self, make_reconciler, api, notifier):
        api.create_event.side_effect = CalendarApiError("student not found", status_code=404)

        async with make_reconciler() as reconciler:
            entry = await reconciler.create_event(
                EventDraft(
                    title="Planning",
                    type=EventType.PERSONAL,
                    start_time=datetime(2025, 1, 22, 9),
                    end_time=datetime(2025, 1, 22, 10),
                )
            )

            assert entry is None
            assert [event.id for event in reconciler.events] == ["1"]
            assert api.list_events.await_count == 1

        assert notifier.levels() == [NotificationLevel.ERROR]


class TestUnreadableResponses:
    """Tests for a server answering 200 with a body that is not the API's JSON."""

    @staticmethod
    def _html_client(auth_url: str | None = None) -> CalendarApiClient:
        def handler(request: httpx.Request) -> httpx.Response:
            if auth_url is not None and request.url.path.startswith("/api/auth/"):
                return httpx.Response(200, json={"authUrl": auth_url})
            return httpx.Response(
                200, text="<html>proxy login</html>", headers={"content-type": "text/html"}
            )

        return CalendarApiClient(
            trainer_id=4, base_url="http://testserver", transport=httpx.MockTransport(handler)
        )

    @pytest.mark.asyncio
    async def test_start_and_silent_sync_do_not_raise(self, notifier):
        async with self._html_client() as client:
            async with CalendarReconciler(client, notifier=notifier, auto_sync_interval=60.0) as reconciler:
                assert await reconciler.sync(silent=True) is False
                assert reconciler.events == ()
                assert reconciler.connections[GOOGLE] == ConnectionState()

        assert notifier.notifications == []

    @pytest.mark.asyncio
    async def test_interactive_sync_notifies_once(self, notifier):
        async with self._html_client() as client:
            async with CalendarReconciler(client, notifier=notifier, auto_sync_interval=60.0) as reconciler:
                assert await reconciler.sync() is False

        assert notifier.levels() == [NotificationLevel.ERROR]

    @pytest.mark.asyncio
    async def test_authorization_times_out_on_unreadable_status(self, notifier, opened):
        async with self._html_client(auth_url="https://accounts.example.com/auth") as client:
            reconciler = CalendarReconciler(
                client,
                notifier=notifier,
                open_url=opened.append,
                auth_poll_interval=0.01,
                auth_timeout=0.2,
                auto_sync_interval=60.0,
            )
            async with reconciler:
                assert await reconciler.begin_authorization(GOOGLE) is False
                assert reconciler.connections[GOOGLE] == ConnectionState()

        assert opened == ["https://accounts.example.com/auth"]
        assert NotificationLevel.ERROR not in notifier.levels()
