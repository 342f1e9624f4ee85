"""Tests for the calendar API client."""

import json
from datetime import datetime, timezone

import httpx
import pytest

from src.client.api import (
    CalendarApiClient,
    CalendarApiError,
    ProviderNotConnectedError,
    SessionExpiredError,
)
from src.schemas.calendar import CalendarProvider, EventType
from src.schemas.calendar_event import CalendarEventCreate


def _client(handler, **kwargs) -> CalendarApiClient:
    return CalendarApiClient(
        trainer_id=4,
        base_url="http://testserver",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_get_status_sends_trainer_header():
    """Test that requests carry the trainer session header."""
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["trainer"] = request.headers["X-Trainer-Id"]
        return httpx.Response(
            200,
            json={"success": True, "connections": {"google": {"connected": True}, "outlook": {}}},
        )

    async with _client(handler) as client:
        status = await client.get_status()

    assert seen == {"path": "/api/calendar/status", "trainer": "4"}
    assert status.connections.google.connected is True
    assert status.connections.outlook.connected is False


@pytest.mark.asyncio
async def test_get_auth_url():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/auth/outlook/calendar"
        return httpx.Response(200, json={"authUrl": "https://login.example.com/authorize"})

    async with _client(handler) as client:
        url = await client.get_auth_url(CalendarProvider.OUTLOOK)

    assert url == "https://login.example.com/authorize"


@pytest.mark.asyncio
async def test_sync_parses_results():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        return httpx.Response(
            200,
            json={
                "results": {"google": {"events": [{"id": "abc"}], "count": 1}, "errors": []},
                "connectedServices": {"google": True, "outlook": False},
            },
        )

    async with _client(handler) as client:
        response = await client.sync()

    assert response.results.google.count == 1
    assert response.results.outlook is None
    assert response.connected_services.google is True


@pytest.mark.asyncio
async def test_fetch_provider_events():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/calendar/google/events"
        assert request.url.params["maxResults"] == "10"
        return httpx.Response(200, json={"events": [{"id": "abc"}], "provider": "google"})

    async with _client(handler) as client:
        events = await client.fetch_provider_events(CalendarProvider.GOOGLE, max_results=10)

    assert events == [{"id": "abc"}]


@pytest.mark.asyncio
async def test_fetch_provider_events_not_connected():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(409, json={"detail": "Google Calendar is not connected"})

    async with _client(handler) as client:
        with pytest.raises(ProviderNotConnectedError) as exc_info:
            await client.fetch_provider_events(CalendarProvider.GOOGLE)

    assert exc_info.value.provider is CalendarProvider.GOOGLE
    assert str(exc_info.value) == "Google Calendar is not connected"


@pytest.mark.asyncio
async def test_server_error_raises_api_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, json={"detail": "Failed to fetch"})

    async with _client(handler) as client:
        with pytest.raises(CalendarApiError) as exc_info:
            await client.fetch_provider_events(CalendarProvider.OUTLOOK)

    assert exc_info.value.status_code == 502
    assert not isinstance(exc_info.value, ProviderNotConnectedError)


@pytest.mark.asyncio
async def test_transport_error_raises_api_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused")

    async with _client(handler) as client:
        with pytest.raises(CalendarApiError) as exc_info:
            await client.sync()

    assert exc_info.value.status_code is None


@pytest.mark.asyncio
async def test_session_expired_invokes_hook():
    """Test that a 401 triggers the login redirect hook."""
    expired = []

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"detail": "Not authenticated"})

    async with _client(handler, on_session_expired=lambda: expired.append(True)) as client:
        with pytest.raises(SessionExpiredError):
            await client.get_status()

    assert expired == [True]


@pytest.mark.asyncio
async def test_create_event_posts_camel_case():
    sent = {}

    def handler(request: httpx.Request) -> httpx.Response:
        sent.update(json.loads(request.content))
        return httpx.Response(
            201,
            json={
                "id": 12,
                "trainerId": 4,
                "title": "Session",
                "type": "training",
                "studentId": 3,
                "startTime": "2025-01-20T09:00:00Z",
                "endTime": "2025-01-20T10:00:00Z",
                "isAllDay": False,
                "createdAt": "2025-01-19T12:00:00Z",
                "updatedAt": "2025-01-19T12:00:00Z",
            },
        )

    payload = CalendarEventCreate(
        title="Session",
        type=EventType.TRAINING,
        student_id=3,
        start_time=datetime(2025, 1, 20, 9, 0, tzinfo=timezone.utc),
        end_time=datetime(2025, 1, 20, 10, 0, tzinfo=timezone.utc),
    )
    async with _client(handler) as client:
        created = await client.create_event(payload)

    assert sent["studentId"] == 3
    assert "student_id" not in sent
    assert created.id == 12


@pytest.mark.asyncio
async def test_list_students_and_disconnect():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/students":
            return httpx.Response(
                200,
                json=[{"id": 3, "trainer_id": 4, "name": "Marina", "created_at": "2025-01-01T00:00:00Z"}],
            )
        assert request.method == "DELETE"
        return httpx.Response(200, json={"message": "Google Calendar disconnected", "hadConnection": True})

    async with _client(handler) as client:
        students = await client.list_students()
        disconnected = await client.disconnect(CalendarProvider.GOOGLE)

    assert students[0].name == "Marina"
    assert disconnected.had_connection is True


def _html(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, text="<html>proxy login</html>", headers={"content-type": "text/html"})


@pytest.mark.asyncio
async def test_non_json_body_raises_api_error():
    async with _client(_html) as client:
        with pytest.raises(CalendarApiError) as exc_info:
            await client.sync()

    assert exc_info.value.status_code == 200


@pytest.mark.asyncio
async def test_schema_invalid_body_raises_api_error():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/calendar/events":
            return httpx.Response(200, json={"events": "not a list"})
        return httpx.Response(200, json={"authUrl": None})

    async with _client(handler) as client:
        with pytest.raises(CalendarApiError):
            await client.list_events()
        with pytest.raises(CalendarApiError):
            await client.get_auth_url(CalendarProvider.GOOGLE)
