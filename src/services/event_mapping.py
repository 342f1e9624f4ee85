"""Mapping of provider-native and stored events into calendar entries."""

import logging
from collections.abc import Iterable, Mapping
from datetime import date, datetime, time
from typing import Any

import pytz

from src.schemas.calendar import (
    CalendarEntry,
    CalendarProvider,
    EventSource,
    EventType,
    SyncResults,
)

logger = logging.getLogger(__name__)

DEFAULT_TITLES = {
    CalendarProvider.GOOGLE: "Google Calendar event",
    CalendarProvider.OUTLOOK: "Outlook Calendar event",
}


def synced_event_id(provider: CalendarProvider, provider_event_id: str) -> str:
    """Build the merged-list id of a provider event."""
    return f"{provider.value}_{provider_event_id}"


def _parse_datetime(value: str) -> datetime:
    normalized = value.strip()
    if normalized.endswith("Z"):
        normalized = f"{normalized[:-1]}+00:00"
    return datetime.fromisoformat(normalized)


def _localize(value: datetime, timezone_name: str | None) -> datetime:
    """Attach the provider-declared timezone to an offset-less date-time."""
    if value.tzinfo is not None or not timezone_name:
        return value
    try:
        return pytz.timezone(timezone_name).localize(value)
    except pytz.UnknownTimeZoneError:
        logger.warning(f"Unknown provider timezone '{timezone_name}', keeping naive time")
        return value


def parse_event_boundary(payload: Mapping[str, Any] | None) -> datetime:
    """Parse a provider start/end object.

    Timed events carry ``dateTime``; all-day events carry ``date`` only and are
    normalized to midnight of that date.
    """
    if not payload:
        raise ValueError("Event is missing a start/end boundary")

    date_time = payload.get("dateTime")
    if isinstance(date_time, str) and date_time.strip():
        return _localize(_parse_datetime(date_time), payload.get("timeZone"))

    date_value = payload.get("date")
    if isinstance(date_value, str) and date_value.strip():
        return datetime.combine(date.fromisoformat(date_value.strip()), time.min)

    raise ValueError("Event boundary has neither dateTime nor date")


def google_event_to_entry(event: Mapping[str, Any]) -> CalendarEntry:
    """Map a Google Calendar v3 event to a calendar entry."""
    provider = CalendarProvider.GOOGLE
    return CalendarEntry(
        id=synced_event_id(provider, str(event["id"])),
        title=event.get("summary") or DEFAULT_TITLES[provider],
        start=parse_event_boundary(event.get("start")),
        end=parse_event_boundary(event.get("end")),
        description=event.get("description"),
        type=EventType.SYNCED,
        source=EventSource.GOOGLE,
        original_id=str(event["id"]),
    )


def outlook_event_to_entry(event: Mapping[str, Any]) -> CalendarEntry:
    """Map a Microsoft Graph event to a calendar entry."""
    provider = CalendarProvider.OUTLOOK
    body = event.get("body") or {}
    return CalendarEntry(
        id=synced_event_id(provider, str(event["id"])),
        title=event.get("subject") or DEFAULT_TITLES[provider],
        start=parse_event_boundary(event.get("start")),
        end=parse_event_boundary(event.get("end")),
        description=body.get("content"),
        type=EventType.SYNCED,
        source=EventSource.OUTLOOK,
        original_id=str(event["id"]),
    )


PROVIDER_MAPPERS = {
    CalendarProvider.GOOGLE: google_event_to_entry,
    CalendarProvider.OUTLOOK: outlook_event_to_entry,
}


def provider_events_to_entries(
    provider: CalendarProvider, events: Iterable[Mapping[str, Any]]
) -> list[CalendarEntry]:
    """Map a provider's native events, skipping malformed ones and duplicate ids."""
    mapper = PROVIDER_MAPPERS[provider]
    entries: list[CalendarEntry] = []
    seen: set[str] = set()

    for event in events:
        try:
            entry = mapper(event)
        except (KeyError, ValueError) as e:
            logger.warning(f"Skipping malformed {provider.value} event {event.get('id')}: {e}")
            continue
        if entry.id in seen:
            continue
        seen.add(entry.id)
        entries.append(entry)

    return entries


def events_from_sync(results: SyncResults) -> list[CalendarEntry]:
    """Map every provider present in a sync result, Google first."""
    entries: list[CalendarEntry] = []
    for provider in CalendarProvider:
        provider_result = results.for_provider(provider)
        if provider_result is None:
            continue
        entries.extend(provider_events_to_entries(provider, provider_result.events))
    return entries


def local_event_to_entry(
    event: Any, student_names: Mapping[int, str] | None = None
) -> CalendarEntry:
    """Map a stored calendar event (ORM row or response schema) to a manual entry."""
    student_names = student_names or {}
    student_id = event.student_id
    return CalendarEntry(
        id=str(event.id),
        title=event.title,
        start=event.start_time,
        end=event.end_time,
        description=event.description,
        type=EventType(event.type),
        student_id=student_id,
        student_name=student_names.get(student_id) if student_id is not None else None,
        source=EventSource.MANUAL,
    )
