"""Merging of synced provider events with manual events."""

from collections.abc import Iterable, Sequence

from src.schemas.calendar import CalendarEntry, EventSource


def _dedupe(entries: Iterable[CalendarEntry]) -> list[CalendarEntry]:
    seen: set[str] = set()
    unique: list[CalendarEntry] = []
    for entry in entries:
        if entry.id in seen:
            continue
        seen.add(entry.id)
        unique.append(entry)
    return unique


def merge_synced_events(
    current: Sequence[CalendarEntry], synced: Iterable[CalendarEntry]
) -> list[CalendarEntry]:
    """Replace every non-manual entry with the freshly synced batch.

    Manual entries keep their relative order and come first. Synced entries
    that reuse an id already taken are dropped, first occurrence wins.
    """
    manual = [entry for entry in current if entry.is_manual]
    return _dedupe([*manual, *(entry for entry in synced if not entry.is_manual)])


def replace_manual_events(
    current: Sequence[CalendarEntry], manual: Iterable[CalendarEntry]
) -> list[CalendarEntry]:
    """Replace every manual entry, keeping the synced partition untouched."""
    synced = [entry for entry in current if not entry.is_manual]
    return _dedupe([*(entry for entry in manual if entry.is_manual), *synced])


def drop_provider_events(
    current: Sequence[CalendarEntry], source: EventSource
) -> list[CalendarEntry]:
    """Remove the entries synced from one provider."""
    return [entry for entry in current if entry.source is not source]
