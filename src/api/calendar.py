"""Calendar sync API endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from src.api.dependencies import get_current_trainer
from src.database import get_db
from src.models.trainer import Trainer
from src.schemas.calendar import (
    PROVIDER_LABELS,
    CalendarProvider,
    CalendarStatusResponse,
    DisconnectResponse,
    EventRangeResponse,
    ProviderEventCreate,
    ProviderEventCreated,
    ProviderEventsResponse,
    SyncResponse,
)
from src.services.calendar_providers import CalendarProviderError, ProviderNotConfiguredError
from src.services.calendar_sync import (
    CalendarSyncService,
    ProviderNotConnectedError,
    as_utc,
)

router = APIRouter(prefix="/api/calendar", tags=["calendar"])


@router.get("/status", response_model=CalendarStatusResponse)
def get_calendar_status(
    trainer: Trainer = Depends(get_current_trainer),
    db: Session = Depends(get_db),
) -> CalendarStatusResponse:
    """Report which external calendars the trainer has connected."""
    return CalendarSyncService(db).get_status(trainer.id)


@router.post("/sync", response_model=SyncResponse)
async def sync_calendars(
    trainer: Trainer = Depends(get_current_trainer),
    db: Session = Depends(get_db),
) -> SyncResponse:
    """Fetch events from every connected provider in one call."""
    return await CalendarSyncService(db).sync_all(trainer.id)


@router.get("/events/range", response_model=EventRangeResponse)
async def get_events_in_range(
    start_date: datetime | None = Query(default=None, alias="startDate"),
    end_date: datetime | None = Query(default=None, alias="endDate"),
    trainer: Trainer = Depends(get_current_trainer),
    db: Session = Depends(get_db),
) -> EventRangeResponse:
    """Synced events of all connected providers within a period."""
    if start_date is None or end_date is None:
        raise HTTPException(status_code=400, detail="startDate and endDate are required")
    if as_utc(end_date) <= as_utc(start_date):
        raise HTTPException(status_code=400, detail="endDate must be after startDate")

    return await CalendarSyncService(db).events_in_range(trainer.id, start_date, end_date)


@router.get("/{provider}/events", response_model=ProviderEventsResponse)
async def list_provider_events(
    provider: CalendarProvider,
    max_results: int = Query(default=50, alias="maxResults", ge=1, le=250),
    trainer: Trainer = Depends(get_current_trainer),
    db: Session = Depends(get_db),
) -> ProviderEventsResponse:
    """List provider-native events from one connected calendar."""
    try:
        events = await CalendarSyncService(db).list_provider_events(trainer.id, provider, max_results)
    except ProviderNotConnectedError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ProviderNotConfiguredError as e:
        raise HTTPException(status_code=500, detail=str(e))
    except CalendarProviderError as e:
        raise HTTPException(status_code=502, detail=f"Failed to fetch {PROVIDER_LABELS[provider]} events: {e}")

    return ProviderEventsResponse(events=events, provider=provider)


@router.post("/{provider}/events", response_model=ProviderEventCreated)
async def create_provider_event(
    provider: CalendarProvider,
    event: ProviderEventCreate,
    trainer: Trainer = Depends(get_current_trainer),
    db: Session = Depends(get_db),
) -> ProviderEventCreated:
    """Create an event directly on a connected provider calendar."""
    try:
        created = await CalendarSyncService(db).create_provider_event(trainer.id, provider, event)
    except ProviderNotConnectedError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ProviderNotConfiguredError as e:
        raise HTTPException(status_code=500, detail=str(e))
    except CalendarProviderError as e:
        raise HTTPException(status_code=502, detail=f"Failed to create {PROVIDER_LABELS[provider]} event: {e}")

    return ProviderEventCreated(event=created, provider=provider)


@router.delete("/{provider}/disconnect", response_model=DisconnectResponse)
def disconnect_calendar(
    provider: str,
    trainer: Trainer = Depends(get_current_trainer),
    db: Session = Depends(get_db),
) -> DisconnectResponse:
    """Forget a provider's tokens."""
    try:
        calendar_provider = CalendarProvider(provider)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid calendar provider")

    had_connection = CalendarSyncService(db).disconnect(trainer.id, calendar_provider)
    return DisconnectResponse(
        message=f"{PROVIDER_LABELS[calendar_provider]} disconnected",
        had_connection=had_connection,
    )
