"""Calendar event API endpoints for events created in the app."""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from src.api.dependencies import get_current_trainer
from src.database import get_db
from src.models.calendar_event import CalendarEvent as CalendarEventModel
from src.models.student import Student as StudentModel
from src.models.trainer import Trainer
from src.schemas.calendar import STUDENT_EVENT_TYPES, EventType
from src.schemas.calendar_event import CalendarEvent, CalendarEventCreate, CalendarEventUpdate
from src.services.calendar_sync import as_utc

router = APIRouter(prefix="/api/calendar/events", tags=["calendar-events"])

REQUIRED_FIELDS = ("title", "type", "start_time", "end_time", "is_all_day")


def _check_student(
    db: Session, trainer: Trainer, event_type: EventType, student_id: int | None
) -> None:
    """Training and consultation events must name one of the trainer's students."""
    if event_type in STUDENT_EVENT_TYPES and student_id is None:
        raise HTTPException(
            status_code=400, detail="Select a student for training and consultation events"
        )
    if student_id is None:
        return

    student = (
        db.query(StudentModel)
        .filter(StudentModel.id == student_id, StudentModel.trainer_id == trainer.id)
        .filter(StudentModel.deleted_at.is_(None))
        .first()
    )
    if not student:
        raise HTTPException(status_code=404, detail="Student not found")


def _get_event(db: Session, trainer: Trainer, event_id: int) -> CalendarEventModel:
    event = (
        db.query(CalendarEventModel)
        .filter(CalendarEventModel.id == event_id, CalendarEventModel.trainer_id == trainer.id)
        .filter(CalendarEventModel.deleted_at.is_(None))
        .first()
    )
    if not event:
        raise HTTPException(status_code=404, detail="Calendar event not found")
    return event


@router.post("", response_model=CalendarEvent, status_code=201)
def create_calendar_event(
    event: CalendarEventCreate,
    trainer: Trainer = Depends(get_current_trainer),
    db: Session = Depends(get_db),
) -> CalendarEventModel:
    """Create an event on the trainer's calendar."""
    _check_student(db, trainer, event.type, event.student_id)

    data = event.model_dump()
    data["type"] = event.type.value
    db_event = CalendarEventModel(trainer_id=trainer.id, **data)
    db.add(db_event)
    db.commit()
    db.refresh(db_event)
    return db_event


@router.get("", response_model=list[CalendarEvent])
def list_calendar_events(
    start: datetime | None = None,
    end: datetime | None = None,
    type: EventType | None = None,
    trainer: Trainer = Depends(get_current_trainer),
    db: Session = Depends(get_db),
) -> list[CalendarEventModel]:
    """List the trainer's events with optional period and type filters."""
    query = (
        db.query(CalendarEventModel)
        .filter(CalendarEventModel.trainer_id == trainer.id)
        .filter(CalendarEventModel.deleted_at.is_(None))
    )

    if start:
        query = query.filter(CalendarEventModel.end_time >= start)
    if end:
        query = query.filter(CalendarEventModel.start_time <= end)
    if type:
        query = query.filter(CalendarEventModel.type == type.value)

    return query.order_by(CalendarEventModel.start_time.asc()).all()


@router.get("/{event_id}", response_model=CalendarEvent)
def get_calendar_event(
    event_id: int,
    trainer: Trainer = Depends(get_current_trainer),
    db: Session = Depends(get_db),
) -> CalendarEventModel:
    """Get one of the trainer's events."""
    return _get_event(db, trainer, event_id)


@router.put("/{event_id}", response_model=CalendarEvent)
def update_calendar_event(
    event_id: int,
    update: CalendarEventUpdate,
    trainer: Trainer = Depends(get_current_trainer),
    db: Session = Depends(get_db),
) -> CalendarEventModel:
    """Update an event. Only fields present in the request change."""
    event = _get_event(db, trainer, event_id)
    changes = update.model_dump(exclude_unset=True)
    # Required columns can't be cleared
    for field in REQUIRED_FIELDS:
        if field in changes and changes[field] is None:
            del changes[field]

    event_type = changes.get("type") or EventType(event.type)
    student_id = changes["student_id"] if "student_id" in changes else event.student_id
    _check_student(db, trainer, event_type, student_id)

    start_time = as_utc(changes.get("start_time") or event.start_time)
    end_time = as_utc(changes.get("end_time") or event.end_time)
    if end_time <= start_time:
        raise HTTPException(status_code=400, detail="end_time must be after start_time")

    if "type" in changes:
        changes["type"] = changes["type"].value
    for field, value in changes.items():
        setattr(event, field, value)

    db.commit()
    db.refresh(event)
    return event


@router.delete("/{event_id}", status_code=204)
def delete_calendar_event(
    event_id: int,
    trainer: Trainer = Depends(get_current_trainer),
    db: Session = Depends(get_db),
) -> None:
    """Soft delete an event."""
    event = _get_event(db, trainer, event_id)
    event.soft_delete()
    db.commit()
