"""API routers."""

from src.api.calendar import router as calendar_router
from src.api.calendar_auth import router as calendar_auth_router
from src.api.calendar_events import router as calendar_events_router
from src.api.health import router as health_router
from src.api.students import router as students_router
from src.api.trainers import router as trainers_router

__all__ = [
    "calendar_auth_router",
    "calendar_events_router",
    "calendar_router",
    "health_router",
    "students_router",
    "trainers_router",
]
