"""Health check endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from src.database import get_db
from src.schemas.calendar import CalendarProvider
from src.services.calendar_providers import ProviderNotConfiguredError
from src.services.calendar_sync import get_provider_service

router = APIRouter(tags=["health"])


@router.get("/health")
def health_check() -> dict[str, str]:
    """Basic health check endpoint."""
    return {"status": "healthy"}


@router.get("/health/db")
def db_health_check(db: Session = Depends(get_db)) -> dict[str, str]:
    """Database health check endpoint."""
    try:
        db.execute(text("SELECT 1"))
        return {"status": "healthy", "database": "connected"}
    except Exception as e:
        return {"status": "unhealthy", "database": str(e)}


@router.get("/health/calendar")
def calendar_health_check() -> dict[str, bool]:
    """Report which calendar providers have OAuth credentials configured."""
    configured = {}
    for provider in CalendarProvider:
        try:
            get_provider_service(provider)
            configured[provider.value] = True
        except ProviderNotConfiguredError:
            configured[provider.value] = False
    return configured
