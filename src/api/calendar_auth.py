"""OAuth endpoints for connecting external calendars."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from src.api.dependencies import get_current_trainer
from src.database import get_db
from src.models.trainer import Trainer
from src.schemas.calendar import (
    PROVIDER_LABELS,
    AuthCallbackResponse,
    AuthUrlResponse,
    CalendarProvider,
)
from src.services.calendar_providers import CalendarProviderError, ProviderNotConfiguredError
from src.services.calendar_sync import CalendarSyncService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["calendar-auth"])


@router.get("/{provider}/calendar", response_model=AuthUrlResponse)
def start_calendar_authorization(
    provider: CalendarProvider,
    trainer: Trainer = Depends(get_current_trainer),
    db: Session = Depends(get_db),
) -> AuthUrlResponse:
    """Return the consent URL the trainer opens to connect a calendar."""
    try:
        auth_url = CalendarSyncService(db).start_authorization(trainer.id, provider)
    except ProviderNotConfiguredError as e:
        logger.error(f"Cannot start {provider.value} authorization: {e}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to start {PROVIDER_LABELS[provider]} authorization: {e}",
        )

    return AuthUrlResponse(
        auth_url=auth_url,
        message=f"Open the URL to authorize access to {PROVIDER_LABELS[provider]}",
    )


@router.get("/{provider}/callback", response_model=AuthCallbackResponse)
async def calendar_authorization_callback(
    provider: CalendarProvider,
    code: str | None = None,
    state: str | None = None,
    db: Session = Depends(get_db),
) -> AuthCallbackResponse:
    """Provider redirect target; stores tokens for the trainer who started the flow."""
    if not code or not state:
        raise HTTPException(status_code=400, detail="Authorization code not found")

    try:
        connection = await CalendarSyncService(db).complete_authorization(provider, code, state)
    except LookupError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ProviderNotConfiguredError as e:
        raise HTTPException(status_code=500, detail=str(e))
    except CalendarProviderError as e:
        logger.error(f"{provider.value} authorization callback failed: {e}")
        raise HTTPException(
            status_code=502, detail=f"{PROVIDER_LABELS[provider]} authorization failed: {e}"
        )

    return AuthCallbackResponse(
        message=f"{PROVIDER_LABELS[provider]} connected",
        provider=provider,
        user=connection.account_username,
    )
