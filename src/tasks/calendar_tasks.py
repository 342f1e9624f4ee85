"""Celery tasks for calendar provider token maintenance."""

import asyncio
import logging
from datetime import datetime, timedelta, timezone

from src.celery_app import app
from src.database import SessionLocal
from src.models.calendar_connection import CalendarConnection
from src.services.calendar_providers import CalendarProviderError, ProviderNotConfiguredError
from src.services.calendar_sync import CalendarSyncService

logger = logging.getLogger(__name__)

# Tokens expiring within this window are refreshed ahead of time
REFRESH_WINDOW = timedelta(minutes=15)


def run_async(coro):
    """Run an async coroutine in a sync context."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@app.task(name="calendar_tasks.refresh_expiring_tokens")
def refresh_expiring_tokens() -> dict:
    """Refresh provider access tokens that are about to expire.

    Connections without a refresh token are skipped; a failing connection is
    logged and counted without aborting the rest of the batch.
    """
    db = SessionLocal()
    try:
        cutoff = datetime.now(timezone.utc) + REFRESH_WINDOW
        connections = (
            db.query(CalendarConnection)
            .filter(CalendarConnection.access_token.is_not(None))
            .filter(CalendarConnection.refresh_token.is_not(None))
            .filter(CalendarConnection.expires_at.is_not(None))
            .filter(CalendarConnection.expires_at <= cutoff)
            .all()
        )

        service = CalendarSyncService(db)
        refreshed = 0
        failed = 0
        for connection in connections:
            try:
                run_async(service.refresh_connection(connection))
                refreshed += 1
            except (CalendarProviderError, ProviderNotConfiguredError) as e:
                logger.error(f"Failed to refresh {connection.provider} token for trainer {connection.trainer_id}: {e}")
                failed += 1

        logger.info(f"Refreshed {refreshed} calendar tokens ({failed} failed)")
        return {"refreshed": refreshed, "failed": failed}

    finally:
        db.close()
