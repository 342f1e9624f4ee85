"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import uvicorn
from alembic import command
from alembic.config import Config
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api import (
    calendar_auth_router,
    calendar_events_router,
    calendar_router,
    health_router,
    students_router,
    trainers_router,
)
from src.config import get_app_config, get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


def run_migrations() -> None:
    """Run alembic migrations on startup."""
    if settings.is_testing:
        logger.info("Skipping migrations in test mode")
        return

    try:
        alembic_cfg = Config("alembic.ini")
        command.upgrade(alembic_cfg, "head")
        logger.info("Database migrations completed successfully")
    except Exception as e:
        logger.error(f"Failed to run migrations: {e}")
        raise


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    run_migrations()
    yield


app = FastAPI(
    title="Trainer Calendar API",
    description="Personal trainer calendar with Google and Outlook synchronization",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers; calendar_router owns /api/calendar/events/range and must
# precede the /api/calendar/events/{event_id} routes
app.include_router(health_router)
app.include_router(trainers_router)
app.include_router(students_router)
app.include_router(calendar_router)
app.include_router(calendar_events_router)
app.include_router(calendar_auth_router)


@app.get("/")
def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "name": "Trainer Calendar API",
        "version": "0.1.0",
        "docs": "/docs",
    }


def run() -> None:
    """Serve the API on the host and port from config.yaml."""
    server = get_app_config().server
    uvicorn.run("src.main:app", host=server["host"], port=int(server["port"]))


if __name__ == "__main__":
    run()
