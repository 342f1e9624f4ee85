"""Google Calendar integration service."""

import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from src.config import get_app_config, get_settings
from src.schemas.calendar import CalendarProvider, ProviderEventCreate
from src.services.calendar_providers import (
    CalendarProviderError,
    CalendarProviderService,
    ProviderNotConfiguredError,
    ProviderTokens,
    to_rfc3339,
)

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_EVENTS_URL = "https://www.googleapis.com/calendar/v3/calendars/primary/events"
GOOGLE_SCOPES = [
    "https://www.googleapis.com/auth/calendar",
    "https://www.googleapis.com/auth/calendar.events",
]


class GoogleCalendarService(CalendarProviderService):
    """Service for the Google Calendar v3 REST API."""

    provider = CalendarProvider.GOOGLE

    def generate_auth_url(self, state: str) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(GOOGLE_SCOPES),
            "access_type": "offline",
            "prompt": "consent",
            "state": state,
        }
        return str(httpx.URL(GOOGLE_AUTH_URL, params=params))

    async def _token_request(self, data: dict[str, str], action: str) -> ProviderTokens:
        payload = {"client_id": self.client_id, "client_secret": self.client_secret, **data}
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    GOOGLE_TOKEN_URL, data=payload, headers={"Accept": "application/json"}
                )
        except httpx.HTTPError as e:
            raise CalendarProviderError(self.provider, f"Google token request failed: {e}") from e

        body = self._json(response, action)
        try:
            return ProviderTokens.from_token_response(body)
        except ValueError as e:
            raise CalendarProviderError(self.provider, f"Google token response invalid: {e}") from e

    async def exchange_code(self, code: str) -> ProviderTokens:
        return await self._token_request(
            {
                "code": code,
                "grant_type": "authorization_code",
                "redirect_uri": self.redirect_uri,
            },
            "exchange authorization code",
        )

    async def refresh_tokens(self, refresh_token: str) -> ProviderTokens:
        tokens = await self._token_request(
            {"refresh_token": refresh_token, "grant_type": "refresh_token"},
            "refresh access token",
        )
        # Google only returns a refresh token on the first consent
        if tokens.refresh_token is None:
            tokens.refresh_token = refresh_token
        return tokens

    async def _get_events(self, access_token: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    GOOGLE_EVENTS_URL,
                    params={"singleEvents": "true", "orderBy": "startTime", **params},
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.HTTPError as e:
            logger.error(f"Failed to fetch Google Calendar events: {e}")
            raise CalendarProviderError(self.provider, f"Google Calendar request failed: {e}") from e

        return self._event_list(self._json(response, "list events"), "items", "list events")

    async def list_events(self, access_token: str, max_results: int = 50) -> list[dict[str, Any]]:
        """List upcoming events starting now."""
        events = await self._get_events(
            access_token,
            {"timeMin": to_rfc3339(datetime.now(timezone.utc)), "maxResults": max_results},
        )
        logger.info(f"Fetched {len(events)} Google Calendar events")
        return events

    async def get_events_in_range(
        self, access_token: str, start: datetime, end: datetime
    ) -> list[dict[str, Any]]:
        return await self._get_events(
            access_token, {"timeMin": to_rfc3339(start), "timeMax": to_rfc3339(end)}
        )

    async def create_event(self, access_token: str, event: ProviderEventCreate) -> dict[str, Any]:
        tz_name = get_app_config().calendar["timezone"]
        body: dict[str, Any] = {
            "summary": event.title,
            "description": event.description,
            "start": {"dateTime": to_rfc3339(event.start_time), "timeZone": tz_name},
            "end": {"dateTime": to_rfc3339(event.end_time), "timeZone": tz_name},
            "attendees": [{"email": email} for email in event.attendees],
            "location": event.location,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    GOOGLE_EVENTS_URL,
                    json={k: v for k, v in body.items() if v is not None},
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.HTTPError as e:
            logger.error(f"Failed to create Google Calendar event: {e}")
            raise CalendarProviderError(self.provider, f"Google Calendar request failed: {e}") from e

        return self._json(response, "create event")


def create_google_calendar_service() -> GoogleCalendarService:
    """Build a Google Calendar service from settings."""
    settings = get_settings()
    if not settings.google_client_id or not settings.google_client_secret:
        raise ProviderNotConfiguredError("GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET must be set")
    return GoogleCalendarService(
        settings.google_client_id,
        settings.google_client_secret,
        settings.google_redirect_uri,
    )
