"""Outlook Calendar integration service via Microsoft Graph."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx

from src.config import get_settings
from src.schemas.calendar import CalendarProvider, ProviderEventCreate
from src.services.calendar_providers import (
    CalendarProviderError,
    CalendarProviderService,
    ProviderNotConfiguredError,
    ProviderTokens,
)

logger = logging.getLogger(__name__)

GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"
OUTLOOK_SCOPES = [
    "offline_access",
    "https://graph.microsoft.com/Calendars.Read",
    "https://graph.microsoft.com/Calendars.ReadWrite",
    "https://graph.microsoft.com/User.Read",
]
EVENT_FIELDS = "id,subject,body,start,end,attendees,location"

# Upcoming-event listing looks this far back and ahead
LIST_WINDOW = timedelta(days=182)


def _graph_datetime(value: datetime) -> str:
    """Graph filters compare against offset-less UTC date-times."""
    normalized = value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
    return normalized.astimezone(timezone.utc).replace(tzinfo=None).isoformat()


class OutlookCalendarService(CalendarProviderService):
    """Service for Outlook calendars through the Microsoft identity platform and Graph."""

    provider = CalendarProvider.OUTLOOK

    def __init__(self, client_id: str, client_secret: str, tenant_id: str, redirect_uri: str) -> None:
        super().__init__(client_id, client_secret, redirect_uri)
        self.authority = f"https://login.microsoftonline.com/{tenant_id}/oauth2/v2.0"

    def generate_auth_url(self, state: str) -> str:
        params = {
            "client_id": self.client_id,
            "response_type": "code",
            "redirect_uri": self.redirect_uri,
            "response_mode": "query",
            "scope": " ".join(OUTLOOK_SCOPES),
            "state": state,
        }
        return str(httpx.URL(f"{self.authority}/authorize", params=params))

    async def _token_request(self, data: dict[str, str], action: str) -> ProviderTokens:
        payload = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "scope": " ".join(OUTLOOK_SCOPES),
            **data,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(f"{self.authority}/token", data=payload)
        except httpx.HTTPError as e:
            raise CalendarProviderError(self.provider, f"Outlook token request failed: {e}") from e

        body = self._json(response, action)
        try:
            return ProviderTokens.from_token_response(body)
        except ValueError as e:
            raise CalendarProviderError(self.provider, f"Outlook token response invalid: {e}") from e

    async def exchange_code(self, code: str) -> ProviderTokens:
        tokens = await self._token_request(
            {
                "code": code,
                "grant_type": "authorization_code",
                "redirect_uri": self.redirect_uri,
            },
            "exchange authorization code",
        )
        try:
            user = await self._graph_get(tokens.access_token, "/me", {"$select": "userPrincipalName,mail"})
            tokens.account_username = user.get("userPrincipalName") or user.get("mail")
        except CalendarProviderError as e:
            logger.warning(f"Connected to Outlook but could not read the account name: {e}")
        return tokens

    async def refresh_tokens(self, refresh_token: str) -> ProviderTokens:
        tokens = await self._token_request(
            {"refresh_token": refresh_token, "grant_type": "refresh_token"},
            "refresh access token",
        )
        if tokens.refresh_token is None:
            tokens.refresh_token = refresh_token
        return tokens

    async def _graph_get(self, access_token: str, path: str, params: dict[str, Any]) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    f"{GRAPH_BASE_URL}{path}",
                    params=params,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.HTTPError as e:
            logger.error(f"Microsoft Graph request to {path} failed: {e}")
            raise CalendarProviderError(self.provider, f"Outlook request failed: {e}") from e

        return self._json(response, f"read {path}")

    async def get_events_in_range(
        self, access_token: str, start: datetime, end: datetime, max_results: int | None = None
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {
            "$select": EVENT_FIELDS,
            "$filter": (
                f"start/dateTime ge '{_graph_datetime(start)}' "
                f"and end/dateTime le '{_graph_datetime(end)}'"
            ),
            "$orderby": "start/dateTime",
        }
        if max_results is not None:
            params["$top"] = max_results

        data = await self._graph_get(access_token, "/me/calendar/events", params)
        return self._event_list(data, "value", "list events")

    async def list_events(self, access_token: str, max_results: int = 50) -> list[dict[str, Any]]:
        """List events from six months ago to six months ahead."""
        now = datetime.now(timezone.utc)
        events = await self.get_events_in_range(
            access_token, now - LIST_WINDOW, now + LIST_WINDOW, max_results=max_results
        )
        logger.info(f"Fetched {len(events)} Outlook Calendar events")
        return events

    async def create_event(self, access_token: str, event: ProviderEventCreate) -> dict[str, Any]:
        body: dict[str, Any] = {
            "subject": event.title,
            "start": {"dateTime": _graph_datetime(event.start_time), "timeZone": "UTC"},
            "end": {"dateTime": _graph_datetime(event.end_time), "timeZone": "UTC"},
            "attendees": [
                {"emailAddress": {"address": email, "name": email.split("@")[0]}}
                for email in event.attendees
            ],
        }
        if event.description:
            body["body"] = {"contentType": "HTML", "content": event.description}
        if event.location:
            body["location"] = {"displayName": event.location}

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{GRAPH_BASE_URL}/me/calendar/events",
                    json=body,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.HTTPError as e:
            logger.error(f"Failed to create Outlook Calendar event: {e}")
            raise CalendarProviderError(self.provider, f"Outlook request failed: {e}") from e

        return self._json(response, "create event")


def create_outlook_calendar_service() -> OutlookCalendarService:
    """Build an Outlook Calendar service from settings."""
    settings = get_settings()
    if not settings.outlook_client_id or not settings.outlook_client_secret:
        raise ProviderNotConfiguredError("OUTLOOK_CLIENT_ID and OUTLOOK_CLIENT_SECRET must be set")
    return OutlookCalendarService(
        settings.outlook_client_id,
        settings.outlook_client_secret,
        settings.outlook_tenant_id,
        settings.outlook_redirect_uri,
    )
