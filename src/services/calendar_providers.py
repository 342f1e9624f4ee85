"""Common interface for external calendar providers."""

import abc
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx

from src.schemas.calendar import CalendarProvider, ProviderEventCreate


class CalendarProviderError(RuntimeError):
    """Raised when a provider API call fails."""

    def __init__(self, provider: CalendarProvider, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class ProviderNotConfiguredError(ValueError):
    """Raised when OAuth client credentials for a provider are missing."""


@dataclass
class ProviderTokens:
    """Tokens returned by an authorization-code or refresh-token grant."""

    access_token: str
    refresh_token: str | None = None
    expires_at: datetime | None = None
    account_username: str | None = None

    @classmethod
    def from_token_response(cls, payload: dict[str, Any]) -> "ProviderTokens":
        access_token = payload.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise ValueError("Token response is missing access_token")

        expires_at = None
        expires_in = payload.get("expires_in")
        if expires_in is not None:
            try:
                expires_at = datetime.now(timezone.utc) + timedelta(seconds=int(expires_in))
            except (TypeError, ValueError):
                expires_at = None

        return cls(
            access_token=access_token,
            refresh_token=payload.get("refresh_token"),
            expires_at=expires_at,
        )


class CalendarProviderService(abc.ABC):
    """OAuth and event operations for one external calendar provider."""

    provider: CalendarProvider

    def __init__(self, client_id: str, client_secret: str, redirect_uri: str) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.timeout = 30.0

    @abc.abstractmethod
    def generate_auth_url(self, state: str) -> str:
        """Build the consent URL the trainer opens in a browser."""

    @abc.abstractmethod
    async def exchange_code(self, code: str) -> ProviderTokens:
        """Trade an authorization code for tokens."""

    @abc.abstractmethod
    async def refresh_tokens(self, refresh_token: str) -> ProviderTokens:
        """Obtain a fresh access token."""

    @abc.abstractmethod
    async def list_events(self, access_token: str, max_results: int = 50) -> list[dict[str, Any]]:
        """List upcoming provider-native events."""

    @abc.abstractmethod
    async def get_events_in_range(
        self, access_token: str, start: datetime, end: datetime
    ) -> list[dict[str, Any]]:
        """List provider-native events within a period."""

    @abc.abstractmethod
    async def create_event(self, access_token: str, event: ProviderEventCreate) -> dict[str, Any]:
        """Create an event at the provider."""

    def _raise_for_status(self, response: httpx.Response, action: str) -> None:
        if response.is_success:
            return
        raise CalendarProviderError(
            self.provider,
            f"{self.provider.value} calendar: failed to {action} ({response.status_code})",
            status_code=response.status_code,
        )

    def _json(self, response: httpx.Response, action: str) -> dict[str, Any]:
        """Check the status, then decode a JSON object body."""
        self._raise_for_status(response, action)
        try:
            body = response.json()
        except ValueError as e:
            raise CalendarProviderError(
                self.provider,
                f"{self.provider.value} calendar: unreadable response to {action}",
                status_code=response.status_code,
            ) from e
        if not isinstance(body, dict):
            raise CalendarProviderError(
                self.provider,
                f"{self.provider.value} calendar: unexpected response to {action}",
                status_code=response.status_code,
            )
        return body

    def _event_list(self, body: dict[str, Any], key: str, action: str) -> list[dict[str, Any]]:
        events = body.get(key, [])
        if not isinstance(events, list):
            raise CalendarProviderError(
                self.provider, f"{self.provider.value} calendar: unexpected response to {action}"
            )
        return events


def to_rfc3339(value: datetime) -> str:
    """Format a datetime as UTC RFC 3339 with a trailing Z."""
    normalized = value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
    return normalized.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
