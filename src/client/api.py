"""HTTP client for the trainer calendar API."""

import logging
from collections.abc import Callable
from typing import Any, TypeVar

import httpx

from src.config import get_settings
from src.schemas.calendar import (
    AuthUrlResponse,
    CalendarProvider,
    CalendarStatusResponse,
    DisconnectResponse,
    SyncResponse,
)
from src.schemas.calendar_event import CalendarEvent, CalendarEventCreate
from src.schemas.student import Student

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CalendarApiError(RuntimeError):
    """A calendar API request failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SessionExpiredError(CalendarApiError):
    """The trainer session is no longer authenticated."""


class ProviderNotConnectedError(CalendarApiError):
    """The requested provider has no stored tokens."""

    def __init__(self, provider: CalendarProvider, message: str, status_code: int | None = None) -> None:
        super().__init__(message, status_code)
        self.provider = provider


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and body.get("detail"):
        return str(body["detail"])
    return response.reason_phrase


class CalendarApiClient:
    """Async client bound to one authenticated trainer session."""

    def __init__(
        self,
        trainer_id: int,
        base_url: str | None = None,
        timeout: float | None = None,
        sync_timeout: float | None = None,
        on_session_expired: Callable[[], None] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self.trainer_id = trainer_id
        self.sync_timeout = sync_timeout if sync_timeout is not None else settings.sync_timeout_seconds
        self.on_session_expired = on_session_expired
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.api_base_url,
            headers={"X-Trainer-Id": str(trainer_id)},
            timeout=timeout if timeout is not None else settings.client_timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> "CalendarApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        provider: CalendarProvider | None = None,
        parse: Callable[[Any], T] | None = None,
        **kwargs: Any,
    ) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise CalendarApiError(f"{method} {path} failed: {e}") from e

        if response.is_success:
            try:
                data = None if response.status_code == 204 or not response.content else response.json()
                return parse(data) if parse is not None else data
            except (ValueError, TypeError, AttributeError) as e:
                # ValidationError is a ValueError
                logger.warning(f"Unreadable response from {method} {path}: {e}")
                raise CalendarApiError(
                    f"{method} {path} returned an unreadable body", response.status_code
                ) from e

        detail = _error_detail(response)
        if provider is not None and response.status_code == 409:
            raise ProviderNotConnectedError(provider, detail, response.status_code)
        if response.status_code == 401:
            logger.warning(f"Session expired for trainer {self.trainer_id}")
            if self.on_session_expired is not None:
                self.on_session_expired()
            raise SessionExpiredError(detail, response.status_code)
        raise CalendarApiError(f"{method} {path} returned {response.status_code}: {detail}", response.status_code)

    async def get_status(self) -> CalendarStatusResponse:
        return await self._request("GET", "/api/calendar/status", parse=CalendarStatusResponse.model_validate)

    async def get_auth_url(self, provider: CalendarProvider) -> str:
        response = await self._request(
            "GET",
            f"/api/auth/{provider.value}/calendar",
            provider=provider,
            parse=AuthUrlResponse.model_validate,
        )
        return response.auth_url

    async def sync(self) -> SyncResponse:
        """Run a server-side sync of every connected provider."""
        return await self._request(
            "POST", "/api/calendar/sync", parse=SyncResponse.model_validate, timeout=self.sync_timeout
        )

    async def fetch_provider_events(
        self, provider: CalendarProvider, max_results: int | None = None
    ) -> list[dict[str, Any]]:
        """Provider-native events of one connected calendar. Not retried."""
        params = {"maxResults": max_results} if max_results is not None else None
        return await self._request(
            "GET",
            f"/api/calendar/{provider.value}/events",
            provider=provider,
            parse=lambda data: list(data.get("events", [])),
            params=params,
        )

    async def list_events(self) -> list[CalendarEvent]:
        return await self._request(
            "GET",
            "/api/calendar/events",
            parse=lambda data: [CalendarEvent.model_validate(item) for item in data],
        )

    async def create_event(self, payload: CalendarEventCreate) -> CalendarEvent:
        return await self._request(
            "POST",
            "/api/calendar/events",
            parse=CalendarEvent.model_validate,
            json=payload.model_dump(mode="json", by_alias=True, exclude_none=True),
        )

    async def list_students(self) -> list[Student]:
        return await self._request(
            "GET",
            "/api/students",
            parse=lambda data: [Student.model_validate(item) for item in data],
        )

    async def disconnect(self, provider: CalendarProvider) -> DisconnectResponse:
        return await self._request(
            "DELETE",
            f"/api/calendar/{provider.value}/disconnect",
            provider=provider,
            parse=DisconnectResponse.model_validate,
        )
