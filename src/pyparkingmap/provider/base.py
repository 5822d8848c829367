"""Booking collaborator base classes and shared HTTP behavior."""

from __future__ import annotations

import inspect
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Collection
from typing import Any

import aiohttp

from ..exceptions import (
    AuthError,
    NetworkError,
    NotFoundError,
    ProviderError,
    RateLimitError,
    ServiceUnavailableError,
    ValidationError,
)
from ..exceptions import TimeoutError as RequestTimeoutError
from ..models import (
    Area,
    Booking,
    BookingFailure,
    BookingResult,
    CapacitySnapshot,
    FrequentSpot,
    LayoutMarkup,
    Spot,
    StatusRecord,
    Vehicle,
)

_LOGGER = logging.getLogger(__name__)
_DEFAULT_TIMEOUT = aiohttp.ClientTimeout(total=30)
_DEFAULT_API_URI = "/api"

SPOTS_UPDATED_EVENT = "spots:updated"
CAPACITY_UPDATED_EVENT = "capacity:updated"

EventHandler = Callable[[dict[str, Any]], Any]


class BaseProvider(ABC):
    """Base class for booking and status collaborators."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        *,
        base_url: str | None = None,
        api_uri: str | None = _DEFAULT_API_URI,
        timeout: aiohttp.ClientTimeout | None = None,
        retry_count: int = 0,
        token: str | None = None,
    ) -> None:
        if session is None:
            raise ValidationError("Session is required.")
        self._session = session
        self._base_url = self._normalize_base_url(base_url)
        self._api_uri = self._normalize_api_uri(api_uri)
        self._timeout = timeout or _DEFAULT_TIMEOUT
        self._retry_count = max(0, retry_count)
        self._token = token

    def set_token(self, token: str | None) -> None:
        self._token = token

    def _build_url(self, path: str) -> str:
        if not isinstance(path, str) or not path:
            raise ValidationError("Path must be a non-empty string.")
        if path.startswith("http://") or path.startswith("https://"):
            raise ValidationError("Use relative paths when building collaborator requests.")
        if self._base_url is None:
            raise ValidationError("base_url is required to build collaborator requests.")
        normalized_path = path if path.startswith("/") else f"/{path}"
        return f"{self._base_url}{self._api_uri}{normalized_path}"

    def _build_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def _request_json(
        self,
        method: str,
        path: str,
        *,
        error_statuses: Collection[int] = (),
        **kwargs: Any,
    ) -> Any:
        url = self._build_url(path)
        kwargs.setdefault("headers", self._build_headers())
        return await self._request(
            method,
            url,
            expect_json=True,
            error_statuses=error_statuses,
            **kwargs,
        )

    async def _request(
        self,
        method: str,
        url: str,
        *,
        expect_json: bool,
        error_statuses: Collection[int] = (),
        **kwargs: Any,
    ) -> Any:
        """Perform a request, retrying GETs on transport errors.

        Responses whose status is listed in ``error_statuses`` are returned as a
        ``BookingFailure`` instead of raising.
        """
        retries = self._retry_count if method.upper() == "GET" else 0
        attempts = retries + 1
        last_error: Exception | None = None
        timeout = kwargs.pop("timeout", None) or self._timeout
        for attempt in range(attempts):
            _LOGGER.debug("Request %s %s started (attempt %s)", method, url, attempt + 1)
            try:
                async with self._session.request(
                    method,
                    url,
                    timeout=timeout,
                    ssl=True,
                    **kwargs,
                ) as response:
                    if response.status in error_statuses:
                        failure = await self._booking_failure(response)
                        if failure.error_code is None and response.status in (401, 403):
                            raise AuthError("Authentication failed.")
                        return failure
                    self._raise_for_status(response)
                    _LOGGER.debug("Request %s %s completed", method, url)
                    if expect_json:
                        try:
                            return await response.json()
                        except (aiohttp.ContentTypeError, ValueError) as exc:
                            raise ProviderError("Response did not contain valid JSON.") from exc
                    return await response.text()
            except TimeoutError as exc:
                last_error = exc
                if attempt >= attempts - 1:
                    raise RequestTimeoutError("Request timed out.") from exc
            except aiohttp.ClientError as exc:
                last_error = exc
                if attempt >= attempts - 1:
                    raise NetworkError("Network request failed.") from exc
        if last_error is not None:
            raise NetworkError("Network request failed.") from last_error
        raise ProviderError("Request failed.")

    async def _booking_failure(self, response: aiohttp.ClientResponse) -> BookingFailure:
        try:
            payload = await response.json()
        except (aiohttp.ContentTypeError, ValueError):
            payload = None
        if not isinstance(payload, dict):
            payload = {}
        details = payload.get("data")
        message = payload.get("message")
        return BookingFailure(
            error_code=payload.get("errorCode") or payload.get("error_code"),
            message=message if isinstance(message, str) and message else "Failed to book parking spot.",
            details=details if isinstance(details, dict) else {},
        )

    def _raise_for_status(self, response: aiohttp.ClientResponse) -> None:
        if 200 <= response.status < 300:
            return
        if response.status in (401, 403):
            raise AuthError("Authentication failed.")
        if response.status == 404:
            raise NotFoundError("Resource was not found.")
        if response.status == 429:
            raise RateLimitError("Too many requests.")
        if response.status == 503:
            raise ServiceUnavailableError("Service is temporarily unavailable.")
        raise ProviderError(f"Collaborator request failed with status {response.status}.")

    def _normalize_base_url(self, base_url: str | None) -> str | None:
        if base_url is None:
            return None
        if not isinstance(base_url, str) or not base_url.strip():
            raise ValidationError("base_url must be a non-empty string.")
        return base_url.strip().rstrip("/")

    def _normalize_api_uri(self, api_uri: str | None) -> str:
        if api_uri is None:
            return ""
        if not isinstance(api_uri, str):
            raise ValidationError("api_uri must be a string.")
        normalized = api_uri.strip().strip("/")
        if not normalized:
            return ""
        return f"/{normalized}"

    @abstractmethod
    async def list_areas(self) -> list[Area]:
        """Return bookable parking areas."""

    @abstractmethod
    async def list_spots(self, area_id: str, vehicle_class: str | None = None) -> list[Spot]:
        """Return available spots in an area, optionally filtered by vehicle class."""

    @abstractmethod
    async def get_occupancy_snapshot(self, area_id: str) -> list[StatusRecord]:
        """Return the occupancy of every spot in an area."""

    @abstractmethod
    async def get_capacity_snapshot(self, area_id: str) -> list[CapacitySnapshot]:
        """Return capacity zone occupancy for an area."""

    @abstractmethod
    async def get_layout_markup(self, area_id: str) -> LayoutMarkup:
        """Return the layout markup and section hints for an area."""

    @abstractmethod
    async def list_active_bookings(self) -> list[Booking]:
        """Return the user's active or reserved bookings."""

    @abstractmethod
    async def reserve_spot(
        self,
        vehicle_id: str,
        spot_id: str,
        area_id: str,
    ) -> BookingResult | BookingFailure:
        """Reserve a single spot."""

    @abstractmethod
    async def reserve_capacity_zone(
        self,
        section_id: str,
        vehicle_id: str,
        area_id: str,
    ) -> BookingResult | BookingFailure:
        """Reserve a place in a capacity zone."""

    @abstractmethod
    async def list_frequent_spots(self, limit: int = 5) -> list[FrequentSpot]:
        """Return the spots the user books most often."""

    @abstractmethod
    async def list_vehicles(self) -> list[Vehicle]:
        """Return the user's registered vehicles."""


class BasePushChannel(ABC):
    """Realtime notification channel for occupancy changes."""

    @abstractmethod
    async def subscribe(self, area_id: str, user_id: str | None = None) -> None:
        """Start receiving events for an area."""

    @abstractmethod
    async def unsubscribe(self, area_id: str, user_id: str | None = None) -> None:
        """Stop receiving events for an area."""

    @abstractmethod
    def on(self, event: str, handler: EventHandler) -> None:
        """Register an event handler."""

    @abstractmethod
    def off(self, event: str, handler: EventHandler) -> None:
        """Remove an event handler."""


class LocalPushChannel(BasePushChannel):
    """In-process channel; events are delivered through ``emit``."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = {}
        self.subscriptions: set[tuple[str, str | None]] = set()

    async def subscribe(self, area_id: str, user_id: str | None = None) -> None:
        self.subscriptions.add((str(area_id), user_id))

    async def unsubscribe(self, area_id: str, user_id: str | None = None) -> None:
        self.subscriptions.discard((str(area_id), user_id))

    def on(self, event: str, handler: EventHandler) -> None:
        self._handlers.setdefault(event, []).append(handler)

    def off(self, event: str, handler: EventHandler) -> None:
        handlers = self._handlers.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    async def emit(self, event: str, payload: dict[str, Any]) -> list[Any]:
        """Deliver an event, awaiting coroutine handlers, and return their results."""
        results = []
        for handler in list(self._handlers.get(event, ())):
            result = handler(payload)
            if inspect.isawaitable(result):
                result = await result
            results.append(result)
        return results
