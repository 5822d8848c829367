"""Client facade wiring the collaborator, layout sessions and bookings."""

from __future__ import annotations

import aiohttp

from .booking.orchestrator import ReservationOrchestrator
from .provider.base import BasePushChannel, BaseProvider
from .provider.tappark.api import Provider
from .session import REFRESH_INTERVAL, LayoutSession

_DEFAULT_TIMEOUT = aiohttp.ClientTimeout(total=30)


class Client:
    """Facade for the parking map and reservation workflow."""

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        *,
        base_url: str | None = None,
        api_uri: str | None = "/api",
        timeout: aiohttp.ClientTimeout | None = None,
        retry_count: int = 0,
        token: str | None = None,
        channel: BasePushChannel | None = None,
    ) -> None:
        self._session = session
        self._owns_session = session is None
        self._base_url = base_url
        self._api_uri = api_uri
        self._timeout = timeout or _DEFAULT_TIMEOUT
        self._retry_count = max(0, retry_count)
        self._token = token
        self._channel = channel
        self._provider: BaseProvider | None = None

    async def __aenter__(self) -> Client:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None
            self._provider = None

    @property
    def provider(self) -> BaseProvider:
        if self._provider is None:
            self._provider = Provider(
                self._ensure_session(),
                base_url=self._base_url,
                api_uri=self._api_uri,
                timeout=self._timeout,
                retry_count=self._retry_count,
                token=self._token,
            )
        return self._provider

    def set_token(self, token: str | None) -> None:
        self._token = token
        if self._provider is not None:
            self._provider.set_token(token)

    def layout_session(
        self,
        area_id: str,
        *,
        area_name: str | None = None,
        user_id: str | None = None,
        refresh_interval: float = REFRESH_INTERVAL,
    ) -> LayoutSession:
        return LayoutSession(
            self.provider,
            area_id,
            area_name=area_name,
            user_id=user_id,
            channel=self._channel,
            refresh_interval=refresh_interval,
        )

    def reservation(self, *, is_attendant: bool = False) -> ReservationOrchestrator:
        return ReservationOrchestrator(self.provider, is_attendant=is_attendant)

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session
