from __future__ import annotations

import aiohttp
import pytest

from pyparkingmap.exceptions import (
    AuthError,
    NetworkError,
    NotFoundError,
    ProviderError,
    RateLimitError,
    ServiceUnavailableError,
    ValidationError,
)
from pyparkingmap.exceptions import TimeoutError as RequestTimeoutError
from pyparkingmap.models import BookingFailure, LayoutMarkup
from pyparkingmap.provider.base import (
    SPOTS_UPDATED_EVENT,
    BaseProvider,
    LocalPushChannel,
)


class _FakeResponse:
    def __init__(
        self,
        *,
        status: int = 200,
        json_data: object | None = None,
        text_data: str = "",
        json_error: Exception | None = None,
    ) -> None:
        self.status = status
        self._json_data = json_data
        self._text_data = text_data
        self._json_error = json_error

    async def json(self) -> object:
        if self._json_error is not None:
            raise self._json_error
        return self._json_data

    async def text(self) -> str:
        return self._text_data


class _FakeRequestContext:
    def __init__(self, response: _FakeResponse) -> None:
        self._response = response

    async def __aenter__(self) -> _FakeResponse:
        return self._response

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return False


class _SequenceSession:
    def __init__(self, results: list[object]) -> None:
        self._results = results
        self.calls = 0
        self.requests: list[tuple[str, str, dict]] = []

    def request(self, method: str, url: str, **kwargs) -> _FakeRequestContext:
        self.calls += 1
        self.requests.append((method, url, kwargs))
        result = self._results[self.calls - 1]
        if isinstance(result, Exception):
            raise result
        return _FakeRequestContext(result)


class _DummyProvider(BaseProvider):
    async def list_areas(self):
        return []

    async def list_spots(self, area_id, vehicle_class=None):
        return []

    async def get_occupancy_snapshot(self, area_id):
        return []

    async def get_capacity_snapshot(self, area_id):
        return []

    async def get_layout_markup(self, area_id):
        return LayoutMarkup(has_layout=False)

    async def list_active_bookings(self):
        return []

    async def reserve_spot(self, vehicle_id, spot_id, area_id):
        return BookingFailure(error_code=None, message="unused")

    async def reserve_capacity_zone(self, section_id, vehicle_id, area_id):
        return BookingFailure(error_code=None, message="unused")

    async def list_frequent_spots(self, limit=5):
        return []

    async def list_vehicles(self):
        return []


def _provider(session: _SequenceSession, **kwargs) -> _DummyProvider:
    kwargs.setdefault("base_url", "https://example.com")
    return _DummyProvider(session, **kwargs)


def test_session_is_required() -> None:
    with pytest.raises(ValidationError):
        _DummyProvider(None)  # type: ignore[arg-type]


def test_build_url_validation() -> None:
    provider = _provider(_SequenceSession([]))
    assert provider._build_url("/path") == "https://example.com/api/path"
    assert provider._build_url("path") == "https://example.com/api/path"
    with pytest.raises(ValidationError):
        provider._build_url("")
    with pytest.raises(ValidationError):
        provider._build_url("https://example.com/absolute")


def test_build_url_requires_base_url() -> None:
    provider = _DummyProvider(_SequenceSession([]), base_url=None)
    with pytest.raises(ValidationError):
        provider._build_url("path")


def test_normalize_api_uri() -> None:
    provider = _provider(_SequenceSession([]), api_uri=None)
    assert provider._build_url("/path") == "https://example.com/path"
    assert provider._normalize_api_uri(" /api/v1/ ") == "/api/v1"
    with pytest.raises(ValidationError):
        provider._normalize_api_uri(123)  # type: ignore[arg-type]


def test_build_headers_uses_bearer_token() -> None:
    provider = _provider(_SequenceSession([]), token="secret")
    assert provider._build_headers() == {"Authorization": "Bearer secret"}
    provider.set_token(None)
    assert provider._build_headers() == {}


@pytest.mark.asyncio
async def test_request_json_retries_get() -> None:
    session = _SequenceSession(
        [
            aiohttp.ClientError("boom"),
            _FakeResponse(json_data={"ok": True}),
        ]
    )
    provider = _provider(session, retry_count=1)
    result = await provider._request_json("GET", "/path")
    assert result == {"ok": True}
    assert session.calls == 2


@pytest.mark.asyncio
async def test_request_json_no_retry_on_post() -> None:
    session = _SequenceSession([aiohttp.ClientError("boom")])
    provider = _provider(session, retry_count=2)
    with pytest.raises(NetworkError):
        await provider._request_json("POST", "/path")
    assert session.calls == 1


@pytest.mark.asyncio
async def test_request_json_timeout() -> None:
    session = _SequenceSession([TimeoutError()])
    provider = _provider(session)
    with pytest.raises(RequestTimeoutError):
        await provider._request_json("GET", "/path")


@pytest.mark.asyncio
async def test_request_json_invalid_response() -> None:
    session = _SequenceSession([_FakeResponse(json_error=ValueError("bad"))])
    provider = _provider(session)
    with pytest.raises(ProviderError):
        await provider._request_json("GET", "/path")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status", "error"),
    [
        (401, AuthError),
        (403, AuthError),
        (404, NotFoundError),
        (429, RateLimitError),
        (503, ServiceUnavailableError),
        (500, ProviderError),
    ],
)
async def test_request_json_status_errors(status: int, error: type[Exception]) -> None:
    provider = _provider(_SequenceSession([_FakeResponse(status=status)]))
    with pytest.raises(error):
        await provider._request_json("GET", "/path")


@pytest.mark.asyncio
async def test_request_json_returns_booking_failure() -> None:
    response = _FakeResponse(
        status=409,
        json_data={
            "success": False,
            "errorCode": "SPOT_UNAVAILABLE",
            "message": "Spot taken",
            "data": {"spotId": 4},
        },
    )
    provider = _provider(_SequenceSession([response]))
    result = await provider._request_json("POST", "/book", error_statuses=(409,))
    assert result == BookingFailure(
        error_code="SPOT_UNAVAILABLE",
        message="Spot taken",
        details={"spotId": 4},
    )


@pytest.mark.asyncio
async def test_request_json_forbidden_without_code_is_auth_error() -> None:
    response = _FakeResponse(status=403, json_error=ValueError("not json"))
    provider = _provider(_SequenceSession([response]))
    with pytest.raises(AuthError):
        await provider._request_json("POST", "/book", error_statuses=(403,))


@pytest.mark.asyncio
async def test_request_json_sends_headers() -> None:
    session = _SequenceSession([_FakeResponse(json_data={})])
    provider = _provider(session, token="secret")
    await provider._request_json("GET", "/path")
    _method, url, kwargs = session.requests[0]
    assert url == "https://example.com/api/path"
    assert kwargs["headers"]["Authorization"] == "Bearer secret"


@pytest.mark.asyncio
async def test_local_push_channel_delivers_events() -> None:
    channel = LocalPushChannel()
    received = []

    async def handler(payload):
        received.append(payload)
        return "async"

    channel.on(SPOTS_UPDATED_EVENT, handler)
    channel.on(SPOTS_UPDATED_EVENT, lambda payload: "sync")
    await channel.subscribe("2", "user")

    results = await channel.emit(SPOTS_UPDATED_EVENT, {"areaId": 2})

    assert results == ["async", "sync"]
    assert received == [{"areaId": 2}]
    assert channel.subscriptions == {("2", "user")}

    channel.off(SPOTS_UPDATED_EVENT, handler)
    await channel.unsubscribe("2", "user")
    assert await channel.emit(SPOTS_UPDATED_EVENT, {"areaId": 2}) == ["sync"]
    assert channel.subscriptions == set()
