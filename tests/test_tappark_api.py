from __future__ import annotations

import pytest

from pyparkingmap.exceptions import AuthError, ProviderError, ValidationError
from pyparkingmap.models import BookingFailure, BookingResult
from pyparkingmap.provider.tappark.api import Provider


class _FakeResponse:
    def __init__(self, *, status: int = 200, json_data: object | None = None) -> None:
        self.status = status
        self._json_data = json_data

    async def json(self) -> object:
        return self._json_data

    async def text(self) -> str:
        return ""


class _FakeRequestContext:
    def __init__(self, response: _FakeResponse) -> None:
        self._response = response

    async def __aenter__(self) -> _FakeResponse:
        return self._response

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return False


class _SequenceSession:
    def __init__(self, results: list[_FakeResponse]) -> None:
        self._results = results
        self.requests: list[tuple[str, str, dict]] = []

    def request(self, method: str, url: str, **kwargs) -> _FakeRequestContext:
        self.requests.append((method, url, kwargs))
        return _FakeRequestContext(self._results[len(self.requests) - 1])


def _provider(*responses: _FakeResponse) -> tuple[Provider, _SequenceSession]:
    session = _SequenceSession(list(responses))
    return Provider(session, base_url="https://tappark.example/", token="secret"), session


@pytest.mark.asyncio
async def test_list_spots_filters_by_vehicle_type() -> None:
    provider, session = _provider(
        _FakeResponse(
            json_data={
                "success": True,
                "data": {"spots": [{"id": 1, "spot_number": "A-1", "status": "available", "spot_type": "car"}]},
            }
        )
    )
    spots = await provider.list_spots("3", "car")

    assert [spot.spot_number for spot in spots] == ["A-1"]
    method, url, kwargs = session.requests[0]
    assert method == "GET"
    assert url == "https://tappark.example/api/parking-areas/areas/3/spots"
    assert kwargs["params"] == {"vehicleType": "car"}
    assert kwargs["headers"]["Authorization"] == "Bearer secret"
    assert kwargs["headers"]["User-Agent"] == "pyparkingmap-tappark"


@pytest.mark.asyncio
async def test_list_spots_requires_area() -> None:
    provider, _session = _provider()
    with pytest.raises(ValidationError):
        await provider.list_spots(" ")


@pytest.mark.asyncio
async def test_occupancy_snapshot() -> None:
    provider, session = _provider(
        _FakeResponse(
            json_data={
                "success": True,
                "data": {"spots": [{"id": 9, "spot_number": "B-9", "status": "occupied"}]},
            }
        )
    )
    records = await provider.get_occupancy_snapshot("2")

    assert records[0].key == "B-9"
    assert records[0].spot_id == "9"
    assert session.requests[0][1].endswith("/parking-areas/areas/2/spots-status")


@pytest.mark.asyncio
async def test_capacity_snapshot_requires_list() -> None:
    provider, _session = _provider(_FakeResponse(json_data={"success": True, "data": {"oops": 1}}))
    with pytest.raises(ProviderError):
        await provider.get_capacity_snapshot("2")


@pytest.mark.asyncio
async def test_active_bookings_filter_closed_ones() -> None:
    provider, _session = _provider(
        _FakeResponse(
            json_data={
                "success": True,
                "data": {
                    "bookings": [
                        {"reservationId": 1, "bookingStatus": "completed"},
                        {"reservationId": 2, "bookingStatus": "Reserved"},
                        {"reservationId": 3, "bookingStatus": "active"},
                    ]
                },
            }
        )
    )
    bookings = await provider.list_active_bookings()

    assert [booking.reservation_id for booking in bookings] == ["2", "3"]


@pytest.mark.asyncio
async def test_reserve_spot_success() -> None:
    provider, session = _provider(
        _FakeResponse(
            json_data={
                "success": True,
                "data": {"reservationId": 55, "bookingDetails": {"spotNumber": "A-1"}},
            }
        )
    )
    result = await provider.reserve_spot("7", "11", "3")

    assert result == BookingResult(reservation_id="55", spot_number="A-1")
    method, url, kwargs = session.requests[0]
    assert method == "POST"
    assert url.endswith("/parking-areas/book")
    assert kwargs["json"] == {"vehicleId": 7, "spotId": 11, "areaId": 3}


@pytest.mark.asyncio
async def test_reserve_spot_rejection_is_returned() -> None:
    provider, _session = _provider(
        _FakeResponse(
            status=400,
            json_data={
                "success": False,
                "errorCode": "VEHICLE_TYPE_MISMATCH",
                "message": "This spot is for motorcycles only.",
                "data": {"vehicleType": "car", "spotType": "motorcycle"},
            },
        )
    )
    result = await provider.reserve_spot("7", "11", "3")

    assert isinstance(result, BookingFailure)
    assert result.error_code == "VEHICLE_TYPE_MISMATCH"
    assert result.details["spotType"] == "motorcycle"


@pytest.mark.asyncio
async def test_reserve_spot_forbidden_without_code() -> None:
    provider, _session = _provider(_FakeResponse(status=403, json_data={"message": "Forbidden"}))
    with pytest.raises(AuthError):
        await provider.reserve_spot("7", "11", "3")


@pytest.mark.asyncio
async def test_reserve_capacity_zone_uses_section_endpoint() -> None:
    provider, session = _provider(
        _FakeResponse(json_data={"success": True, "data": {"reservationId": "R-1", "sectionName": "V"}})
    )
    result = await provider.reserve_capacity_zone("12", "7", "3")

    assert result.reservation_id == "R-1"
    assert result.section_name == "V"
    assert session.requests[0][1].endswith("/capacity/sections/12/reserve")
    assert session.requests[0][2]["json"] == {"vehicleId": 7, "areaId": 3}


@pytest.mark.asyncio
async def test_list_frequent_spots_validates_limit() -> None:
    provider, session = _provider(_FakeResponse(json_data={"success": True, "data": {"frequent_spots": []}}))
    with pytest.raises(ValidationError):
        await provider.list_frequent_spots(0)
    assert await provider.list_frequent_spots(3) == []
    assert session.requests[0][2]["params"] == {"limit": 3}


@pytest.mark.asyncio
async def test_layout_markup_endpoint() -> None:
    provider, session = _provider(
        _FakeResponse(json_data={"success": True, "data": {"hasLayout": False, "layoutSvg": None}})
    )
    layout = await provider.get_layout_markup("2")

    assert layout.has_layout is False
    assert session.requests[0][1] == "https://tappark.example/api/parking-areas/area/2/layout"
