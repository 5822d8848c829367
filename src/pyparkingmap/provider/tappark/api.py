"""TapPark backend collaborator."""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

from ...exceptions import ProviderError, ValidationError
from ...models import (
    Area,
    Booking,
    BookingFailure,
    BookingResult,
    CapacitySnapshot,
    FrequentSpot,
    LayoutMarkup,
    SectionHint,
    Spot,
    SpotStatus,
    StatusRecord,
    Vehicle,
)
from ...util import coerce_id, parse_grid_position, parse_int
from ..base import BaseProvider
from .const import (
    ACTIVE_BOOKING_STATUSES,
    AREAS_ENDPOINT,
    BOOK_ENDPOINT,
    BOOKING_ERROR_STATUSES,
    CAPACITY_RESERVE_ENDPOINT,
    CAPACITY_STATUS_ENDPOINT,
    DEFAULT_HEADERS,
    FREQUENT_SPOTS_ENDPOINT,
    KNOWN_SPOT_STATUSES,
    LAYOUT_ENDPOINT,
    MY_BOOKINGS_ENDPOINT,
    SPOTS_ENDPOINT,
    SPOTS_STATUS_ENDPOINT,
    VEHICLES_ENDPOINT,
)

_LOGGER = logging.getLogger(__name__)


class Provider(BaseProvider):
    """Collaborator for the TapPark parking backend."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        *,
        base_url: str | None = None,
        api_uri: str | None = "/api",
        timeout: aiohttp.ClientTimeout | None = None,
        retry_count: int = 0,
        token: str | None = None,
    ) -> None:
        """Initialize the collaborator."""
        super().__init__(
            session,
            base_url=base_url,
            api_uri=api_uri,
            timeout=timeout,
            retry_count=retry_count,
            token=token,
        )

    async def list_areas(self) -> list[Area]:
        """Return bookable parking areas."""
        data = self._unwrap(await self._request_json("GET", AREAS_ENDPOINT))
        return [self._map_area(item) for item in self._list_field(data, "areas")]

    async def list_spots(self, area_id: str, vehicle_class: str | None = None) -> list[Spot]:
        """Return available spots in an area."""
        area = self._require_id(area_id, "area_id")
        params = {"vehicleType": vehicle_class} if vehicle_class else None
        data = self._unwrap(
            await self._request_json("GET", SPOTS_ENDPOINT.format(area_id=area), params=params)
        )
        return [self._map_spot(item) for item in self._list_field(data, "spots")]

    async def get_occupancy_snapshot(self, area_id: str) -> list[StatusRecord]:
        """Return the occupancy of every spot in an area."""
        area = self._require_id(area_id, "area_id")
        data = self._unwrap(
            await self._request_json("GET", SPOTS_STATUS_ENDPOINT.format(area_id=area))
        )
        return [self._map_status(item) for item in self._list_field(data, "spots")]

    async def get_capacity_snapshot(self, area_id: str) -> list[CapacitySnapshot]:
        """Return capacity zone occupancy for an area."""
        area = self._require_id(area_id, "area_id")
        data = self._unwrap(
            await self._request_json("GET", CAPACITY_STATUS_ENDPOINT.format(area_id=area))
        )
        if data is None:
            return []
        if not isinstance(data, list):
            raise ProviderError("Collaborator response included invalid capacity data.")
        return [self._map_capacity(item) for item in data if isinstance(item, dict)]

    async def get_layout_markup(self, area_id: str) -> LayoutMarkup:
        """Return the layout markup and section hints for an area."""
        area = self._require_id(area_id, "area_id")
        data = self._unwrap(await self._request_json("GET", LAYOUT_ENDPOINT.format(area_id=area)))
        return self._map_layout(data)

    async def list_active_bookings(self) -> list[Booking]:
        """Return the user's active or reserved bookings."""
        data = self._unwrap(await self._request_json("GET", MY_BOOKINGS_ENDPOINT))
        bookings = [self._map_booking(item) for item in self._list_field(data, "bookings")]
        return [booking for booking in bookings if booking.status in ACTIVE_BOOKING_STATUSES]

    async def reserve_spot(
        self,
        vehicle_id: str,
        spot_id: str,
        area_id: str,
    ) -> BookingResult | BookingFailure:
        """Reserve a single spot."""
        payload = {
            "vehicleId": self._wire_id(self._require_id(vehicle_id, "vehicle_id")),
            "spotId": self._wire_id(self._require_id(spot_id, "spot_id")),
            "areaId": self._wire_id(self._require_id(area_id, "area_id")),
        }
        response = await self._request_json(
            "POST",
            BOOK_ENDPOINT,
            json=payload,
            error_statuses=BOOKING_ERROR_STATUSES,
        )
        if isinstance(response, BookingFailure):
            _LOGGER.debug("Spot booking rejected with %s", response.error_code)
            return response
        return self._map_booking_result(self._unwrap(response))

    async def reserve_capacity_zone(
        self,
        section_id: str,
        vehicle_id: str,
        area_id: str,
    ) -> BookingResult | BookingFailure:
        """Reserve a place in a capacity zone."""
        section = self._require_id(section_id, "section_id")
        payload = {
            "vehicleId": self._wire_id(self._require_id(vehicle_id, "vehicle_id")),
            "areaId": self._wire_id(self._require_id(area_id, "area_id")),
        }
        response = await self._request_json(
            "POST",
            CAPACITY_RESERVE_ENDPOINT.format(section_id=section),
            json=payload,
            error_statuses=BOOKING_ERROR_STATUSES,
        )
        if isinstance(response, BookingFailure):
            _LOGGER.debug("Capacity booking rejected with %s", response.error_code)
            return response
        return self._map_booking_result(self._unwrap(response))

    async def list_frequent_spots(self, limit: int = 5) -> list[FrequentSpot]:
        """Return the spots the user books most often."""
        if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
            raise ValidationError("limit must be a positive integer.")
        data = self._unwrap(
            await self._request_json("GET", FREQUENT_SPOTS_ENDPOINT, params={"limit": limit})
        )
        return [self._map_frequent_spot(item) for item in self._list_field(data, "frequent_spots")]

    async def list_vehicles(self) -> list[Vehicle]:
        """Return the user's registered vehicles."""
        data = self._unwrap(await self._request_json("GET", VEHICLES_ENDPOINT))
        return [self._map_vehicle(item) for item in self._list_field(data, "vehicles")]

    def _build_headers(self) -> dict[str, str]:
        headers = dict(DEFAULT_HEADERS)
        headers.update(super()._build_headers())
        return headers

    def _unwrap(self, response: Any) -> Any:
        if not isinstance(response, dict):
            raise ProviderError("Collaborator response was not a JSON object.")
        if response.get("success") is False:
            message = response.get("message")
            raise ProviderError(
                "Collaborator reported a failure.",
                detail=message if isinstance(message, str) else None,
            )
        return response.get("data")

    def _list_field(self, data: Any, key: str) -> list[dict]:
        if data is None:
            return []
        if not isinstance(data, dict):
            raise ProviderError(f"Collaborator response included invalid {key}.")
        items = data.get(key)
        if items is None:
            return []
        if not isinstance(items, list):
            raise ProviderError(f"Collaborator response included invalid {key}.")
        return [item for item in items if isinstance(item, dict)]

    def _map_area(self, data: dict) -> Area:
        return Area(
            id=self._coerce_response_id(data.get("id") or data.get("parking_area_id"), "area id"),
            name=str(data.get("name") or data.get("parking_area_name") or ""),
            location=str(data.get("location") or ""),
            total_spots=parse_int(data.get("total_spots")),
            available_spots=parse_int(data.get("available_spots")),
        )

    def _map_spot(self, data: dict) -> Spot:
        return Spot(
            id=self._coerce_response_id(data.get("id"), "spot id"),
            spot_number=self._coerce_response_id(data.get("spot_number"), "spot number"),
            status=self._map_spot_status(data.get("status")),
            spot_class=self._lower(data.get("spot_type")),
            section_name=coerce_id(data.get("section_name")),
        )

    def _map_status(self, data: dict) -> StatusRecord:
        spot_id = coerce_id(data.get("id"))
        key = coerce_id(data.get("spot_number")) or spot_id
        if key is None:
            raise ProviderError("Collaborator response missing spot number.")
        return StatusRecord(
            key=key,
            status=self._map_spot_status(data.get("status")),
            vehicle_class=self._lower(data.get("spot_type")),
            section_name=coerce_id(data.get("section_name")),
            is_own_reservation=bool(data.get("is_user_booked")),
            spot_id=spot_id,
        )

    def _map_capacity(self, data: dict) -> CapacitySnapshot:
        name = coerce_id(data.get("sectionName") or data.get("section_name"))
        if name is None:
            raise ProviderError("Collaborator response missing section name.")
        return CapacitySnapshot(
            section_name=name,
            vehicle_class=self._lower(data.get("vehicleType") or data.get("vehicle_type")),
            total_capacity=parse_int(data.get("totalCapacity")),
            available_capacity=parse_int(data.get("availableCapacity")),
            section_id=coerce_id(data.get("sectionId") or data.get("section_id")),
        )

    def _map_layout(self, data: Any) -> LayoutMarkup:
        if data is None:
            return LayoutMarkup(has_layout=False)
        if not isinstance(data, dict):
            raise ProviderError("Collaborator response included invalid layout data.")
        markup = data.get("layoutSvg")
        if not isinstance(markup, str) or not markup.strip():
            markup = None
        has_layout = bool(data.get("hasLayout")) and markup is not None
        area_name = data.get("areaName")
        return LayoutMarkup(
            has_layout=has_layout,
            markup=markup if has_layout else None,
            section_hints=self._map_section_hints(data.get("sections")),
            area_name=area_name if isinstance(area_name, str) else None,
        )

    def _map_section_hints(self, raw: Any) -> tuple[SectionHint, ...]:
        if not isinstance(raw, list):
            return ()
        hints: list[SectionHint] = []
        for item in raw:
            if not isinstance(item, dict):
                continue
            section = item.get("section_data") if isinstance(item.get("section_data"), dict) else item
            name = coerce_id(section.get("section_name"))
            if name is None:
                continue
            mode = "capacity_only" if section.get("section_mode") == "capacity_only" else "slot_based"
            hints.append(
                SectionHint(
                    section_name=name,
                    mode=mode,
                    grid_position=parse_grid_position(item.get("position") or section.get("position")),
                )
            )
        return tuple(hints)

    def _map_booking(self, data: dict) -> Booking:
        area = data.get("parkingArea") if isinstance(data.get("parkingArea"), dict) else {}
        slot = data.get("parkingSlot") if isinstance(data.get("parkingSlot"), dict) else {}
        vehicle = data.get("vehicleDetails") if isinstance(data.get("vehicleDetails"), dict) else {}
        return Booking(
            reservation_id=self._coerce_response_id(data.get("reservationId"), "reservation id"),
            status=str(data.get("bookingStatus") or "").lower(),
            area_name=coerce_id(area.get("name")),
            spot_number=coerce_id(slot.get("spotNumber")),
            section_name=coerce_id(slot.get("sectionName")),
            vehicle_plate=coerce_id(vehicle.get("plateNumber")),
        )

    def _map_booking_result(self, data: Any) -> BookingResult:
        if not isinstance(data, dict):
            raise ProviderError("Collaborator response included invalid booking data.")
        details = data.get("bookingDetails") if isinstance(data.get("bookingDetails"), dict) else {}
        reservation_id = data.get("reservationId") or details.get("reservationId")
        return BookingResult(
            reservation_id=self._coerce_response_id(reservation_id, "reservation id"),
            status=coerce_id(details.get("status")),
            area_name=coerce_id(details.get("areaName")),
            spot_number=coerce_id(details.get("spotNumber")),
            section_name=coerce_id(details.get("sectionName") or data.get("sectionName")),
            vehicle_plate=coerce_id(details.get("vehiclePlate")),
            vehicle_class=self._lower(details.get("vehicleType")),
            spot_class=self._lower(details.get("spotType")),
            start_time=coerce_id(details.get("startTime")),
        )

    def _map_frequent_spot(self, data: dict) -> FrequentSpot:
        return FrequentSpot(
            spot_id=coerce_id(data.get("parking_spot_id")),
            spot_number=self._coerce_response_id(data.get("spot_number"), "spot number"),
            area_id=coerce_id(data.get("parking_area_id")),
            location_name=coerce_id(data.get("location_name")),
            spot_class=self._lower(data.get("spot_type")),
            section_name=coerce_id(data.get("section_name")),
            usage_count=parse_int(data.get("usage_count")),
            last_used=coerce_id(data.get("last_used")),
        )

    def _map_vehicle(self, data: dict) -> Vehicle:
        vehicle_class = self._lower(data.get("vehicle_type"))
        if vehicle_class is None:
            raise ProviderError("Collaborator response missing vehicle type.")
        return Vehicle(
            id=self._coerce_response_id(data.get("id"), "vehicle id"),
            plate_number=str(data.get("plate_number") or ""),
            vehicle_class=vehicle_class,
            brand=coerce_id(data.get("brand")),
        )

    def _map_spot_status(self, value: Any) -> SpotStatus:
        status = str(value or "").strip().lower()
        if status in KNOWN_SPOT_STATUSES:
            return status  # type: ignore[return-value]
        return "unknown"

    def _lower(self, value: Any) -> str | None:
        text = coerce_id(value)
        return text.lower() if text else None

    def _wire_id(self, value: str) -> int | str:
        return int(value) if value.isdigit() else value

    def _require_id(self, value: Any, field: str) -> str:
        text = coerce_id(value)
        if text is None:
            raise ValidationError(f"{field} is required.")
        return text

    def _coerce_response_id(self, value: Any, field: str) -> str:
        text = coerce_id(value)
        if text is None:
            raise ProviderError(f"Collaborator response missing {field}.")
        return text
