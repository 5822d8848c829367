"""Reservation workflow state machine."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterable

from ..exceptions import BookingStateError, PyParkingMapError
from ..models import (
    Area,
    Booking,
    BookingContext,
    BookingFailure,
    BookingResult,
    BookingStep,
    CapacitySnapshot,
    DecoratedRegion,
    FrequentSpot,
    Spot,
    Vehicle,
)
from ..provider.base import BaseProvider
from ..util import is_vehicle_compatible
from .outcomes import (
    GENERIC_FAILURE_MESSAGE,
    Conflict,
    Failure,
    InsufficientBalance,
    Mismatch,
    NoSpotsAvailable,
    Ok,
    Outcome,
    Reassigned,
    SpotUnavailable,
    Stale,
    TransportFailure,
)

_LOGGER = logging.getLogger(__name__)

MISMATCH_CODES = frozenset({"VEHICLE_TYPE_MISMATCH"})
BALANCE_CODES = frozenset({"INSUFFICIENT_BALANCE", "OUTSTANDING_PENALTY"})
UNAVAILABLE_CODES = frozenset({"SPOT_UNAVAILABLE", "SPOT_ALREADY_BOOKED", "SECTION_NOT_AVAILABLE"})
CONFLICT_STATUSES = frozenset({"active", "reserved"})
BOOKABLE_STATUSES = frozenset({"available", "unknown"})


class ReservationOrchestrator:
    """Drive a single reservation attempt from vehicle choice to confirmation.

    Every transition that calls the collaborator marks the orchestrator busy
    until it resolves; a second transition in that window raises
    ``BookingStateError``. Results that resolve after ``reset`` or ``cancel``
    are discarded and reported as ``Stale``.
    """

    def __init__(self, provider: BaseProvider, *, is_attendant: bool = False) -> None:
        self._provider = provider
        self._is_attendant = is_attendant
        self._context = BookingContext()
        self._inflight: int | None = None
        self._recovered = False

    @property
    def context(self) -> BookingContext:
        return dataclasses.replace(self._context)

    @property
    def step(self) -> BookingStep:
        return self._context.step

    @property
    def busy(self) -> bool:
        return self._inflight is not None

    def reset(self) -> None:
        """Discard the current attempt, including any outstanding call."""
        self._context = BookingContext(generation=self._context.generation + 1)
        self._inflight = None
        self._recovered = False
        _LOGGER.debug("Booking context reset")

    cancel = reset

    def compatible_vehicles(
        self,
        vehicles: Iterable[Vehicle],
        region: DecoratedRegion | None = None,
    ) -> list[Vehicle]:
        """Return the vehicles allowed on the target region's spot class."""
        target = region or self._context.selected_region
        spot_class = target.vehicle_class if target is not None else None
        return [
            vehicle for vehicle in vehicles if is_vehicle_compatible(vehicle.vehicle_class, spot_class)
        ]

    async def list_compatible_vehicles(self) -> list[Vehicle]:
        return self.compatible_vehicles(await self._provider.list_vehicles())

    def choose_vehicle(self, vehicle: Vehicle) -> Outcome:
        self._ensure_idle()
        region = self._context.selected_region
        if region is not None and not is_vehicle_compatible(vehicle.vehicle_class, region.vehicle_class):
            return Mismatch(
                vehicle_class=vehicle.vehicle_class,
                spot_class=region.vehicle_class,
                message=f"This parking spot is for {region.vehicle_class} only.",
            )
        self._context.selected_vehicle = vehicle
        self._clear_assignment()
        self._context.step = self._selection_step()
        _LOGGER.debug("Booking vehicle %s chosen", vehicle.id)
        return Ok(vehicle)

    async def choose_area(self, area: Area) -> Outcome:
        self._ensure_idle()
        _LOGGER.debug("Booking area %s started", area.id)
        outcome = await self._check_conflict()
        if not isinstance(outcome, Ok):
            return outcome
        self._context.selected_area = area
        self._context.selected_region = None
        self._clear_assignment()
        self._context.step = "area_chosen"
        return Ok(area)

    async def choose_region(self, region: DecoratedRegion, area: Area) -> Outcome:
        self._ensure_idle()
        _LOGGER.debug("Booking region %s started", region.region.id)
        vehicle = self._context.selected_vehicle
        if vehicle is not None and not is_vehicle_compatible(vehicle.vehicle_class, region.vehicle_class):
            return Mismatch(
                vehicle_class=vehicle.vehicle_class,
                spot_class=region.vehicle_class,
                message=f"This parking spot is for {region.vehicle_class} only.",
            )
        if region.region.kind == "spot" and region.status != "available":
            return Failure(
                message=f"Spot {region.region.spot_number} is not available.",
                error_code="SPOT_UNAVAILABLE",
            )
        outcome = await self._check_conflict()
        if not isinstance(outcome, Ok):
            return outcome
        self._context.selected_area = area
        self._context.selected_region = region
        self._clear_assignment()
        self._context.step = "area_chosen"
        return Ok(region)

    async def assign_slot(self) -> Outcome:
        """Pick the first available spot for the chosen area and vehicle."""
        self._ensure_idle()
        vehicle, area = self._require_selection()
        region = self._context.selected_region
        if region is not None and region.region.kind == "capacity_zone":
            return self._assign_zone(area, region.capacity)
        generation = self._begin()
        try:
            spots = await self._provider.list_spots(area.id, vehicle.vehicle_class)
        except PyParkingMapError as exc:
            return self._transport_failure(exc, generation)
        finally:
            self._end(generation)
        if generation != self._context.generation:
            return Stale()
        if region is not None:
            spots = [spot for spot in spots if self._spot_matches(spot, region)]
        spots = self._bookable(spots)
        if not spots:
            return NoSpotsAvailable(area_id=area.id, vehicle_class=vehicle.vehicle_class)
        self._context.assigned_spot = spots[0]
        self._context.step = "slot_assigned"
        self._recovered = False
        _LOGGER.debug("Booking slot %s assigned", spots[0].spot_number)
        return Ok(spots[0])

    async def confirm(self) -> Outcome:
        """Submit the assigned spot or zone to the collaborator."""
        if self._context.step != "slot_assigned":
            raise BookingStateError("A slot must be assigned before confirming.")
        vehicle, area = self._require_selection()
        spot = self._context.assigned_spot
        zone = self._context.assigned_zone
        if zone is None and spot is None:
            raise BookingStateError("No spot or zone is assigned.")
        generation = self._begin()
        _LOGGER.debug("Booking confirmation started for area %s", area.id)
        try:
            if zone is not None:
                result = await self._provider.reserve_capacity_zone(
                    zone.section_id or zone.section_name,
                    vehicle.id,
                    area.id,
                )
            else:
                result = await self._provider.reserve_spot(vehicle.id, spot.id, area.id)
        except PyParkingMapError as exc:
            return self._transport_failure(exc, generation)
        finally:
            self._end(generation)
        if generation != self._context.generation:
            return Stale()
        if isinstance(result, BookingResult):
            _LOGGER.debug("Booking %s confirmed", result.reservation_id)
            self.reset()
            return Ok(result)
        return await self._handle_failure(result, vehicle, area)

    async def book_frequent_spot(self, frequent: FrequentSpot) -> Outcome:
        """Jump straight to an assigned slot for a frequently used spot."""
        vehicle = self._context.selected_vehicle
        if vehicle is None:
            raise BookingStateError("A vehicle must be chosen first.")
        if frequent.area_id is None:
            return Failure(message="This spot is no longer linked to a parking area.")
        if not is_vehicle_compatible(vehicle.vehicle_class, frequent.spot_class):
            return Mismatch(
                vehicle_class=vehicle.vehicle_class,
                spot_class=frequent.spot_class,
                message=f"This parking spot is for {frequent.spot_class} only.",
            )
        area = Area(id=frequent.area_id, name=frequent.location_name or "")
        outcome = await self.choose_area(area)
        if not isinstance(outcome, Ok):
            return outcome
        if frequent.spot_id is None:
            generation = self._begin()
            try:
                snapshots = await self._provider.get_capacity_snapshot(area.id)
            except PyParkingMapError as exc:
                return self._transport_failure(exc, generation)
            finally:
                self._end(generation)
            if generation != self._context.generation:
                return Stale()
            return self._assign_zone(area, self._find_zone(snapshots, frequent.section_name))
        spot = Spot(
            id=frequent.spot_id,
            spot_number=frequent.spot_number,
            status="available",
            spot_class=frequent.spot_class,
            section_name=frequent.section_name,
        )
        self._context.assigned_spot = spot
        self._context.step = "slot_assigned"
        self._recovered = False
        return Ok(spot)

    async def _handle_failure(self, failure: BookingFailure, vehicle: Vehicle, area: Area) -> Outcome:
        code = failure.error_code
        if code in MISMATCH_CODES:
            details = failure.details
            return Mismatch(
                vehicle_class=details.get("vehicleType") or vehicle.vehicle_class,
                spot_class=details.get("spotType"),
                message=failure.message,
                expected_spot_class=details.get("expectedSpotType"),
            )
        if code in BALANCE_CODES:
            return InsufficientBalance(message=failure.message, error_code=code, details=dict(failure.details))
        if code in UNAVAILABLE_CODES:
            return await self._recover(vehicle, area)
        _LOGGER.debug("Booking failed with unclassified code %s", code)
        return Failure(message=GENERIC_FAILURE_MESSAGE, error_code=code)

    async def _recover(self, vehicle: Vehicle, area: Area) -> Outcome:
        previous = self._context.assigned_spot
        zone = self._context.assigned_zone
        if self._recovered:
            self._clear_assignment()
            self._context.step = "area_chosen"
            return SpotUnavailable(message="The selected spot is no longer available.")
        generation = self._begin()
        try:
            if zone is not None:
                snapshots = await self._provider.get_capacity_snapshot(area.id)
                spots: list[Spot] = []
            else:
                spots = await self._provider.list_spots(area.id, vehicle.vehicle_class)
                snapshots = []
        except PyParkingMapError as exc:
            return self._transport_failure(exc, generation)
        finally:
            self._end(generation)
        if generation != self._context.generation:
            return Stale()
        self._recovered = True
        if zone is not None:
            refreshed = self._find_zone(snapshots, zone.section_name)
            if refreshed is not None and refreshed.available_capacity > 0:
                self._context.assigned_zone = refreshed
                _LOGGER.info("Section %s still has capacity, booking can be retried", zone.section_name)
                return Reassigned(
                    previous=None,
                    spot=None,
                    zone=refreshed,
                    message=f"Section {refreshed.section_name} still has available capacity.",
                )
        else:
            candidates = [
                spot
                for spot in self._bookable(spots)
                if previous is None or spot.id != previous.id
            ]
            if candidates:
                replacement = candidates[0]
                self._context.assigned_spot = replacement
                self._context.step = "slot_assigned"
                _LOGGER.info(
                    "Spot %s was taken, reassigned spot %s",
                    previous.spot_number if previous else None,
                    replacement.spot_number,
                )
                return Reassigned(
                    previous=previous,
                    spot=replacement,
                    message=(
                        "Previous spot was already reserved. "
                        f"Spot {replacement.spot_number} is now available for booking."
                    ),
                )
        self._clear_assignment()
        self._context.step = "area_chosen"
        return NoSpotsAvailable(area_id=area.id, vehicle_class=vehicle.vehicle_class)

    def _assign_zone(self, area: Area, snapshot: CapacitySnapshot | None) -> Outcome:
        vehicle = self._context.selected_vehicle
        if snapshot is None or snapshot.available_capacity <= 0:
            return NoSpotsAvailable(
                area_id=area.id,
                vehicle_class=vehicle.vehicle_class if vehicle else None,
            )
        self._context.assigned_zone = snapshot
        self._context.assigned_spot = None
        self._context.step = "slot_assigned"
        self._recovered = False
        _LOGGER.debug("Booking section %s assigned", snapshot.section_name)
        return Ok(snapshot)

    async def _check_conflict(self) -> Outcome:
        if self._is_attendant:
            return Ok()
        generation = self._begin()
        try:
            bookings = await self._provider.list_active_bookings()
        except PyParkingMapError as exc:
            return self._transport_failure(exc, generation)
        finally:
            self._end(generation)
        if generation != self._context.generation:
            return Stale()
        conflict = self._find_conflict(bookings)
        if conflict is not None:
            _LOGGER.debug("Booking refused, reservation %s is still open", conflict.reservation_id)
            return Conflict(conflict)
        return Ok()

    def _find_conflict(self, bookings: Iterable[Booking]) -> Booking | None:
        for booking in bookings:
            if booking.status.lower() in CONFLICT_STATUSES:
                return booking
        return None

    def _find_zone(
        self,
        snapshots: Iterable[CapacitySnapshot],
        section_name: str | None,
    ) -> CapacitySnapshot | None:
        if not section_name:
            return None
        for snapshot in snapshots:
            if snapshot.section_name.lower() == section_name.lower():
                return snapshot
        return None

    def _bookable(self, spots: Iterable[Spot]) -> list[Spot]:
        return [spot for spot in spots if spot.status in BOOKABLE_STATUSES]

    def _spot_matches(self, spot: Spot, region: DecoratedRegion) -> bool:
        keys = {region.region.id, region.region.spot_number, region.region.local_slot} - {None}
        return spot.id in keys or spot.spot_number in keys

    def _transport_failure(self, exc: PyParkingMapError, generation: int) -> Outcome:
        if generation != self._context.generation:
            return Stale()
        _LOGGER.warning("Booking request failed: %s", exc)
        return TransportFailure(
            message=exc.user_message or "Unable to reach the booking service.",
            error_code=exc.error_code,
        )

    def _require_selection(self) -> tuple[Vehicle, Area]:
        vehicle = self._context.selected_vehicle
        area = self._context.selected_area
        if vehicle is None or area is None or self._context.step not in ("area_chosen", "slot_assigned"):
            raise BookingStateError("A vehicle and an area or region must be chosen first.")
        return vehicle, area

    def _selection_step(self) -> BookingStep:
        if self._context.selected_area is not None:
            return "area_chosen"
        return "vehicle_chosen"

    def _clear_assignment(self) -> None:
        self._context.assigned_spot = None
        self._context.assigned_zone = None

    def _ensure_idle(self) -> None:
        if self._inflight is not None:
            raise BookingStateError("A booking request is already in progress.")

    def _begin(self) -> int:
        self._ensure_idle()
        self._inflight = self._context.generation
        return self._inflight

    def _end(self, generation: int) -> None:
        if self._inflight == generation:
            self._inflight = None
