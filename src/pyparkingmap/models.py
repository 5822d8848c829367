"""Public data models."""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from .exceptions import ValidationError

RegionKind = Literal["spot", "capacity_zone"]
RegionSource = Literal["pattern", "attribute", "hint", "label", "fallback"]
SpotStatus = Literal["available", "occupied", "reserved", "unknown"]
SectionMode = Literal["capacity_only", "slot_based"]
BookingStep = Literal["idle", "vehicle_chosen", "area_chosen", "slot_assigned", "confirmed"]
MatchSource = Literal["id", "spot_number", "floorless_id", "local_slot", "alias", "default"]


@dataclass(frozen=True, slots=True)
class Transform:
    dx: float = 0.0
    dy: float = 0.0

    def then(self, other: Transform) -> Transform:
        return Transform(dx=self.dx + other.dx, dy=self.dy + other.dy)


@dataclass(frozen=True, slots=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True, slots=True)
class Box:
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def is_valid(self) -> bool:
        values = (self.x, self.y, self.width, self.height)
        return all(math.isfinite(value) for value in values) and self.width > 0 and self.height > 0

    def translate(self, transform: Transform) -> Box:
        return Box(
            x=self.x + transform.dx,
            y=self.y + transform.dy,
            width=self.width,
            height=self.height,
        )

    def contains(self, point: Point) -> bool:
        return self.x <= point.x <= self.right and self.y <= point.y <= self.bottom


@dataclass(frozen=True, slots=True)
class Viewport:
    origin_x: float
    origin_y: float
    width: float
    height: float


@dataclass(frozen=True, slots=True)
class RenderFrame:
    container_width: float
    container_height: float


@dataclass(frozen=True, slots=True)
class SectionHint:
    section_name: str
    mode: SectionMode
    grid_position: tuple[int, int] | None = None


@dataclass(frozen=True, slots=True)
class RawElement:
    """One markup node with its accumulated ancestor translation.

    ``box`` and ``first_rect`` are already expressed in the layout's native
    coordinate space. ``parent`` is the index of the enclosing node in the
    scanned node list.
    """

    tag: str
    id: str | None
    attributes: Mapping[str, str]
    raw_span: tuple[int, int]
    transform: Transform
    depth: int
    ancestor_labels: tuple[str, ...] = ()
    box: Box | None = None
    text: str = ""
    parent: int | None = None
    own_transform: Transform | None = None
    first_rect: Box | None = None

    @property
    def frame(self) -> Transform:
        if self.own_transform is None:
            return self.transform
        return self.transform.then(self.own_transform)


@dataclass(frozen=True, slots=True)
class Region:
    id: str
    kind: RegionKind
    native_box: Box
    spot_number: str
    section_name: str | None = None
    local_slot: str | None = None
    source: RegionSource = "pattern"

    def __post_init__(self) -> None:
        if not self.id:
            raise ValidationError("Region id must be a non-empty string.")
        if not self.native_box.is_valid:
            raise ValidationError(f"Region {self.id} must have a positive, finite box.")


@dataclass(frozen=True, slots=True)
class StatusRecord:
    key: str
    status: SpotStatus
    vehicle_class: str | None = None
    section_name: str | None = None
    is_own_reservation: bool = False
    spot_id: str | None = None


@dataclass(frozen=True, slots=True)
class CapacitySnapshot:
    section_name: str
    vehicle_class: str | None
    total_capacity: int
    available_capacity: int
    section_id: str | None = None

    @property
    def utilization(self) -> float | None:
        if self.total_capacity <= 0:
            return None
        return (self.total_capacity - self.available_capacity) / self.total_capacity


@dataclass(frozen=True, slots=True)
class DecoratedRegion:
    region: Region
    status: SpotStatus
    vehicle_class: str | None = None
    is_own_reservation: bool = False
    capacity: CapacitySnapshot | None = None
    matched_by: MatchSource | None = None

    @property
    def utilization(self) -> float | None:
        if self.capacity is None:
            return None
        return self.capacity.utilization

    @property
    def interactive(self) -> bool:
        return self.status != "unknown"


@dataclass(frozen=True, slots=True)
class Area:
    id: str
    name: str
    location: str = ""
    total_spots: int = 0
    available_spots: int = 0


@dataclass(frozen=True, slots=True)
class Spot:
    id: str
    spot_number: str
    status: SpotStatus
    spot_class: str | None = None
    section_name: str | None = None


@dataclass(frozen=True, slots=True)
class Vehicle:
    id: str
    plate_number: str
    vehicle_class: str
    brand: str | None = None


@dataclass(frozen=True, slots=True)
class Booking:
    reservation_id: str
    status: str
    area_name: str | None = None
    spot_number: str | None = None
    section_name: str | None = None
    vehicle_plate: str | None = None


@dataclass(frozen=True, slots=True)
class BookingResult:
    reservation_id: str
    status: str | None = None
    area_name: str | None = None
    spot_number: str | None = None
    section_name: str | None = None
    vehicle_plate: str | None = None
    vehicle_class: str | None = None
    spot_class: str | None = None
    start_time: str | None = None


@dataclass(frozen=True, slots=True)
class BookingFailure:
    error_code: str | None
    message: str
    details: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class LayoutMarkup:
    has_layout: bool
    markup: str | None = None
    section_hints: tuple[SectionHint, ...] = ()
    area_name: str | None = None


@dataclass(frozen=True, slots=True)
class FrequentSpot:
    spot_id: str | None
    spot_number: str
    area_id: str | None = None
    location_name: str | None = None
    spot_class: str | None = None
    section_name: str | None = None
    usage_count: int = 0
    last_used: str | None = None


@dataclass(slots=True)
class BookingContext:
    """Mutable workflow state owned by the reservation orchestrator."""

    selected_vehicle: Vehicle | None = None
    selected_area: Area | None = None
    selected_region: DecoratedRegion | None = None
    assigned_spot: Spot | None = None
    assigned_zone: CapacitySnapshot | None = None
    step: BookingStep = "idle"
    generation: int = 0
