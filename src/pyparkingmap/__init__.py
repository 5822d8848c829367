"""pyParkingMap package."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from .booking.orchestrator import ReservationOrchestrator
from .client import Client
from .exceptions import (
    AuthError,
    BookingStateError,
    NetworkError,
    ProviderError,
    PyParkingMapError,
    ValidationError,
)
from .mapper import hit_test, position_regions, to_native_space, to_render_space
from .markup import ParsedLayout, analyze_layout, parse_layout
from .models import (
    Area,
    Booking,
    BookingResult,
    Box,
    CapacitySnapshot,
    DecoratedRegion,
    Point,
    Region,
    RenderFrame,
    SectionHint,
    Spot,
    StatusRecord,
    Vehicle,
    Viewport,
)
from .reconcile import reconcile
from .session import LayoutSession

try:
    __version__ = version("pyparkingmap")
except PackageNotFoundError:  # pragma: no cover - not installed
    __version__ = "0.0.0"

__all__ = [
    "Area",
    "AuthError",
    "Booking",
    "BookingResult",
    "BookingStateError",
    "Box",
    "CapacitySnapshot",
    "Client",
    "DecoratedRegion",
    "LayoutSession",
    "NetworkError",
    "ParsedLayout",
    "Point",
    "ProviderError",
    "PyParkingMapError",
    "Region",
    "RenderFrame",
    "ReservationOrchestrator",
    "SectionHint",
    "Spot",
    "StatusRecord",
    "ValidationError",
    "Vehicle",
    "Viewport",
    "__version__",
    "analyze_layout",
    "hit_test",
    "parse_layout",
    "position_regions",
    "reconcile",
    "to_native_space",
    "to_render_space",
]
