"""Typed results of reservation workflow transitions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..models import Booking, CapacitySnapshot, Spot

GENERIC_FAILURE_MESSAGE = "Failed to book parking spot."


@dataclass(frozen=True, slots=True)
class Ok:
    """The transition succeeded; ``value`` is its product, if any."""

    value: Any = None


@dataclass(frozen=True, slots=True)
class Conflict:
    booking: Booking

    @property
    def message(self) -> str:
        where = " ".join(part for part in (self.booking.area_name, self.booking.spot_number) if part)
        return f"You already have an active booking{f' at {where}' if where else ''}."


@dataclass(frozen=True, slots=True)
class Mismatch:
    vehicle_class: str | None
    spot_class: str | None
    message: str
    expected_spot_class: str | None = None


@dataclass(frozen=True, slots=True)
class InsufficientBalance:
    message: str
    error_code: str = "INSUFFICIENT_BALANCE"
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Reassigned:
    """A lost spot was replaced automatically; confirm again to book it."""

    previous: Spot | None
    spot: Spot | None
    message: str
    zone: CapacitySnapshot | None = None


@dataclass(frozen=True, slots=True)
class NoSpotsAvailable:
    area_id: str
    vehicle_class: str | None
    message: str = "No spots available."


@dataclass(frozen=True, slots=True)
class SpotUnavailable:
    """The spot was lost and automatic recovery found nothing."""

    message: str


@dataclass(frozen=True, slots=True)
class TransportFailure:
    message: str
    error_code: str | None = None


@dataclass(frozen=True, slots=True)
class Failure:
    message: str = GENERIC_FAILURE_MESSAGE
    error_code: str | None = None


@dataclass(frozen=True, slots=True)
class Stale:
    """The transition resolved after its context was superseded and was ignored."""


Outcome = (
    Ok
    | Conflict
    | Mismatch
    | InsufficientBalance
    | Reassigned
    | NoSpotsAvailable
    | SpotUnavailable
    | TransportFailure
    | Failure
    | Stale
)
