"""Merge parsed regions with occupancy and capacity snapshots."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from types import MappingProxyType

from .models import CapacitySnapshot, DecoratedRegion, MatchSource, Region, StatusRecord
from .provider.loader import LayoutProfile
from .util import strip_floor_prefix

_LOGGER = logging.getLogger(__name__)


def build_status_index(records: Iterable[StatusRecord]) -> Mapping[str, StatusRecord]:
    """Index occupancy records by key and backend spot id; first record wins."""
    index: dict[str, StatusRecord] = {}
    for record in records:
        for key in (record.key, record.spot_id):
            if key and key not in index:
                index[key] = record
    return MappingProxyType(index)


def build_capacity_index(snapshots: Iterable[CapacitySnapshot]) -> Mapping[str, CapacitySnapshot]:
    index: dict[str, CapacitySnapshot] = {}
    for snapshot in snapshots:
        index.setdefault(snapshot.section_name.lower(), snapshot)
    return MappingProxyType(index)


def find_status(
    region: Region,
    index: Mapping[str, StatusRecord],
    profile: LayoutProfile | None = None,
) -> tuple[StatusRecord | None, MatchSource | None]:
    """Resolve the occupancy record for a spot, in strict priority order."""
    candidates: list[tuple[MatchSource, str | None]] = [
        ("id", region.id),
        ("spot_number", region.spot_number),
        ("floorless_id", strip_floor_prefix(region.id)),
        ("local_slot", region.local_slot),
    ]
    if profile is not None:
        candidates.append(("alias", profile.spot_id_aliases.get(region.id)))
    for source, key in candidates:
        if key and key in index:
            return index[key], source
    return None, None


def find_capacity(
    region: Region,
    index: Mapping[str, CapacitySnapshot],
    profile: LayoutProfile | None = None,
) -> CapacitySnapshot | None:
    section = (region.section_name or region.spot_number).lower()
    snapshot = index.get(section)
    if snapshot is not None or profile is None:
        return snapshot
    for name, (total, available) in profile.fallback_capacities.items():
        if name.lower() == section:
            return CapacitySnapshot(
                section_name=name,
                vehicle_class=profile.default_vehicle_class,
                total_capacity=total,
                available_capacity=available,
            )
    return None


def _decorate_spot(
    region: Region,
    index: Mapping[str, StatusRecord],
    profile: LayoutProfile | None,
) -> DecoratedRegion:
    record, source = find_status(region, index, profile)
    if record is not None:
        return DecoratedRegion(
            region=region,
            status=record.status,
            vehicle_class=record.vehicle_class,
            is_own_reservation=record.is_own_reservation,
            matched_by=source,
        )
    if profile is not None and profile.is_default_spot(region.id):
        return DecoratedRegion(
            region=region,
            status="available",
            vehicle_class=profile.default_vehicle_class,
            matched_by="default",
        )
    return DecoratedRegion(region=region, status="unknown")


def _decorate_zone(
    region: Region,
    index: Mapping[str, CapacitySnapshot],
    profile: LayoutProfile | None,
) -> DecoratedRegion:
    snapshot = find_capacity(region, index, profile)
    if snapshot is None:
        return DecoratedRegion(region=region, status="unknown")
    return DecoratedRegion(
        region=region,
        status="available" if snapshot.available_capacity > 0 else "occupied",
        vehicle_class=snapshot.vehicle_class,
        capacity=snapshot,
    )


def reconcile(
    regions: Sequence[Region],
    statuses: Mapping[str, StatusRecord] | Iterable[StatusRecord],
    capacities: Iterable[CapacitySnapshot] = (),
    *,
    profile: LayoutProfile | None = None,
) -> tuple[DecoratedRegion, ...]:
    """Decorate every region with its current status.

    This is a pure function of its inputs; the region sequence is never mutated.
    """
    status_index = statuses if isinstance(statuses, Mapping) else build_status_index(statuses)
    capacity_index = build_capacity_index(capacities)
    decorated = tuple(
        _decorate_zone(region, capacity_index, profile)
        if region.kind == "capacity_zone"
        else _decorate_spot(region, status_index, profile)
        for region in regions
    )
    unknown = sum(1 for item in decorated if item.status == "unknown")
    _LOGGER.debug("Reconciled %s regions, %s without status", len(decorated), unknown)
    return decorated
