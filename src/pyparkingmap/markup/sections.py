"""Capacity zone resolution from section hints and zone labels."""

from __future__ import annotations

import logging
from collections.abc import Collection, Sequence

from ..models import Box, RawElement, Region, RegionSource, SectionHint
from ..util import section_region_id
from .const import (
    FALLBACK_ZONE_TRANSLATIONS,
    GROUP_TAG,
    HINT_FALLBACK_SIZE,
    HINT_GRID_CELL,
    LABEL_ZONE_SIZE,
    TEXT_TAG,
    TRANSLATION_TOLERANCE,
)

_LOGGER = logging.getLogger(__name__)


def grid_translation(position: tuple[int, int]) -> tuple[float, float]:
    row, col = position
    return col * HINT_GRID_CELL, row * HINT_GRID_CELL


def find_translated_group(
    elements: Sequence[RawElement],
    translation: tuple[float, float],
) -> RawElement | None:
    """Return the first group whose own translation equals ``translation``."""
    dx, dy = translation
    for element in elements:
        own = element.own_transform
        if element.tag != GROUP_TAG or own is None:
            continue
        if abs(own.dx - dx) <= TRANSLATION_TOLERANCE and abs(own.dy - dy) <= TRANSLATION_TOLERANCE:
            return element
    return None


def _box_from_group(group: RawElement, default_size: tuple[float, float]) -> Box:
    if group.first_rect is not None:
        return group.first_rect
    frame = group.frame
    width, height = default_size
    return Box(x=frame.dx, y=frame.dy, width=width, height=height)


def _enclosing_group(elements: Sequence[RawElement], element: RawElement) -> RawElement | None:
    index = element.parent
    while index is not None:
        parent = elements[index]
        if parent.tag == GROUP_TAG:
            return parent
        index = parent.parent
    return None


def find_label_box(elements: Sequence[RawElement], name: str) -> Box | None:
    """Locate a zone through a text label whose content equals the zone name."""
    wanted = name.strip().lower()
    for element in elements:
        if element.tag != TEXT_TAG or element.text.lower() != wanted:
            continue
        group = _enclosing_group(elements, element)
        if group is None or group.own_transform is None:
            continue
        return _box_from_group(group, LABEL_ZONE_SIZE)
    return None


def _targets(hints: Sequence[SectionHint]) -> list[tuple[str, tuple[float, float] | None, RegionSource]]:
    if not hints:
        return [
            (name, translation, "fallback")
            for name, translation in FALLBACK_ZONE_TRANSLATIONS.items()
        ]
    targets: list[tuple[str, tuple[float, float] | None, RegionSource]] = []
    for hint in hints:
        if hint.mode != "capacity_only":
            continue
        translation = grid_translation(hint.grid_position) if hint.grid_position else None
        targets.append((hint.section_name, translation, "hint"))
    return targets


def resolve_section_zones(
    elements: Sequence[RawElement],
    hints: Sequence[SectionHint] = (),
    known_sections: Collection[str] = (),
) -> list[Region]:
    """Resolve capacity zones that the markup does not identify by id.

    Capacity-only hints are located by their grid translation, then by label.
    Without hints the well-known fallback translations are probed instead.
    Sections already present in ``known_sections`` (lower-cased) are skipped.
    """
    regions: list[Region] = []
    for name, translation, source in _targets(hints):
        if name.lower() in known_sections:
            continue
        box = None
        if translation is not None:
            group = find_translated_group(elements, translation)
            if group is not None:
                box = _box_from_group(group, HINT_FALLBACK_SIZE)
        if box is None:
            box = find_label_box(elements, name)
            if box is not None:
                source = "label"
        if box is None:
            if source == "hint":
                _LOGGER.debug("Section %s could not be located in the layout", name)
            continue
        regions.append(
            Region(
                id=section_region_id(name),
                kind="capacity_zone",
                native_box=box,
                spot_number=name,
                section_name=name,
                source=source,
            )
        )
        _LOGGER.debug("Resolved section %s from %s", name, source)
    return regions
