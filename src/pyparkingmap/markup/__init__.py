"""Layout markup parsing: scanning, classification and analysis."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass

from ..models import Box, Region, SectionHint, Viewport
from ..util import parse_number
from .classifier import classify
from .const import GROUP_TAG, SLOT_ID_ATTR, TEXT_TAG
from .rules import ShapeLimits
from .scanner import MarkupScan, parse_viewport, scan_markup

_LOGGER = logging.getLogger(__name__)

_SECTION_LABEL_RE = re.compile(r"^[A-Z0-9]{1,5}$")
_DIGITS_RE = re.compile(r"\d+")
_SMALL_BOUNDS = 50.0
_LARGE_BOUNDS = 2000.0
_SCALE_SKEW = 0.1


@dataclass(frozen=True, slots=True)
class ParsedLayout:
    viewport: Viewport
    regions: tuple[Region, ...]

    @property
    def spots(self) -> tuple[Region, ...]:
        return tuple(region for region in self.regions if region.kind == "spot")

    @property
    def capacity_zones(self) -> tuple[Region, ...]:
        return tuple(region for region in self.regions if region.kind == "capacity_zone")

    @property
    def is_empty(self) -> bool:
        return not self.regions


@dataclass(frozen=True, slots=True)
class LayoutAnalysis:
    """Diagnostic summary used when onboarding a new layout."""

    viewport: Viewport
    bounds: Box
    section_labels: tuple[str, ...]
    slot_formats: tuple[str, ...]
    recommendations: tuple[str, ...]


def parse_layout(
    markup: str,
    hints: Sequence[SectionHint] = (),
    *,
    limits: ShapeLimits | None = None,
) -> ParsedLayout:
    """Parse layout markup into its viewport and interactive regions.

    Malformed elements are skipped. A layout without any recognizable region
    yields an empty region tuple.
    """
    scan = scan_markup(markup)
    regions = classify(scan.elements, hints, limits=limits)
    _LOGGER.debug("Parsed layout with %s regions", len(regions))
    return ParsedLayout(viewport=scan.viewport, regions=tuple(regions))


def _unique(values: list[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(values))


def _translation_bounds(scan: MarkupScan) -> Box:
    offsets = [
        element.own_transform
        for element in scan.elements
        if element.tag == GROUP_TAG and element.own_transform is not None
    ]
    if not offsets:
        viewport = scan.viewport
        return Box(viewport.origin_x, viewport.origin_y, viewport.width, viewport.height)
    min_x = min(offset.dx for offset in offsets)
    min_y = min(offset.dy for offset in offsets)
    max_x = max(offset.dx for offset in offsets)
    max_y = max(offset.dy for offset in offsets)
    return Box(min_x, min_y, max_x - min_x, max_y - min_y)


def _has_skewed_scale(scan: MarkupScan) -> bool:
    for element in scan.elements:
        if element.tag != "svg":
            continue
        if "viewbox" not in element.attributes:
            return False
        width = parse_number(element.attributes.get("width"))
        height = parse_number(element.attributes.get("height"))
        if not width or not height:
            return False
        viewport = scan.viewport
        return abs(width / viewport.width - height / viewport.height) > _SCALE_SKEW
    return False


def analyze_layout(markup: str) -> LayoutAnalysis:
    scan = scan_markup(markup)
    bounds = _translation_bounds(scan)
    labels = _unique(
        [
            element.text
            for element in scan.elements
            if element.tag == TEXT_TAG and _SECTION_LABEL_RE.match(element.text)
        ]
    )
    formats = _unique(
        [
            _DIGITS_RE.sub("#", element.attributes[SLOT_ID_ATTR])
            for element in scan.elements
            if "-" in element.attributes.get(SLOT_ID_ATTR, "")
        ]
    )
    recommendations = []
    if bounds.width == 0 or bounds.height == 0:
        recommendations.append("No parking elements detected, check the markup structure")
    elif bounds.width < _SMALL_BOUNDS or bounds.height < _SMALL_BOUNDS:
        recommendations.append("Very small coordinate bounds, the layout may need scaling")
    elif bounds.width > _LARGE_BOUNDS or bounds.height > _LARGE_BOUNDS:
        recommendations.append("Very large coordinate bounds, the layout may need scaling")
    if not labels:
        recommendations.append("No sections detected, check the text elements")
    if not formats:
        recommendations.append("No slot id formats detected, check the data-slot-id attributes")
    if _has_skewed_scale(scan):
        recommendations.append("Non-uniform scaling detected, tap positions may be inaccurate")
    return LayoutAnalysis(
        viewport=scan.viewport,
        bounds=bounds,
        section_labels=labels,
        slot_formats=formats,
        recommendations=tuple(recommendations),
    )


__all__ = [
    "LayoutAnalysis",
    "MarkupScan",
    "ParsedLayout",
    "ShapeLimits",
    "analyze_layout",
    "classify",
    "parse_layout",
    "parse_viewport",
    "scan_markup",
]
