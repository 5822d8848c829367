"""Shared utilities for validation and normalization."""

from __future__ import annotations

import math
import re
from typing import Any

from .exceptions import ValidationError
from .models import Transform

_NUMBER_RE = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")
_TRANSLATE_RE = re.compile(r"translate\(\s*([^)]*)\)", re.IGNORECASE)
_FLOOR_PREFIX_RE = re.compile(r"^F\d+-", re.IGNORECASE)
_SECTION_PREFIX = "section-"

# Two-wheeled classes share one spot class.
_SPOT_CLASS_ALIASES = {
    "bicycle": "bike",
    "ebike": "bike",
    "e-bike": "bike",
}


def parse_number(value: Any) -> float | None:
    """Parse a markup length or number, ignoring unit suffixes."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        number = float(value)
        return number if math.isfinite(number) else None
    if not isinstance(value, str):
        return None
    match = _NUMBER_RE.match(value.strip())
    if match is None:
        return None
    number = float(match.group(0))
    return number if math.isfinite(number) else None


def parse_numbers(value: str) -> list[float]:
    return [float(item) for item in _NUMBER_RE.findall(value)]


def parse_translate(value: str | None) -> Transform | None:
    """Return the summed translation of a transform attribute, if it has any."""
    if not value:
        return None
    dx = 0.0
    dy = 0.0
    found = False
    for match in _TRANSLATE_RE.finditer(value):
        numbers = parse_numbers(match.group(1))
        if not numbers:
            continue
        found = True
        dx += numbers[0]
        dy += numbers[1] if len(numbers) > 1 else 0.0
    if not found:
        return None
    return Transform(dx=dx, dy=dy)


def strip_floor_prefix(identifier: str) -> str:
    return _FLOOR_PREFIX_RE.sub("", identifier)


def section_name_from_id(identifier: str) -> str:
    if identifier.lower().startswith(_SECTION_PREFIX):
        return identifier[len(_SECTION_PREFIX) :]
    return identifier


def section_region_id(section_name: str) -> str:
    return f"{_SECTION_PREFIX}{section_name}"


def spot_class_for_vehicle(vehicle_class: str) -> str:
    if not isinstance(vehicle_class, str) or not vehicle_class.strip():
        raise ValidationError("Vehicle class must be a non-empty string.")
    normalized = vehicle_class.strip().lower()
    return _SPOT_CLASS_ALIASES.get(normalized, normalized)


def is_vehicle_compatible(vehicle_class: str, spot_class: str | None) -> bool:
    if not spot_class:
        return True
    return spot_class_for_vehicle(vehicle_class) == spot_class.strip().lower()


def parse_grid_position(value: Any) -> tuple[int, int] | None:
    """Parse a ``"row,col"`` grid position."""
    if isinstance(value, list | tuple) and len(value) == 2:
        parts = [str(item) for item in value]
    elif isinstance(value, str):
        parts = [part.strip() for part in value.split(",")]
    else:
        return None
    if len(parts) != 2:
        return None
    try:
        return int(float(parts[0])), int(float(parts[1]))
    except (ValueError, OverflowError):
        return None


def coerce_id(value: Any) -> str | None:
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    return text or None


def parse_int(value: Any) -> int:
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return 0
        try:
            return int(float(stripped))
        except (ValueError, OverflowError):
            return 0
    return 0
