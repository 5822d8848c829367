"""Geometry primitives: box unions and aspect-preserving fit."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from .exceptions import ValidationError
from .models import Box, Point


@dataclass(frozen=True, slots=True)
class Fit:
    """Uniform scale plus centering offsets for a content box inside a frame."""

    scale: float
    offset_x: float
    offset_y: float
    rendered_width: float
    rendered_height: float


def union_boxes(boxes: Iterable[Box]) -> Box | None:
    min_x = min_y = max_x = max_y = None
    for box in boxes:
        min_x = box.x if min_x is None else min(min_x, box.x)
        min_y = box.y if min_y is None else min(min_y, box.y)
        max_x = box.right if max_x is None else max(max_x, box.right)
        max_y = box.bottom if max_y is None else max(max_y, box.bottom)
    if min_x is None or min_y is None or max_x is None or max_y is None:
        return None
    return Box(x=min_x, y=min_y, width=max_x - min_x, height=max_y - min_y)


def bounds_of_points(points: Iterable[Point]) -> Box | None:
    return union_boxes(Box(x=point.x, y=point.y, width=0.0, height=0.0) for point in points)


def fit_inside(
    content_width: float,
    content_height: float,
    frame_width: float,
    frame_height: float,
) -> Fit:
    """Fit content inside a frame, preserving aspect ratio and centering it."""
    if content_width <= 0 or content_height <= 0:
        raise ValidationError("Content dimensions must be positive.")
    if frame_width <= 0 or frame_height <= 0:
        raise ValidationError("Frame dimensions must be positive.")
    content_aspect = content_width / content_height
    frame_aspect = frame_width / frame_height
    if content_aspect > frame_aspect:
        scale = frame_width / content_width
        rendered_height = content_height * scale
        return Fit(
            scale=scale,
            offset_x=0.0,
            offset_y=(frame_height - rendered_height) / 2,
            rendered_width=frame_width,
            rendered_height=rendered_height,
        )
    scale = frame_height / content_height
    rendered_width = content_width * scale
    return Fit(
        scale=scale,
        offset_x=(frame_width - rendered_width) / 2,
        offset_y=0.0,
        rendered_width=rendered_width,
        rendered_height=frame_height,
    )
