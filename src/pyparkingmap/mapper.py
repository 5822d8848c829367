"""Mapping between a layout's native coordinates and its rendered frame."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from .geometry import Fit, fit_inside
from .models import Box, Point, Region, RenderFrame, Viewport


def compute_fit(viewport: Viewport, frame: RenderFrame) -> Fit:
    return fit_inside(
        viewport.width,
        viewport.height,
        frame.container_width,
        frame.container_height,
    )


def to_render_space(native_box: Box, viewport: Viewport, frame: RenderFrame) -> Box:
    fit = compute_fit(viewport, frame)
    return Box(
        x=(native_box.x - viewport.origin_x) * fit.scale + fit.offset_x,
        y=(native_box.y - viewport.origin_y) * fit.scale + fit.offset_y,
        width=native_box.width * fit.scale,
        height=native_box.height * fit.scale,
    )


def point_to_render_space(point: Point, viewport: Viewport, frame: RenderFrame) -> Point:
    fit = compute_fit(viewport, frame)
    return Point(
        x=(point.x - viewport.origin_x) * fit.scale + fit.offset_x,
        y=(point.y - viewport.origin_y) * fit.scale + fit.offset_y,
    )


def to_native_space(point: Point, viewport: Viewport, frame: RenderFrame) -> Point:
    fit = compute_fit(viewport, frame)
    return Point(
        x=(point.x - fit.offset_x) / fit.scale + viewport.origin_x,
        y=(point.y - fit.offset_y) / fit.scale + viewport.origin_y,
    )


def position_regions(
    regions: Iterable[Region],
    viewport: Viewport,
    frame: RenderFrame,
) -> list[tuple[Region, Box]]:
    """Place every region in the frame, dropping any that render degenerate."""
    positioned: list[tuple[Region, Box]] = []
    for region in regions:
        box = to_render_space(region.native_box, viewport, frame)
        if box.is_valid:
            positioned.append((region, box))
    return positioned


def hit_test(
    tap: Point,
    regions: Sequence[Region],
    viewport: Viewport,
    frame: RenderFrame,
) -> Region | None:
    """Return the top-most region under a tap given in frame pixels."""
    native = to_native_space(tap, viewport, frame)
    for region in reversed(regions):
        if region.native_box.contains(native):
            return region
    return None
