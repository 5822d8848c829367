"""Manual check of layout parsing.

Parse a local markup file:
  PYTHONPATH=src python scripts/layout_check.py layout.svg

Map regions into a render frame and add a capacity-only section hint:
  PYTHONPATH=src python scripts/layout_check.py layout.svg \
    --frame 390x420 --hint V:capacity_only:0,0

Fetch the layout of a live area instead:
  TOKEN=... PYTHONPATH=src python scripts/layout_check.py \
    --area-id 2 --base-url https://tappark.example

Debug helpers:
  --analyze prints bounds, detected labels and slot formats.
  --log-level DEBUG prints every skipped element with its reason.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from pyparkingmap import Client
from pyparkingmap.exceptions import PyParkingMapError
from pyparkingmap.markup import analyze_layout, parse_layout
from pyparkingmap.mapper import position_regions
from pyparkingmap.models import RenderFrame, SectionHint
from pyparkingmap.util import parse_grid_position

_LOGGER = logging.getLogger(__name__)


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Parse a parking layout and list its regions.")
    parser.add_argument("path", nargs="?", help="Markup file to parse.")
    parser.add_argument("--area-id", dest="area_id", help="Fetch the layout of this area.")
    parser.add_argument("--base-url", dest="base_url", help="Backend base URL.")
    parser.add_argument("--api-uri", dest="api_uri", default="/api", help="Backend API URI.")
    parser.add_argument(
        "--hint",
        dest="hints",
        action="append",
        default=[],
        help="Section hint as NAME:MODE[:ROW,COL], MODE is capacity_only or slot_based.",
    )
    parser.add_argument("--frame", dest="frame", help="Render frame as WIDTHxHEIGHT.")
    parser.add_argument("--analyze", action="store_true", help="Print layout diagnostics.")
    parser.add_argument("--log-level", dest="log_level", default="WARNING", help="Logging level.")
    return parser.parse_args()


def _parse_hint(value: str) -> SectionHint:
    parts = value.split(":")
    if len(parts) < 2 or parts[1] not in ("capacity_only", "slot_based"):
        raise ValueError(f"Invalid hint: {value}")
    position = parse_grid_position(parts[2]) if len(parts) > 2 else None
    return SectionHint(section_name=parts[0], mode=parts[1], grid_position=position)


def _parse_frame(value: str | None) -> RenderFrame | None:
    if not value:
        return None
    width, _, height = value.lower().partition("x")
    frame = RenderFrame(container_width=float(width), container_height=float(height))
    if frame.container_width <= 0 or frame.container_height <= 0:
        raise ValueError(f"Invalid frame: {value}")
    return frame


async def _fetch_markup(args: argparse.Namespace) -> tuple[str | None, tuple[SectionHint, ...]]:
    base_url = args.base_url or os.getenv("BASE_URL")
    if not base_url:
        raise ValueError("base_url is required with --area-id")
    async with Client(base_url=base_url, api_uri=args.api_uri, token=os.getenv("TOKEN")) as client:
        layout = await client.provider.get_layout_markup(args.area_id)
    return layout.markup, layout.section_hints


async def main() -> int:
    args = _parse_args()
    logging.basicConfig(level=args.log_level.upper())
    try:
        hints: tuple[SectionHint, ...] = tuple(_parse_hint(value) for value in args.hints)
        frame = _parse_frame(args.frame)
        if args.area_id:
            markup, fetched_hints = await _fetch_markup(args)
            hints = hints or fetched_hints
        elif args.path:
            markup = Path(args.path).read_text(encoding="utf-8")
        else:
            print("Pass a markup file or --area-id", file=sys.stderr)
            return 2
    except (OSError, ValueError, PyParkingMapError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if not markup:
        print("Area has no layout")
        return 0

    layout = parse_layout(markup, hints)
    _LOGGER.info("Parsed layout with %s section hints", len(hints))
    viewport = layout.viewport
    print(
        f"Viewport: {viewport.origin_x:g} {viewport.origin_y:g} "
        f"{viewport.width:g} {viewport.height:g}"
    )
    print(f"Regions: {len(layout.regions)} ({len(layout.spots)} spots)")
    for region in layout.regions:
        box = region.native_box
        print(
            f"- {region.id} [{region.kind}/{region.source}] number={region.spot_number} "
            f"box=({box.x:g}, {box.y:g}, {box.width:g}, {box.height:g})"
        )
    if frame is not None:
        print(f"Rendered in {frame.container_width:g}x{frame.container_height:g}:")
        for region, box in position_regions(layout.regions, viewport, frame):
            print(f"- {region.id} ({box.x:.1f}, {box.y:.1f}, {box.width:.1f}, {box.height:.1f})")
    if args.analyze:
        analysis = analyze_layout(markup)
        bounds = analysis.bounds
        print(f"Bounds: ({bounds.x:g}, {bounds.y:g}, {bounds.width:g}, {bounds.height:g})")
        print(f"Section labels: {', '.join(analysis.section_labels) or '-'}")
        print(f"Slot formats: {', '.join(analysis.slot_formats) or '-'}")
        for recommendation in analysis.recommendations:
            print(f"! {recommendation}")
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
