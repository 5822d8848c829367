"""Interactive layout session for a single parking area."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any

from .exceptions import PyParkingMapError
from .markup import ParsedLayout, parse_layout
from .markup.scanner import parse_viewport
from .mapper import hit_test, position_regions
from .models import Box, DecoratedRegion, Point, RenderFrame, Viewport
from .provider.base import (
    CAPACITY_UPDATED_EVENT,
    SPOTS_UPDATED_EVENT,
    BasePushChannel,
    BaseProvider,
)
from .provider.loader import LayoutProfile, match_profile
from .reconcile import build_status_index, reconcile

_LOGGER = logging.getLogger(__name__)

REFRESH_INTERVAL = 1.5


class LayoutSession:
    """Own the region list and live status of one opened layout.

    Opening a layout again, or closing the session, supersedes any refresh
    still in flight; its result is dropped when it resolves.
    """

    def __init__(
        self,
        provider: BaseProvider,
        area_id: str,
        *,
        area_name: str | None = None,
        user_id: str | None = None,
        channel: BasePushChannel | None = None,
        refresh_interval: float = REFRESH_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._provider = provider
        self._area_id = str(area_id)
        self._area_name = area_name
        self._user_id = user_id
        self._channel = channel
        self._refresh_interval = refresh_interval
        self._clock = clock
        self._generation = 0
        self._layout: ParsedLayout | None = None
        self._profile: LayoutProfile | None = None
        self._regions: tuple[DecoratedRegion, ...] = ()
        self._last_refresh: float | None = None
        self._subscribed = False

    async def __aenter__(self) -> LayoutSession:
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def area_id(self) -> str:
        return self._area_id

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def layout(self) -> ParsedLayout | None:
        return self._layout

    @property
    def has_layout(self) -> bool:
        return self._layout is not None and not self._layout.is_empty

    @property
    def viewport(self) -> Viewport | None:
        return self._layout.viewport if self._layout is not None else None

    @property
    def profile(self) -> LayoutProfile | None:
        return self._profile

    @property
    def regions(self) -> tuple[DecoratedRegion, ...]:
        return self._regions

    async def open(self) -> ParsedLayout:
        """Load, parse and decorate the area's layout."""
        self._generation += 1
        generation = self._generation
        _LOGGER.debug("Layout session for area %s opening", self._area_id)
        markup = await self._provider.get_layout_markup(self._area_id)
        if generation != self._generation:
            _LOGGER.debug("Discarded superseded layout for area %s", self._area_id)
            return self._layout or ParsedLayout(viewport=parse_viewport(""), regions=())
        if markup.has_layout and markup.markup:
            layout = parse_layout(markup.markup, markup.section_hints)
        else:
            _LOGGER.debug("Area %s has no layout", self._area_id)
            layout = ParsedLayout(viewport=parse_viewport(""), regions=())
        self._layout = layout
        self._profile = match_profile(self._area_id, self._area_name or markup.area_name)
        self._regions = reconcile(layout.regions, {}, (), profile=self._profile)
        self._last_refresh = None
        await self._subscribe()
        await self.refresh(force=True)
        return layout

    async def close(self) -> None:
        self._generation += 1
        await self._unsubscribe()
        self._layout = None
        self._regions = ()
        self._last_refresh = None

    async def refresh(self, *, force: bool = False) -> bool:
        """Re-fetch status snapshots and reconcile; throttled unless forced."""
        if self._layout is None:
            return False
        now = self._clock()
        if (
            not force
            and self._last_refresh is not None
            and now - self._last_refresh < self._refresh_interval
        ):
            _LOGGER.debug("Refresh for area %s throttled", self._area_id)
            return False
        previous = self._last_refresh
        self._last_refresh = now
        generation = self._generation
        try:
            statuses, capacities = await asyncio.gather(
                self._provider.get_occupancy_snapshot(self._area_id),
                self._provider.get_capacity_snapshot(self._area_id),
            )
        except PyParkingMapError as exc:
            if generation == self._generation:
                self._last_refresh = previous
            _LOGGER.warning("Refresh for area %s failed: %s", self._area_id, exc)
            return False
        if generation != self._generation or self._layout is None:
            _LOGGER.debug("Discarded superseded refresh for area %s", self._area_id)
            return False
        self._regions = reconcile(
            self._layout.regions,
            build_status_index(statuses),
            capacities,
            profile=self._profile,
        )
        return True

    async def handle_event(self, payload: dict[str, Any]) -> bool:
        """React to a push notification for any area."""
        area_id = payload.get("areaId") if isinstance(payload, dict) else None
        if area_id is None or str(area_id) != self._area_id:
            _LOGGER.debug("Ignored update for area %s", area_id)
            return False
        return await self.refresh()

    def positioned(self, frame: RenderFrame) -> list[tuple[DecoratedRegion, Box]]:
        """Return every decorated region with its box inside ``frame``."""
        if self._layout is None:
            return []
        by_id = {item.region.id: item for item in self._regions}
        return [
            (by_id[region.id], box)
            for region, box in position_regions(
                [item.region for item in self._regions],
                self._layout.viewport,
                frame,
            )
        ]

    def region_at(self, tap: Point, frame: RenderFrame) -> DecoratedRegion | None:
        if self._layout is None:
            return None
        hit = hit_test(tap, [item.region for item in self._regions], self._layout.viewport, frame)
        if hit is None:
            return None
        for item in self._regions:
            if item.region.id == hit.id:
                return item
        return None

    async def _subscribe(self) -> None:
        if self._channel is None or self._subscribed:
            return
        self._channel.on(SPOTS_UPDATED_EVENT, self.handle_event)
        self._channel.on(CAPACITY_UPDATED_EVENT, self.handle_event)
        await self._channel.subscribe(self._area_id, self._user_id)
        self._subscribed = True

    async def _unsubscribe(self) -> None:
        if self._channel is None or not self._subscribed:
            return
        self._channel.off(SPOTS_UPDATED_EVENT, self.handle_event)
        self._channel.off(CAPACITY_UPDATED_EVENT, self.handle_event)
        await self._channel.unsubscribe(self._area_id, self._user_id)
        self._subscribed = False
