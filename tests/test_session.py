from __future__ import annotations

import asyncio
import logging

import pytest

from pyparkingmap.exceptions import NetworkError

from pyparkingmap.models import (
    CapacitySnapshot,
    LayoutMarkup,
    Point,
    RenderFrame,
    SectionHint,
    StatusRecord,
)
from pyparkingmap.provider.base import CAPACITY_UPDATED_EVENT, SPOTS_UPDATED_EVENT, LocalPushChannel
from pyparkingmap.session import LayoutSession

LAYOUT_SVG = """
<svg viewBox="0 0 276 322">
  <g id="FPA-S-001" transform="translate(10,10)"><rect width="40" height="30"/></g>
  <g id="FPA-S-002" transform="translate(60,10)"><rect width="40" height="30"/></g>
  <g transform="translate(104,52)"><rect width="52" height="156"/></g>
</svg>
"""


class _Clock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


class _FakeProvider:
    def __init__(self) -> None:
        self.layout = LayoutMarkup(
            has_layout=True,
            markup=LAYOUT_SVG,
            section_hints=(SectionHint("E", "capacity_only", (1, 2)),),
            area_name="FPA Parking",
        )
        self.statuses = [StatusRecord(key="FPA-S-001", status="occupied", vehicle_class="motorcycle")]
        self.capacities = [CapacitySnapshot("E", "motorcycle", 15, 6)]
        self.snapshot_calls = 0
        self.gate: asyncio.Event | None = None
        self.error: Exception | None = None

    async def get_layout_markup(self, area_id):
        return self.layout

    async def get_occupancy_snapshot(self, area_id):
        self.snapshot_calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return list(self.statuses)

    async def get_capacity_snapshot(self, area_id):
        return list(self.capacities)


def _statuses(session: LayoutSession) -> dict[str, str]:
    return {item.region.id: item.status for item in session.regions}


@pytest.mark.asyncio
async def test_open_parses_and_decorates_layout() -> None:
    provider = _FakeProvider()
    session = LayoutSession(provider, "2", clock=_Clock())

    layout = await session.open()

    assert session.has_layout
    assert [region.id for region in layout.regions] == ["FPA-S-001", "FPA-S-002", "section-E"]
    assert session.profile.id == "fpa"
    assert _statuses(session) == {
        "FPA-S-001": "occupied",
        "FPA-S-002": "available",
        "section-E": "available",
    }


@pytest.mark.asyncio
async def test_open_without_layout() -> None:
    provider = _FakeProvider()
    provider.layout = LayoutMarkup(has_layout=False)
    session = LayoutSession(provider, "9", clock=_Clock())

    layout = await session.open()

    assert layout.is_empty
    assert session.has_layout is False
    assert session.regions == ()
    assert session.viewport.width == 276.0


@pytest.mark.asyncio
async def test_refresh_is_throttled() -> None:
    provider = _FakeProvider()
    clock = _Clock()
    session = LayoutSession(provider, "2", clock=clock)
    await session.open()
    assert provider.snapshot_calls == 1

    provider.statuses = [StatusRecord(key="FPA-S-002", status="occupied")]
    clock.now += 0.5
    assert await session.refresh() is False
    assert provider.snapshot_calls == 1

    clock.now += 1.0
    assert await session.refresh() is True
    assert _statuses(session)["FPA-S-002"] == "occupied"
    assert await session.refresh(force=True) is True
    assert provider.snapshot_calls == 3


@pytest.mark.asyncio
async def test_push_events_refresh_matching_area_only() -> None:
    provider = _FakeProvider()
    channel = LocalPushChannel()
    clock = _Clock()
    session = LayoutSession(provider, "2", user_id="u1", channel=channel, clock=clock)
    await session.open()
    assert channel.subscriptions == {("2", "u1")}

    clock.now += 5.0
    assert await channel.emit(SPOTS_UPDATED_EVENT, {"areaId": 3}) == [False]
    assert provider.snapshot_calls == 1

    provider.capacities = [CapacitySnapshot("E", "motorcycle", 15, 0)]
    assert await channel.emit(CAPACITY_UPDATED_EVENT, {"areaId": 2}) == [True]
    assert _statuses(session)["section-E"] == "occupied"

    await session.close()
    assert channel.subscriptions == set()
    assert await channel.emit(SPOTS_UPDATED_EVENT, {"areaId": 2}) == []


@pytest.mark.asyncio
async def test_refresh_after_close_is_discarded() -> None:
    provider = _FakeProvider()
    clock = _Clock()
    session = LayoutSession(provider, "2", clock=clock)
    await session.open()

    provider.gate = asyncio.Event()
    clock.now += 5.0
    pending = asyncio.ensure_future(session.refresh())
    await asyncio.sleep(0)
    await session.close()
    provider.gate.set()

    assert await pending is False
    assert session.regions == ()


@pytest.mark.asyncio
async def test_region_at_maps_taps_to_decorated_regions() -> None:
    provider = _FakeProvider()
    async with LayoutSession(provider, "2", clock=_Clock()) as session:
        frame = RenderFrame(552.0, 644.0)
        hit = session.region_at(Point(60.0, 40.0), frame)
        positioned = session.positioned(frame)

    assert hit.region.id == "FPA-S-001"
    assert hit.status == "occupied"
    assert [item.region.id for item, _box in positioned] == ["FPA-S-001", "FPA-S-002", "section-E"]
    assert session.region_at(Point(60.0, 40.0), frame) is None


@pytest.mark.asyncio
async def test_failed_refresh_keeps_regions_and_releases_throttle(caplog) -> None:
    provider = _FakeProvider()
    channel = LocalPushChannel()
    clock = _Clock()
    session = LayoutSession(provider, "2", channel=channel, clock=clock)
    await session.open()
    seen: list[dict] = []
    channel.on(SPOTS_UPDATED_EVENT, seen.append)

    provider.error = NetworkError("down")
    clock.now += 5.0
    with caplog.at_level(logging.WARNING):
        results = await channel.emit(SPOTS_UPDATED_EVENT, {"areaId": "2"})

    assert results[0] is False
    assert seen == [{"areaId": "2"}]
    assert _statuses(session)["FPA-S-001"] == "occupied"
    assert any(record.levelno == logging.WARNING for record in caplog.records)

    provider.error = None
    provider.statuses = [StatusRecord(key="FPA-S-002", status="occupied")]
    clock.now += 0.5
    assert await session.handle_event({"areaId": "2"}) is True
    assert _statuses(session)["FPA-S-002"] == "occupied"
