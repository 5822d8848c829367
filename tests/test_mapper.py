import pytest

from pyparkingmap.exceptions import ValidationError
from pyparkingmap.geometry import fit_inside, union_boxes
from pyparkingmap.mapper import hit_test, position_regions, to_native_space, to_render_space
from pyparkingmap.models import Box, Point, Region, RenderFrame, Viewport

VIEWPORT = Viewport(0.0, 0.0, 276.0, 322.0)


def _spot(region_id: str, box: Box) -> Region:
    return Region(id=region_id, kind="spot", native_box=box, spot_number=region_id)


def test_fit_inside_letterboxes_wide_content() -> None:
    fit = fit_inside(200.0, 100.0, 400.0, 400.0)

    assert fit.scale == 2.0
    assert fit.offset_x == 0.0
    assert fit.offset_y == 100.0


def test_fit_inside_pillarboxes_tall_content() -> None:
    fit = fit_inside(100.0, 200.0, 400.0, 200.0)

    assert fit.scale == 1.0
    assert fit.offset_x == 150.0
    assert fit.offset_y == 0.0


def test_fit_inside_rejects_degenerate_sizes() -> None:
    with pytest.raises(ValidationError):
        fit_inside(0.0, 100.0, 100.0, 100.0)
    with pytest.raises(ValidationError):
        fit_inside(100.0, 100.0, 100.0, 0.0)


def test_union_boxes() -> None:
    boxes = [Box(0.0, 0.0, 10.0, 10.0), Box(5.0, -5.0, 10.0, 10.0)]

    assert union_boxes(boxes) == Box(0.0, -5.0, 15.0, 15.0)
    assert union_boxes([]) is None


def test_to_render_space_respects_viewport_origin() -> None:
    viewport = Viewport(100.0, 50.0, 200.0, 100.0)
    frame = RenderFrame(400.0, 400.0)

    assert to_render_space(Box(100.0, 50.0, 20.0, 10.0), viewport, frame) == Box(0.0, 100.0, 40.0, 20.0)


@pytest.mark.parametrize(
    "frame",
    [RenderFrame(390.0, 420.0), RenderFrame(1024.0, 300.0), RenderFrame(276.0, 322.0)],
)
def test_native_render_round_trip(frame: RenderFrame) -> None:
    point = Point(37.5, 210.25)
    rendered = to_render_space(Box(point.x, point.y, 1.0, 1.0), VIEWPORT, frame)
    native = to_native_space(Point(rendered.x, rendered.y), VIEWPORT, frame)

    assert native.x == pytest.approx(point.x)
    assert native.y == pytest.approx(point.y)


def test_position_regions_drops_degenerate_boxes() -> None:
    regions = [_spot("A-1", Box(10.0, 10.0, 40.0, 30.0)), _spot("A-2", Box(1e308, 10.0, 40.0, 30.0))]
    positioned = position_regions(regions, VIEWPORT, RenderFrame(552.0, 644.0))

    assert [region.id for region, _box in positioned] == ["A-1"]
    assert positioned[0][1] == Box(20.0, 20.0, 80.0, 60.0)


def test_hit_test_returns_topmost_region() -> None:
    frame = RenderFrame(552.0, 644.0)
    regions = [
        _spot("A-1", Box(10.0, 10.0, 40.0, 30.0)),
        _spot("A-2", Box(30.0, 20.0, 40.0, 30.0)),
    ]

    assert hit_test(Point(30.0, 30.0), regions, VIEWPORT, frame).id == "A-1"
    assert hit_test(Point(80.0, 60.0), regions, VIEWPORT, frame).id == "A-2"
    assert hit_test(Point(500.0, 600.0), regions, VIEWPORT, frame) is None
