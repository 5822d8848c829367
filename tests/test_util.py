import pytest

from pyparkingmap.exceptions import ValidationError
from pyparkingmap.models import Transform
from pyparkingmap.util import (
    coerce_id,
    is_vehicle_compatible,
    parse_grid_position,
    parse_int,
    parse_number,
    parse_translate,
    section_name_from_id,
    spot_class_for_vehicle,
    strip_floor_prefix,
)


def test_parse_number_ignores_units() -> None:
    assert parse_number("40px") == 40.0
    assert parse_number(" -2.5e1 ") == -25.0
    assert parse_number("auto") is None
    assert parse_number(None) is None
    assert parse_number(float("nan")) is None


def test_parse_translate_sums_translations() -> None:
    assert parse_translate("translate(10, 20) translate(5)") == Transform(15.0, 20.0)
    assert parse_translate("rotate(45)") is None
    assert parse_translate(None) is None


def test_strip_floor_prefix() -> None:
    assert strip_floor_prefix("F2-A-17") == "A-17"
    assert strip_floor_prefix("FPA-S-001") == "FPA-S-001"


def test_section_name_from_id() -> None:
    assert section_name_from_id("section-VB") == "VB"
    assert section_name_from_id("VB") == "VB"


def test_spot_class_for_vehicle() -> None:
    assert spot_class_for_vehicle("Bicycle") == "bike"
    assert spot_class_for_vehicle("ebike") == "bike"
    assert spot_class_for_vehicle("Car") == "car"


def test_spot_class_for_vehicle_invalid() -> None:
    with pytest.raises(ValidationError):
        spot_class_for_vehicle(" ")


def test_is_vehicle_compatible() -> None:
    assert is_vehicle_compatible("bicycle", "bike")
    assert is_vehicle_compatible("car", None)
    assert not is_vehicle_compatible("car", "motorcycle")


def test_parse_grid_position() -> None:
    assert parse_grid_position("1, 2") == (1, 2)
    assert parse_grid_position([0, 3]) == (0, 3)
    assert parse_grid_position("1") is None
    assert parse_grid_position("a,b") is None
    assert parse_grid_position(None) is None


def test_coerce_id_and_parse_int() -> None:
    assert coerce_id(12) == "12"
    assert coerce_id("  ") is None
    assert coerce_id(True) is None
    assert parse_int("7") == 7
    assert parse_int("x") == 0
    assert parse_int(None) == 0
