import pytest

from pyparkingmap.markup.rules import (
    DEFAULT_RULES,
    UNRECOGNIZED,
    Accept,
    Candidate,
    Reject,
    RuleContext,
    ShapeLimits,
    evaluate,
    extract_section_letter,
    extract_spot_number,
    is_capacity_identifier,
)
from pyparkingmap.models import Box, RawElement, Transform


def _candidate(
    identifier: str,
    *,
    tag: str = "rect",
    box: Box | None = Box(0.0, 0.0, 40.0, 30.0),
    labels: tuple[str, ...] = (),
    **kwargs,
) -> Candidate:
    element = RawElement(
        tag=tag,
        id=identifier,
        attributes={"id": identifier},
        raw_span=(0, 0),
        transform=Transform(),
        depth=len(labels),
        ancestor_labels=labels,
        box=box,
    )
    kwargs.setdefault("spot_number", extract_spot_number(identifier))
    return Candidate(element=element, identifier=identifier, box=box, **kwargs)


@pytest.mark.parametrize(
    ("identifier", "expected"),
    [
        ("FPA-S-004", "004"),
        ("F2-B-17", "17"),
        ("spot_9", "9"),
        ("parking12", "12"),
        ("slot 33", "33"),
        ("decor", None),
    ],
)
def test_extract_spot_number(identifier: str, expected: str | None) -> None:
    assert extract_spot_number(identifier) == expected


def test_extract_section_letter() -> None:
    assert extract_section_letter("FPA-S-004") == "S"
    assert extract_section_letter("f1-b-2") == "B"
    assert extract_section_letter("spot9") is None
    assert extract_section_letter("spot-001") is None
    assert extract_section_letter("Parking-3") is None


def test_is_capacity_identifier() -> None:
    assert is_capacity_identifier("VB")
    assert is_capacity_identifier("section-moto")
    assert is_capacity_identifier("Moto", ["moto"])
    assert is_capacity_identifier("section-Moto", ["moto"])
    assert not is_capacity_identifier("Moto")
    assert not is_capacity_identifier("ABCD")


def test_evaluate_accepts_plain_spot() -> None:
    assert evaluate(_candidate("A-1"), RuleContext()) == ("spot_identity", Accept("spot"))


def test_evaluate_rejects_road_descendants_before_attribute_slots() -> None:
    candidate = _candidate("A-1", labels=("Roads",), is_attribute_slot=True)
    assert evaluate(candidate, RuleContext()) == ("road_group", Reject("inside a road group"))


def test_evaluate_attribute_slot_skips_shape_limits() -> None:
    candidate = _candidate("slot-element", box=Box(0.0, 0.0, 500.0, 5.0), is_attribute_slot=True)
    assert evaluate(candidate, RuleContext()) == ("attribute_slot", Accept("spot", "attribute"))


def test_evaluate_duplicates() -> None:
    context = RuleContext(accepted_ids={"A-1"}, accepted_spot_numbers={"7"})

    assert evaluate(_candidate("A-1"), context)[0] == "duplicate_id"
    assert evaluate(_candidate("B-7"), context)[0] == "duplicate_spot_number"


def test_evaluate_capacity_zone_ignores_spot_number_duplicates() -> None:
    context = RuleContext(accepted_spot_numbers={"V"})
    candidate = _candidate("V", spot_number=None, section_name="V", is_capacity_zone=True)

    assert evaluate(candidate, context) == ("capacity_zone", Accept("capacity_zone"))


def test_evaluate_outline_only_for_zones() -> None:
    assert evaluate(_candidate("A-1", tag="path"), RuleContext())[0] == "bare_outline"
    zone = _candidate("V", tag="polygon", spot_number=None, is_capacity_zone=True)
    assert evaluate(zone, RuleContext())[0] == "capacity_zone"


def test_evaluate_respects_limits() -> None:
    context = RuleContext(limits=ShapeLimits(min_size=50.0))
    assert evaluate(_candidate("A-1"), context)[0] == "size_range"


def test_evaluate_unrecognized() -> None:
    assert evaluate(_candidate("decor"), RuleContext()) == (None, UNRECOGNIZED)


def test_default_rule_order() -> None:
    names = [rule.name for rule in DEFAULT_RULES]
    assert names[0] == "road_group"
    assert names.index("attribute_slot") < names.index("placeholder")
    assert names.index("oversize") < names.index("size_range") < names.index("aspect_ratio")
    assert names[-1] == "spot_identity"
