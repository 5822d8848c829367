"""Turn scanned markup elements into bookable regions."""

from __future__ import annotations

import logging
from collections.abc import Collection, Sequence

from ..models import Box, RawElement, Region, SectionHint
from ..util import section_name_from_id
from .const import (
    ATTRIBUTE_SLOT_SIZE,
    GROUP_TAG,
    RECT_TAG,
    SLOT_ID_ATTR,
    SLOT_LOCAL_ATTR,
    SLOT_NUMBER_ATTR,
    SLOT_SECTION_ATTR,
    SLOT_TYPE_ATTR,
    SLOT_TYPE_VALUE,
)
from .rules import (
    DEFAULT_RULES,
    Accept,
    Candidate,
    Rule,
    RuleContext,
    ShapeLimits,
    evaluate,
    extract_section_letter,
    extract_spot_number,
    is_capacity_identifier,
)
from .sections import resolve_section_zones

_LOGGER = logging.getLogger(__name__)


def is_attribute_slot(element: RawElement) -> bool:
    attributes = element.attributes
    if attributes.get(SLOT_TYPE_ATTR) == SLOT_TYPE_VALUE:
        return True
    return bool(attributes.get(SLOT_NUMBER_ATTR)) and bool(attributes.get(SLOT_ID_ATTR))


def _slot_box(elements: Sequence[RawElement], element: RawElement) -> Box:
    if element.tag == RECT_TAG and element.box is not None and element.box.is_valid:
        return element.box
    if element.first_rect is not None:
        return element.first_rect
    if element.tag != GROUP_TAG:
        index = element.parent
        while index is not None:
            parent = elements[index]
            if parent.tag == GROUP_TAG:
                if parent.first_rect is not None:
                    return parent.first_rect
                break
            index = parent.parent
    frame = element.frame
    width, height = ATTRIBUTE_SLOT_SIZE
    return Box(x=frame.dx, y=frame.dy, width=width, height=height)


def build_candidate(
    elements: Sequence[RawElement],
    element: RawElement,
    capacity_names: Collection[str] = (),
) -> Candidate | None:
    """Prepare an element for rule evaluation, or None when it carries no identity."""
    if is_attribute_slot(element):
        attributes = element.attributes
        slot_id = (attributes.get(SLOT_ID_ATTR) or element.id or "").strip()
        number = (attributes.get(SLOT_NUMBER_ATTR) or "").strip()
        if not number and slot_id:
            number = extract_spot_number(slot_id) or ""
        identifier = slot_id or (f"slot-{number}" if number else "")
        if not identifier:
            return None
        return Candidate(
            element=element,
            identifier=identifier,
            box=_slot_box(elements, element),
            spot_number=number or identifier,
            section_name=attributes.get(SLOT_SECTION_ATTR) or None,
            local_slot=attributes.get(SLOT_LOCAL_ATTR) or None,
            is_attribute_slot=True,
        )
    if not element.id or not element.id.strip():
        return None
    identifier = element.id.strip()
    if is_capacity_identifier(identifier, capacity_names):
        return Candidate(
            element=element,
            identifier=identifier,
            box=element.box,
            section_name=section_name_from_id(identifier),
            is_capacity_zone=True,
        )
    return Candidate(
        element=element,
        identifier=identifier,
        box=element.box,
        spot_number=extract_spot_number(identifier),
        section_name=extract_section_letter(identifier),
    )


def _region(candidate: Candidate, verdict: Accept) -> Region:
    if verdict.kind == "capacity_zone":
        section = candidate.section_name or candidate.identifier
        return Region(
            id=candidate.identifier,
            kind="capacity_zone",
            native_box=candidate.box,
            spot_number=section,
            section_name=section,
            source=verdict.source,
        )
    return Region(
        id=candidate.identifier,
        kind="spot",
        native_box=candidate.box,
        spot_number=candidate.spot_number or candidate.identifier,
        section_name=candidate.section_name,
        local_slot=candidate.local_slot,
        source=verdict.source,
    )


def classify(
    elements: Sequence[RawElement],
    hints: Sequence[SectionHint] = (),
    *,
    limits: ShapeLimits | None = None,
    rules: tuple[Rule, ...] = DEFAULT_RULES,
) -> list[Region]:
    """Classify scanned elements into deduplicated spot and capacity zone regions."""
    context = RuleContext(limits=limits or ShapeLimits())
    capacity_names = [hint.section_name for hint in hints if hint.mode == "capacity_only"]
    regions: list[Region] = []
    for element in elements:
        candidate = build_candidate(elements, element, capacity_names)
        if candidate is None:
            continue
        rule_name, verdict = evaluate(candidate, context, rules)
        if not isinstance(verdict, Accept):
            _LOGGER.debug(
                "Skipped layout element %s (%s): %s",
                candidate.identifier,
                rule_name or "no rule",
                verdict.reason,
            )
            continue
        if candidate.box is None or not candidate.box.is_valid:
            _LOGGER.debug("Skipped layout element %s: no valid bounding box", candidate.identifier)
            continue
        region = _region(candidate, verdict)
        context.accepted_ids.add(region.id)
        if region.kind == "spot":
            context.accepted_spot_numbers.add(region.spot_number)
        regions.append(region)

    known_sections = {
        region.section_name.lower()
        for region in regions
        if region.kind == "capacity_zone" and region.section_name
    }
    for region in resolve_section_zones(elements, hints, known_sections):
        if region.id in context.accepted_ids:
            continue
        context.accepted_ids.add(region.id)
        regions.append(region)
    _LOGGER.debug("Classified %s layout regions", len(regions))
    return regions
