"""Ordered classification rules for markup candidates.

Each rule pairs a predicate with a verdict. The first rule whose predicate holds
decides the candidate; a candidate no rule accepts is rejected as unrecognized.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Collection
from dataclasses import dataclass, field

from ..models import Box, RawElement, RegionKind, RegionSource
from .const import (
    DECORATIVE_TAGS,
    INFRASTRUCTURE_TOKENS,
    MAX_ASPECT_RATIO,
    MAX_SPOT_SIZE,
    MIN_ASPECT_RATIO,
    MIN_SPOT_SIZE,
    OUTLINE_TAGS,
    OVERSIZE_LIMIT,
    PLACEHOLDER_TOKEN,
    ROAD_GROUP_TOKEN,
)

# Ordered: the first pattern that matches names the spot.
_SPOT_PATTERNS = (
    (re.compile(r"FPA-([A-Z]+)-(\d+)", re.IGNORECASE), 2),
    (re.compile(r"(?:F\d+-)?([A-Z]+)-(\d+)", re.IGNORECASE), 2),
    (re.compile(r"(?:spot|parking)[-_]?(\d+)", re.IGNORECASE), 1),
    (re.compile(r"(\d+)"), 1),
)
_ZONE_CODE_RE = re.compile(r"^[A-Z]{1,3}$")
_GENERIC_SPOT_WORDS = frozenset({"SPOT", "PARKING"})
_SECTION_PREFIX = "section-"


@dataclass(frozen=True, slots=True)
class ShapeLimits:
    """Plausible size range for a single parking space in native units."""

    min_size: float = MIN_SPOT_SIZE
    max_size: float = MAX_SPOT_SIZE
    oversize: float = OVERSIZE_LIMIT
    min_aspect: float = MIN_ASPECT_RATIO
    max_aspect: float = MAX_ASPECT_RATIO


@dataclass(frozen=True, slots=True)
class Reject:
    reason: str


@dataclass(frozen=True, slots=True)
class Accept:
    kind: RegionKind
    source: RegionSource = "pattern"


Verdict = Reject | Accept


@dataclass(frozen=True, slots=True)
class Candidate:
    """A markup element prepared for rule evaluation."""

    element: RawElement
    identifier: str
    box: Box | None
    spot_number: str | None = None
    section_name: str | None = None
    local_slot: str | None = None
    is_attribute_slot: bool = False
    is_capacity_zone: bool = False


@dataclass(slots=True)
class RuleContext:
    """Per-parse state shared by the rules: limits and already-accepted keys."""

    limits: ShapeLimits = field(default_factory=ShapeLimits)
    accepted_ids: set[str] = field(default_factory=set)
    accepted_spot_numbers: set[str] = field(default_factory=set)


@dataclass(frozen=True, slots=True)
class Rule:
    name: str
    applies: Callable[[Candidate, RuleContext], bool]
    verdict: Verdict


def extract_spot_number(identifier: str) -> str | None:
    for pattern, group in _SPOT_PATTERNS:
        match = pattern.search(identifier)
        if match:
            return match.group(group)
    return None


def extract_section_letter(identifier: str) -> str | None:
    for pattern, _group in _SPOT_PATTERNS[:2]:
        match = pattern.search(identifier)
        if match:
            section = match.group(1).upper()
            return None if section in _GENERIC_SPOT_WORDS else section
    return None


def is_capacity_identifier(identifier: str, capacity_names: Collection[str] = ()) -> bool:
    """Return True for bare zone codes, ``section-`` ids and capacity-only hint names."""
    if _ZONE_CODE_RE.match(identifier) or identifier.lower().startswith(_SECTION_PREFIX):
        return True
    lowered = identifier.lower()
    for name in capacity_names:
        name = name.lower()
        if lowered in (name, f"{_SECTION_PREFIX}{name}"):
            return True
    return False


def _inside_road_group(candidate: Candidate, context: RuleContext) -> bool:
    return any(ROAD_GROUP_TOKEN in label.lower() for label in candidate.element.ancestor_labels)


def _duplicate_id(candidate: Candidate, context: RuleContext) -> bool:
    return candidate.identifier in context.accepted_ids


def _duplicate_spot_number(candidate: Candidate, context: RuleContext) -> bool:
    return (
        not candidate.is_capacity_zone
        and bool(candidate.spot_number)
        and candidate.spot_number in context.accepted_spot_numbers
    )


def _attribute_slot(candidate: Candidate, context: RuleContext) -> bool:
    return candidate.is_attribute_slot


def _placeholder(candidate: Candidate, context: RuleContext) -> bool:
    return PLACEHOLDER_TOKEN in candidate.identifier.lower()


def _decorative_tag(candidate: Candidate, context: RuleContext) -> bool:
    return candidate.element.tag in DECORATIVE_TAGS


def _bare_outline(candidate: Candidate, context: RuleContext) -> bool:
    return candidate.element.tag in OUTLINE_TAGS and not candidate.is_capacity_zone


def _infrastructure(candidate: Candidate, context: RuleContext) -> bool:
    lowered = candidate.identifier.lower()
    return any(token in lowered for token in INFRASTRUCTURE_TOKENS)


def _no_geometry(candidate: Candidate, context: RuleContext) -> bool:
    return candidate.box is None or not candidate.box.is_valid


def _oversize(candidate: Candidate, context: RuleContext) -> bool:
    box = candidate.box
    limit = context.limits.oversize
    return box is not None and (box.width > limit or box.height > limit)


def _size_out_of_range(candidate: Candidate, context: RuleContext) -> bool:
    box = candidate.box
    limits = context.limits
    if box is None:
        return True
    return not (
        limits.min_size <= box.width <= limits.max_size
        and limits.min_size <= box.height <= limits.max_size
    )


def _aspect_out_of_range(candidate: Candidate, context: RuleContext) -> bool:
    box = candidate.box
    limits = context.limits
    if box is None:
        return True
    ratio = box.width / box.height
    return not limits.min_aspect <= ratio <= limits.max_aspect


def _capacity_zone(candidate: Candidate, context: RuleContext) -> bool:
    return candidate.is_capacity_zone


def _spot_identity(candidate: Candidate, context: RuleContext) -> bool:
    return bool(candidate.spot_number)


DEFAULT_RULES: tuple[Rule, ...] = (
    Rule("road_group", _inside_road_group, Reject("inside a road group")),
    Rule("duplicate_id", _duplicate_id, Reject("duplicate id")),
    Rule("duplicate_spot_number", _duplicate_spot_number, Reject("duplicate spot number")),
    Rule("attribute_slot", _attribute_slot, Accept("spot", "attribute")),
    Rule("placeholder", _placeholder, Reject("template placeholder")),
    Rule("decorative_tag", _decorative_tag, Reject("decorative element")),
    Rule("bare_outline", _bare_outline, Reject("outline without zone identifier")),
    Rule("infrastructure", _infrastructure, Reject("infrastructure identifier")),
    Rule("no_geometry", _no_geometry, Reject("no valid bounding box")),
    Rule("oversize", _oversize, Reject("larger than a parking space")),
    Rule("size_range", _size_out_of_range, Reject("size outside plausible range")),
    Rule("aspect_ratio", _aspect_out_of_range, Reject("aspect ratio outside plausible range")),
    Rule("capacity_zone", _capacity_zone, Accept("capacity_zone")),
    Rule("spot_identity", _spot_identity, Accept("spot")),
)
UNRECOGNIZED = Reject("unrecognized identifier")


def evaluate(
    candidate: Candidate,
    context: RuleContext,
    rules: tuple[Rule, ...] = DEFAULT_RULES,
) -> tuple[str | None, Verdict]:
    """Return the deciding rule name and its verdict."""
    for rule in rules:
        if rule.applies(candidate, context):
            return rule.name, rule.verdict
    return None, UNRECOGNIZED
