"""Tolerant tokenizer for layout markup.

The scanner never raises on malformed input. Unclosed tags are closed at the
end of the document and stray end tags are ignored.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from html.parser import HTMLParser

from ..geometry import bounds_of_points
from ..models import Box, Point, RawElement, Transform, Viewport
from ..util import parse_number, parse_numbers, parse_translate
from .const import (
    DEFAULT_VIEWPORT,
    ESTIMATED_HEIGHT_FRACTION,
    ESTIMATED_WIDTH_FRACTION,
    GROUP_TAG,
    MAX_GROUP_DEPTH,
    PATH_TAG,
    RECT_TAG,
)

_LOGGER = logging.getLogger(__name__)

_PATH_TOKEN_RE = re.compile(
    r"[MmLlHhVvCcSsQqTtAaZz]|[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?"
)
_PATH_ARITY = {"M": 2, "L": 2, "T": 2, "H": 1, "V": 1, "C": 6, "S": 4, "Q": 4, "A": 7, "Z": 0}
_OUTLINE_TAGS = frozenset({PATH_TAG, "polygon", "polyline"})


@dataclass(slots=True, eq=False)
class _Node:
    tag: str
    attributes: dict[str, str]
    start: int
    end: int
    parent: _Node | None
    children: list[_Node] = field(default_factory=list)
    text: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class MarkupScan:
    """Scanned nodes in document order together with the resolved viewport."""

    viewport: Viewport
    elements: tuple[RawElement, ...]


class _TreeBuilder(HTMLParser):
    def __init__(self, markup: str) -> None:
        super().__init__(convert_charrefs=True)
        self._markup = markup
        self._line_offsets = _line_offsets(markup)
        self.root = _Node(tag="#document", attributes={}, start=0, end=len(markup), parent=None)
        self._stack: list[_Node] = [self.root]

    def _offset(self) -> int:
        line, column = self.getpos()
        return self._line_offsets[line - 1] + column

    def _tag_end(self, offset: int) -> int:
        end = self._markup.find(">", offset)
        return len(self._markup) if end < 0 else end + 1

    def _open(self, tag: str, attrs: list[tuple[str, str | None]]) -> _Node:
        start = self._offset()
        parent = self._stack[-1]
        node = _Node(
            tag=tag,
            attributes={name: value or "" for name, value in attrs},
            start=start,
            end=self._tag_end(start),
            parent=parent,
        )
        parent.children.append(node)
        return node

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        self._stack.append(self._open(tag, attrs))

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        self._open(tag, attrs)

    def handle_endtag(self, tag: str) -> None:
        for index in range(len(self._stack) - 1, 0, -1):
            if self._stack[index].tag != tag:
                continue
            end = self._tag_end(self._offset())
            for node in self._stack[index:]:
                node.end = end
            del self._stack[index:]
            return

    def handle_data(self, data: str) -> None:
        self._stack[-1].text.append(data)

    def finish(self) -> _Node:
        self.close()
        for node in self._stack[1:]:
            node.end = len(self._markup)
        del self._stack[1:]
        return self.root


def _line_offsets(markup: str) -> list[int]:
    offsets = [0]
    for index, char in enumerate(markup):
        if char == "\n":
            offsets.append(index + 1)
    return offsets


def _build_tree(markup: str) -> _Node:
    builder = _TreeBuilder(markup)
    builder.feed(markup)
    return builder.finish()


def _find_root_svg(root: _Node) -> _Node | None:
    pending = list(reversed(root.children))
    while pending:
        node = pending.pop()
        if node.tag == "svg":
            return node
        pending.extend(reversed(node.children))
    return None


def _viewport_from_tree(root: _Node) -> Viewport:
    svg = _find_root_svg(root)
    if svg is not None:
        values = parse_numbers(svg.attributes.get("viewbox", ""))
        if len(values) == 4 and values[2] > 0 and values[3] > 0:
            return Viewport(origin_x=values[0], origin_y=values[1], width=values[2], height=values[3])
        width = parse_number(svg.attributes.get("width"))
        height = parse_number(svg.attributes.get("height"))
        if width and height and width > 0 and height > 0:
            return Viewport(origin_x=0.0, origin_y=0.0, width=width, height=height)
    origin_x, origin_y, width, height = DEFAULT_VIEWPORT
    return Viewport(origin_x=origin_x, origin_y=origin_y, width=width, height=height)


def parse_viewport(markup: str) -> Viewport:
    """Resolve the native coordinate space declared by the markup root."""
    return _viewport_from_tree(_build_tree(markup or ""))


def path_points(data: str) -> list[Point]:
    """Return end and control points of a path description in absolute units."""
    tokens = _PATH_TOKEN_RE.findall(data or "")
    points: list[Point] = []
    x = y = 0.0
    start_x = start_y = 0.0
    command: str | None = None
    index = 0
    while index < len(tokens):
        token = tokens[index]
        if token.isalpha():
            command = token
            index += 1
            if command in "Zz":
                x, y = start_x, start_y
            continue
        if command is None:
            break
        upper = command.upper()
        arity = _PATH_ARITY[upper]
        if arity == 0:
            index += 1
            continue
        args = tokens[index : index + arity]
        if len(args) < arity or any(arg.isalpha() for arg in args):
            break
        values = [float(arg) for arg in args]
        index += arity
        relative = command.islower()
        if upper == "H":
            x = values[0] + (x if relative else 0.0)
        elif upper == "V":
            y = values[0] + (y if relative else 0.0)
        elif upper == "A":
            x = values[5] + (x if relative else 0.0)
            y = values[6] + (y if relative else 0.0)
        else:
            base_x, base_y = (x, y) if relative else (0.0, 0.0)
            for offset in range(0, arity - 2, 2):
                points.append(Point(values[offset] + base_x, values[offset + 1] + base_y))
            x = values[-2] + base_x
            y = values[-1] + base_y
        points.append(Point(x, y))
        if upper == "M":
            start_x, start_y = x, y
            command = "l" if relative else "L"
    return points


def _shape_box(tag: str, attributes: Mapping[str, str]) -> Box | None:
    if tag == RECT_TAG:
        width = parse_number(attributes.get("width"))
        height = parse_number(attributes.get("height"))
        if width is None or height is None:
            return None
        return Box(
            x=parse_number(attributes.get("x")) or 0.0,
            y=parse_number(attributes.get("y")) or 0.0,
            width=width,
            height=height,
        )
    if tag in ("circle", "ellipse"):
        cx = parse_number(attributes.get("cx")) or 0.0
        cy = parse_number(attributes.get("cy")) or 0.0
        radius = parse_number(attributes.get("r"))
        rx = parse_number(attributes.get("rx")) or radius
        ry = parse_number(attributes.get("ry")) or radius
        if rx is None or ry is None:
            return None
        return Box(x=cx - rx, y=cy - ry, width=2 * rx, height=2 * ry)
    if tag == "line":
        return bounds_of_points(
            [
                Point(parse_number(attributes.get("x1")) or 0.0, parse_number(attributes.get("y1")) or 0.0),
                Point(parse_number(attributes.get("x2")) or 0.0, parse_number(attributes.get("y2")) or 0.0),
            ]
        )
    if tag == PATH_TAG:
        return bounds_of_points(path_points(attributes.get("d", "")))
    if tag in ("polygon", "polyline"):
        numbers = parse_numbers(attributes.get("points", ""))
        return bounds_of_points(Point(numbers[i], numbers[i + 1]) for i in range(0, len(numbers) - 1, 2))
    return None


def _labels_of(node: _Node) -> tuple[str, ...]:
    labels = []
    for name in ("id", "class"):
        value = node.attributes.get(name)
        if value:
            labels.append(value)
    return tuple(labels)


@dataclass(slots=True)
class _Visit:
    node: _Node
    parent: int | None
    transform: Transform
    own_transform: Transform | None
    depth: int
    ancestor_labels: tuple[str, ...]
    shape: Box | None = None
    largest_rect: Box | None = None
    first_rect: Box | None = None
    first_outline: Box | None = None


def _collect(root: _Node) -> list[_Visit]:
    """Walk the tree in document order, pruning groups nested too deeply."""
    visits: list[_Visit] = []
    warned = False
    pending: list[tuple[_Node, int | None, Transform, int, tuple[str, ...]]] = [
        (child, None, Transform(), 0, ()) for child in reversed(root.children)
    ]
    while pending:
        node, parent, transform, depth, labels = pending.pop()
        if node.tag == GROUP_TAG and depth > MAX_GROUP_DEPTH:
            if not warned:
                _LOGGER.warning("Layout groups nested deeper than %s levels were skipped", MAX_GROUP_DEPTH)
                warned = True
            continue
        own = parse_translate(node.attributes.get("transform"))
        visit = _Visit(
            node=node,
            parent=parent,
            transform=transform,
            own_transform=own,
            depth=depth,
            ancestor_labels=labels,
        )
        index = len(visits)
        visits.append(visit)
        frame = transform if own is None else transform.then(own)
        child_depth = depth + 1 if node.tag == GROUP_TAG else depth
        child_labels = labels + _labels_of(node) if node.tag == GROUP_TAG else labels
        for child in reversed(node.children):
            pending.append((child, index, frame, child_depth, child_labels))
    return visits


def _summarize(visits: list[_Visit]) -> None:
    """Fold descendant geometry into each node in one pass from the leaves up."""
    children: dict[int, list[int]] = {}
    for index, visit in enumerate(visits):
        if visit.parent is not None:
            children.setdefault(visit.parent, []).append(index)
    for index in range(len(visits) - 1, -1, -1):
        visit = visits[index]
        frame = visit.transform if visit.own_transform is None else visit.transform.then(visit.own_transform)
        shape = _shape_box(visit.node.tag, visit.node.attributes)
        if shape is not None:
            visit.shape = shape.translate(frame)
        if visit.node.tag == RECT_TAG and visit.shape is not None and visit.shape.is_valid:
            visit.largest_rect = visit.shape
            visit.first_rect = visit.shape
        if visit.node.tag in _OUTLINE_TAGS and visit.shape is not None:
            visit.first_outline = visit.shape
        for child_index in children.get(index, ()):
            child = visits[child_index]
            if child.largest_rect is not None and (
                visit.largest_rect is None or _area(child.largest_rect) > _area(visit.largest_rect)
            ):
                visit.largest_rect = child.largest_rect
            if visit.first_rect is None:
                visit.first_rect = child.first_rect
            if visit.first_outline is None:
                visit.first_outline = child.first_outline


def _text_content(node: _Node) -> str:
    parts: list[str] = []
    pending = [node]
    while pending:
        current = pending.pop()
        parts.extend(current.text)
        pending.extend(reversed(current.children))
    return "".join(parts).strip()


def _area(box: Box) -> float:
    return box.width * box.height


def _group_box(visit: _Visit, viewport: Viewport) -> Box | None:
    if visit.largest_rect is not None:
        return visit.largest_rect
    if visit.first_outline is not None and visit.first_outline.is_valid:
        return visit.first_outline
    if visit.own_transform is not None:
        frame = visit.transform.then(visit.own_transform)
        return Box(
            x=frame.dx,
            y=frame.dy,
            width=viewport.width * ESTIMATED_WIDTH_FRACTION,
            height=viewport.height * ESTIMATED_HEIGHT_FRACTION,
        )
    return None


def scan_markup(markup: str, viewport: Viewport | None = None) -> MarkupScan:
    """Tokenize layout markup into raw elements with absolute boxes."""
    root = _build_tree(markup or "")
    resolved = viewport or _viewport_from_tree(root)
    visits = _collect(root)
    _summarize(visits)
    elements = []
    for visit in visits:
        node = visit.node
        box = _group_box(visit, resolved) if node.tag == GROUP_TAG else visit.shape
        elements.append(
            RawElement(
                tag=node.tag,
                id=node.attributes.get("id") or None,
                attributes=dict(node.attributes),
                raw_span=(node.start, node.end),
                transform=visit.transform,
                depth=visit.depth,
                ancestor_labels=visit.ancestor_labels,
                box=box,
                text=_text_content(node),
                parent=visit.parent,
                own_transform=visit.own_transform,
                first_rect=visit.first_rect,
            )
        )
    _LOGGER.debug("Scanned %s markup nodes", len(elements))
    return MarkupScan(viewport=resolved, elements=tuple(elements))
