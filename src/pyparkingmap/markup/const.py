"""Constants for layout markup parsing."""

MAX_GROUP_DEPTH = 10

DEFAULT_VIEWPORT = (0.0, 0.0, 276.0, 322.0)

MIN_SPOT_SIZE = 20.0
MAX_SPOT_SIZE = 150.0
OVERSIZE_LIMIT = 200.0
MIN_ASPECT_RATIO = 0.2
MAX_ASPECT_RATIO = 5.0

# Estimated group box, as a fraction of the viewport.
ESTIMATED_WIDTH_FRACTION = 1 / 5
ESTIMATED_HEIGHT_FRACTION = 1 / 10

ATTRIBUTE_SLOT_SIZE = (50.0, 50.0)

HINT_GRID_CELL = 52.0
HINT_FALLBACK_SIZE = (52.0, 156.0)
LABEL_ZONE_SIZE = (80.0, 40.0)
TRANSLATION_TOLERANCE = 0.01

FALLBACK_ZONE_TRANSLATIONS = {
    "V": (-3.0, 49.0),
    "VB": (101.0, -3.0),
    "X": (101.0, 101.0),
}

GROUP_TAG = "g"
RECT_TAG = "rect"
PATH_TAG = "path"
TEXT_TAG = "text"

SLOT_TYPE_ATTR = "data-type"
SLOT_TYPE_VALUE = "parking-slot"
SLOT_NUMBER_ATTR = "data-slot"
SLOT_ID_ATTR = "data-slot-id"
SLOT_SECTION_ATTR = "data-section"
SLOT_LOCAL_ATTR = "data-local-slot"

DECORATIVE_TAGS = frozenset(
    {
        "line",
        "polyline",
        "text",
        "tspan",
        "lineargradient",
        "radialgradient",
        "pattern",
        "marker",
        "symbol",
        "stop",
    }
)
# Outline shapes only count when they carry a capacity zone identifier.
OUTLINE_TAGS = frozenset({"path", "polygon"})

INFRASTRUCTURE_TOKENS = (
    "road",
    "street",
    "lane",
    "marking",
    "strip",
    "arrow",
    "border",
    "background",
    "bg",
    "boundary",
    "marker",
    "symbol",
    "icon",
    "text",
    "label",
    "gradient",
    "pattern",
    "line",
    "path",
)
PLACEHOLDER_TOKEN = "element"
ROAD_GROUP_TOKEN = "road"
