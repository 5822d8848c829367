"""Constants for the TapPark backend."""

AREAS_ENDPOINT = "/parking-areas/areas"
SPOTS_ENDPOINT = "/parking-areas/areas/{area_id}/spots"
SPOTS_STATUS_ENDPOINT = "/parking-areas/areas/{area_id}/spots-status"
LAYOUT_ENDPOINT = "/parking-areas/area/{area_id}/layout"
MY_BOOKINGS_ENDPOINT = "/parking-areas/my-bookings"
BOOK_ENDPOINT = "/parking-areas/book"
CAPACITY_STATUS_ENDPOINT = "/capacity/areas/{area_id}/capacity-status"
CAPACITY_RESERVE_ENDPOINT = "/capacity/sections/{section_id}/reserve"
FREQUENT_SPOTS_ENDPOINT = "/history/frequent-spots"
VEHICLES_ENDPOINT = "/vehicles"

# Booking responses with these statuses carry an error code in the body.
BOOKING_ERROR_STATUSES = (400, 403, 409)

ACTIVE_BOOKING_STATUSES = frozenset({"active", "reserved"})

KNOWN_SPOT_STATUSES = frozenset({"available", "occupied", "reserved"})

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
    "User-Agent": "pyparkingmap-tappark",
}
