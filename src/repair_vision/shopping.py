"""Search links for buying replacement parts."""

from __future__ import annotations

from urllib.parse import quote

from repair_vision.core.types import VehicleInfo

SHOPPING_SEARCH_URL = "https://www.google.com/search"


def part_search_query(part: str, vehicle: VehicleInfo) -> str:
    """Build the shopping query for an OEM `part` fitting `vehicle`."""
    words = ["buy", vehicle.year, vehicle.make, vehicle.model, part, "OEM"]
    return " ".join(w.strip() for w in words if w and w.strip())


def part_search_url(part: str, vehicle: VehicleInfo) -> str:
    """Return a shopping-tab search URL for `part`."""
    query = quote(part_search_query(part, vehicle), safe="")
    return f"{SHOPPING_SEARCH_URL}?q={query}&tbm=shop"
