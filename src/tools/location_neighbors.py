# src/tools/location_neighbors.py
"""location_neighbors: camps placed near a camp, year by year.

Placement strings follow the city grid: a clock time and a lettered street
(``"3:30 & C"``, ``"9:00 & Esplanade"``), a plaza (``"3:00 G Plaza"``) or a
landmark (``"Center Camp"``), optionally with a time. Times wrap every 12
hours; streets run A to L, Esplanade sits 2 streets from any lettered street.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from typing import Any

from pydantic import BaseModel

from sevenpools.core.models import Item
from sevenpools.core.naming import truncate
from sevenpools.store.base_entity_store import BaseEntityStore
from sevenpools.tools.base_tool import BaseTool
from sevenpools.tools.models import LocationNeighborsParams

logger = logging.getLogger(__name__)

STREETS = "ABCDEFGHIJKL"
ESPLANADE = "ESPLANADE"
ESPLANADE_DISTANCE = 2
UNKNOWN_STREET_INDEX = 50
MAX_NEIGHBORS = 10
MAX_LANDMARK_NEIGHBORS = 8
SNIPPET_LENGTH = 100

STANDARD_RE = re.compile(r"(\d+):(\d+)\s*&?\s*([A-Z][a-z]*|Esplanade)", re.IGNORECASE)
LANDMARK_RE = re.compile(r"(Center Camp|Temple|Man|Esplanade|Rod's Ring Road|Portal)", re.IGNORECASE)
PLAZA_RE = re.compile(r"(\d+):(\d+)\s+([A-Z])\s+Plaza", re.IGNORECASE)
TIME_RE = re.compile(r"(\d+):(\d+)")


class RadiusWindow(BaseModel):
    time_range: float
    street_range: int


RADIUS_WINDOWS = {
    "immediate": RadiusWindow(time_range=0.5, street_range=1),
    "adjacent": RadiusWindow(time_range=1.0, street_range=2),
    "neighborhood": RadiusWindow(time_range=2.0, street_range=3),
}


class ParsedLocation(BaseModel):
    """A placement string broken into grid coordinates."""

    type: str
    time: str | None = None
    time_decimal: float | None = None
    street: str | None = None
    landmark: str | None = None
    raw: str | None = None

    def view(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


def _clock(hour: int, minute: int) -> tuple[str, float]:
    return f"{hour}:{minute:02d}", hour + minute / 60.0


def parse_location(location: str | None) -> ParsedLocation | None:
    if not location:
        return None
    text = location.strip()

    match = STANDARD_RE.search(text)
    if match:
        time, decimal = _clock(int(match.group(1)), int(match.group(2)))
        return ParsedLocation(
            type="standard", time=time, time_decimal=decimal, street=match.group(3).upper()
        )

    match = LANDMARK_RE.search(text)
    if match:
        landmark = match.group(1)
        time_match = TIME_RE.search(text)
        if time_match:
            time, decimal = _clock(int(time_match.group(1)), int(time_match.group(2)))
            return ParsedLocation(
                type="landmark_with_time", landmark=landmark, time=time, time_decimal=decimal
            )
        return ParsedLocation(type="landmark_only", landmark=landmark)

    match = PLAZA_RE.search(text)
    if match:
        time, decimal = _clock(int(match.group(1)), int(match.group(2)))
        return ParsedLocation(
            type="plaza", time=time, time_decimal=decimal, street=match.group(3).upper()
        )

    return ParsedLocation(type="unparsed", raw=text)


def street_distance(street_a: str, street_b: str) -> int:
    if street_a == street_b:
        return 0
    if ESPLANADE in (street_a, street_b):
        return ESPLANADE_DISTANCE
    index_a = STREETS.find(street_a) if len(street_a) == 1 else -1
    index_b = STREETS.find(street_b) if len(street_b) == 1 else -1
    if index_a < 0:
        index_a = UNKNOWN_STREET_INDEX
    if index_b < 0:
        index_b = UNKNOWN_STREET_INDEX
    return abs(index_a - index_b)


def time_distance(a: float, b: float) -> float:
    """Clock distance in hours with 12-hour wraparound."""
    diff = abs(a - b)
    return min(diff, 12 - diff)


def distance_description(a: ParsedLocation | None, b: ParsedLocation | None) -> str:
    if a is None or b is None or a.time_decimal is None or b.time_decimal is None:
        return "Unknown proximity"
    hours = time_distance(a.time_decimal, b.time_decimal)
    streets = street_distance(a.street or "", b.street or "")
    if hours < 0.5 and streets <= 1:
        return "Immediate neighbor"
    if hours <= 1.0 and streets <= 2:
        return f"Adjacent ({round(hours, 1)}h, {streets} streets)"
    if hours <= 2.0 and streets <= 3:
        return "Same neighborhood"
    return "Nearby"


def time_sector(decimal: float) -> str:
    if decimal <= 3:
        return "12-3 o'clock"
    if decimal <= 6:
        return "3-6 o'clock"
    if decimal <= 9:
        return "6-9 o'clock"
    return "9-12 o'clock"


def location_patterns(camps: list[Item]) -> dict[str, Any]:
    """Street and sector preferences plus year-over-year moves."""
    streets: Counter[str] = Counter()
    sectors: Counter[str] = Counter()
    moves: list[dict[str, Any]] = []
    previous: str | None = None
    for camp in camps:
        parsed = parse_location(camp.location_string)
        if parsed is not None and parsed.street:
            streets[parsed.street] += 1
        if parsed is not None and parsed.time_decimal is not None:
            sectors[time_sector(parsed.time_decimal)] += 1
        if previous is not None and previous != camp.location_string:
            moves.append({"year": camp.year, "from": previous, "to": camp.location_string})
        previous = camp.location_string

    if len(moves) <= 1:
        stability = "Very stable"
    elif len(moves) <= 3:
        stability = "Somewhat mobile"
    else:
        stability = "Highly mobile"
    return {
        "most_common_streets": dict(streets),
        "time_sector_preferences": dict(sectors),
        "location_stability": stability,
        "notable_moves": moves,
    }


def neighbor_summary(analyses: list[dict[str, Any]]) -> dict[str, Any]:
    names = [n["name"] for year in analyses for n in year["neighbors"]]
    counts = Counter(names)
    recurring = {name: count for name, count in counts.items() if count > 1}
    total_years = len(analyses)
    average = sum(len(year["neighbors"]) for year in analyses) / total_years if total_years else 0.0
    most_frequent = max(recurring.items(), key=lambda pair: pair[1])[0] if recurring else None
    return {
        "total_years_analyzed": total_years,
        "average_neighbors_per_year": round(average, 1),
        "recurring_neighbors": recurring,
        "unique_neighbors_total": len(counts),
        "most_frequent_neighbor": most_frequent,
    }


def _snippet(description: str) -> str | None:
    if not description:
        return None
    return truncate(description, SNIPPET_LENGTH, separator=None)


class LocationNeighborsTool(BaseTool[LocationNeighborsParams]):
    """Analyze a camp's placement neighbors across years."""

    name = "location_neighbors"
    description = "Find camps placed near a camp on the city grid, per year"
    params_model = LocationNeighborsParams

    def __init__(self, store: BaseEntityStore) -> None:
        self._store = store

    def error_payload(
        self, message: str, arguments: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        return {
            "ok": False,
            "error": message,
            "camp_name": (arguments or {}).get("camp_name", ""),
            "years_analyzed": [],
            "neighbor_analysis": [],
        }

    async def run(self, params: LocationNeighborsParams) -> dict[str, Any]:
        if params.radius not in RADIUS_WINDOWS:
            return self.error_payload("invalid_radius", params.model_dump())
        try:
            camps = await self._store.find_items(
                item_type="camp",
                year=params.year,
                name_like=params.camp_name,
                require_location=True,
            )
            if not camps:
                return self.error_payload("Camp not found", {"camp_name": ""})

            analyses = [await self._analyze_year(camp, params.radius) for camp in camps]
            return {
                "ok": True,
                "camp_name": params.camp_name,
                "years_analyzed": [camp.year for camp in camps],
                "neighbor_analysis": analyses,
                "location_patterns": location_patterns(camps),
                "summary": neighbor_summary(analyses),
            }
        except Exception as e:
            logger.error("LocationNeighborsTool error: %s", e, exc_info=True)
            return self.error_payload(f"Location analysis failed: {e}", params.model_dump())

    async def _analyze_year(self, camp: Item, radius: str) -> dict[str, Any]:
        parsed = parse_location(camp.location_string)
        analysis: dict[str, Any] = {
            "year": camp.year,
            "location": camp.location_string,
            "parsed_location": parsed.view() if parsed is not None else {},
            "neighbors": [],
        }
        if parsed is not None and parsed.time_decimal is not None and parsed.street:
            neighbors = await self._neighbors_by_grid(camp, parsed, RADIUS_WINDOWS[radius])
            analysis["neighbors"] = [
                self._neighbor_view(
                    n, distance_description(parsed, parse_location(n.location_string))
                )
                for n in neighbors
            ]
        elif parsed is not None and parsed.landmark:
            neighbors = await self._store.find_items(
                item_type="camp",
                year=camp.year,
                location_like=parsed.landmark,
                exclude_id=camp.id,
                limit=MAX_LANDMARK_NEIGHBORS,
            )
            analysis["neighbors"] = [
                self._neighbor_view(n, f"Near {parsed.landmark}") for n in neighbors
            ]
        else:
            analysis["note"] = f"Could not parse location format: {camp.location_string}"
        return analysis

    async def _neighbors_by_grid(
        self, camp: Item, origin: ParsedLocation, window: RadiusWindow
    ) -> list[Item]:
        candidates = await self._store.find_items(
            item_type="camp", year=camp.year, require_location=True, exclude_id=camp.id
        )
        scored: list[tuple[float, Item]] = []
        for candidate in candidates:
            parsed = parse_location(candidate.location_string)
            if parsed is None or parsed.time_decimal is None or not parsed.street:
                continue
            hours = time_distance(parsed.time_decimal, origin.time_decimal)
            streets = street_distance(origin.street, parsed.street)
            if hours <= window.time_range and streets <= window.street_range:
                scored.append((hours + streets * 0.5, candidate))
        scored.sort(key=lambda pair: pair[0])
        return [item for _, item in scored[:MAX_NEIGHBORS]]

    @staticmethod
    def _neighbor_view(neighbor: Item, description: str) -> dict[str, Any]:
        return {
            "name": neighbor.name,
            "location": neighbor.location_string,
            "distance_description": description,
            "camp_type": neighbor.item_type,
            "description_snippet": _snippet(neighbor.content),
        }
