"""
Turn raw generative-model text into an ordered list of scheduled stops.

Pipeline: extract and repair the JSON array, check its structure, validate and
classify each entry (hotel vs attraction), normalize per-variant fields,
enforce the day structure (starting point, day range, one hotel per day) and
sort deterministically.
"""

import logging
import math
from typing import Any

from tripplanner.core.errors import MissingRequiredField
from tripplanner.core.json_repair import parse_json_array, repair_json_text
from tripplanner.core.schemas import AttractionStop, HotelStop, ScheduledStop
from tripplanner.core.travel_time_utils import estimate_travel_time_from_hint, format_best_time

logger = logging.getLogger(__name__)

HOTEL_PREFIX = "[hotel]"

MIN_VISIT_DURATION = 30
MAX_VISIT_DURATION = 480
DEFAULT_VISIT_DURATION = 120

STARTING_POINT_DURATION = 30

_TIMING_FIELDS = ("estimatedDuration", "travelTimeToNext", "bestTimeToVisit")


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _mentions(name: str, point: str) -> bool:
    return bool(point) and point.strip().lower() in name.lower()


def is_hotel_entry(item: dict[str, Any]) -> bool:
    """Hotels carry the [HOTEL] name prefix or an explicit isHotel flag."""
    name = item.get("name", "")
    return name.strip().lower().startswith(HOTEL_PREFIX) or item.get("isHotel") is True


def clamp_visit_duration(value: Any) -> int:
    if not _is_number(value):
        return DEFAULT_VISIT_DURATION
    return int(max(MIN_VISIT_DURATION, min(MAX_VISIT_DURATION, round(value))))


def validate_entry(item: Any, index: int) -> None:
    """
    Check the fields every entry must have.

    Raises:
        MissingRequiredField: name is missing/blank or dayIndex is not a number
    """
    if not isinstance(item, dict):
        raise MissingRequiredField(index, "name")

    name = item.get("name")
    if not isinstance(name, str) or not name.strip():
        raise MissingRequiredField(index, "name")

    if not _is_number(item.get("dayIndex")):
        raise MissingRequiredField(index, "dayIndex")


def build_stop(
    item: dict[str, Any], start_point: str, trip_days: int
) -> AttractionStop | HotelStop:
    """Build the hotel or attraction variant for one validated entry."""
    name = item["name"].strip()
    description = _text(item.get("description"))
    day_index = max(0, min(trip_days - 1, int(item["dayIndex"])))

    base = {
        "name": name,
        "address": _text(item.get("address")),
        "description": description,
        "day_index": day_index,
    }

    if is_hotel_entry(item):
        if any(item.get(field) is not None for field in _TIMING_FIELDS):
            logger.warning(f"Hotel '{name}' should not have timing fields. Removing them.")
        # A hotel never opens the trip, even when its name contains the start point
        return HotelStop(**base, is_starting_point=False)

    base["is_starting_point"] = _mentions(name, start_point)

    best_time_raw = _text(item.get("bestTimeToVisit"))
    return AttractionStop(
        **base,
        estimated_duration=clamp_visit_duration(item.get("estimatedDuration")),
        best_time_to_visit=format_best_time(best_time_raw),
        travel_time_to_next=estimate_travel_time_from_hint(
            item.get("travelTimeToNext"), description, best_time_raw
        ),
    )


def ensure_starting_point(stops: list[ScheduledStop], start_point: str) -> list[ScheduledStop]:
    """Prepend a synthetic start stop unless the first entry already names it."""
    if stops and not stops[0].is_hotel and _mentions(stops[0].name, start_point):
        return stops

    logger.debug(f"First entry is not the starting point; inserting '{start_point}'")
    starting_stop = AttractionStop(
        name=start_point,
        address=start_point,
        description="Starting point of the journey.",
        estimated_duration=STARTING_POINT_DURATION,
        travel_time_to_next=0,
        best_time_to_visit="morning",
        day_index=0,
        is_starting_point=True,
    )
    return [starting_stop, *stops]


def dedupe_hotels(stops: list[ScheduledStop]) -> list[ScheduledStop]:
    """Keep only the last hotel seen for each day."""
    last_hotel_by_day: dict[int, int] = {}
    for index, stop in enumerate(stops):
        if stop.is_hotel:
            if stop.day_index in last_hotel_by_day:
                logger.debug(f"Multiple hotels found for day {stop.day_index}")
            last_hotel_by_day[stop.day_index] = index

    return [
        stop
        for index, stop in enumerate(stops)
        if not stop.is_hotel or last_hotel_by_day[stop.day_index] == index
    ]


def stop_sort_key(stop: ScheduledStop, end_point: str, last_day: int) -> tuple[int, int, str]:
    """
    (day, group, best time). Groups within a day:
    0 = starting point (day 0 only), 1 = regular stops,
    2 = hotel (days before the last), 3 = end point (last day only).
    """
    if stop.day_index == 0 and stop.is_starting_point:
        group = 0
    elif stop.day_index == last_day and _mentions(stop.name, end_point):
        group = 3
    elif stop.is_hotel and stop.day_index < last_day:
        group = 2
    else:
        group = 1

    best_time = getattr(stop, "best_time_to_visit", "") or ""
    return stop.day_index, group, best_time


def normalize_itinerary_response(
    raw_text: str, start_point: str, end_point: str, trip_days: int
) -> list[ScheduledStop]:
    """
    Normalize raw model output into ordered, invariant-respecting stops.

    Args:
        raw_text: Model response expected to contain one JSON array
        start_point: Trip departure point (first stop of day 0)
        end_point: Trip return point (last stop of the last day)
        trip_days: Number of days; every day_index is clamped into range

    Returns:
        Stops sorted by day, with at most one hotel per day

    Raises:
        MalformedResponse / ParseError: No usable JSON array
        MissingRequiredField: An entry lacks name or dayIndex
    """
    if trip_days < 1:
        raise ValueError(f"trip_days must be at least 1, got {trip_days}")

    items = parse_json_array(repair_json_text(raw_text))

    stops: list[ScheduledStop] = []
    for index, item in enumerate(items):
        validate_entry(item, index)
        stops.append(build_stop(item, start_point, trip_days))

    stops = ensure_starting_point(stops, start_point)
    stops = dedupe_hotels(stops)

    last_day = trip_days - 1
    stops.sort(key=lambda stop: stop_sort_key(stop, end_point, last_day))

    logger.info(f"Normalized {len(stops)} stops across {trip_days} days")
    return stops
