"""
Utilities for estimating travel time, dwell time and clock times between stops.
"""

import math
import re
from typing import Any

from tripplanner.core.schemas import Pace

MIN_TRAVEL_MINUTES = 5
MAX_TRAVEL_MINUTES = 180

SHORT_TRIP_MINUTES = 15  # < 2 km
MEDIUM_TRIP_MINUTES = 25  # 2-5 km, also the default when nothing is known
LONG_TRIP_MINUTES = 45  # > 5 km

RUSH_HOUR_MULTIPLIER = 1.4
RUSH_HOUR_FLAT_MINUTES = 15

PACE_MULTIPLIERS = {
    Pace.RELAXED: 0.7,
    Pace.BALANCED: 1.0,
    Pace.INTENSIVE: 1.3,
}

_TIME_PATTERN = re.compile(r"\b(\d{1,2})(?::(\d{2})|\s*(am|pm)\b)(?:\s*(am|pm)\b)?", re.IGNORECASE)
_DISTANCE_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*(?:kilomet(?:er|re)s?|kms?)\b", re.IGNORECASE)
_CLOCK_PATTERN = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*(am|pm)?\s*$", re.IGNORECASE)


def clamp_travel_minutes(minutes: float) -> int:
    return int(max(MIN_TRAVEL_MINUTES, min(MAX_TRAVEL_MINUTES, round(minutes))))


def estimate_travel_time(distance_km: float, departure_time: str | None = None) -> int:
    """
    Estimate travel time in minutes between two geocoded points.

    Assumes an effective urban speed of ~30 km/h (2 min/km). Legs departing
    in rush hour get a flat RUSH_HOUR_FLAT_MINUTES on top.

    Args:
        distance_km: Great-circle distance in kilometers
        departure_time: Optional clock time the leg starts at (e.g. "5:30 PM")

    Returns:
        Travel time in minutes, clamped to [5, 180]
    """
    minutes = round(distance_km * 2)
    if departure_time and is_rush_hour(departure_time):
        minutes += RUSH_HOUR_FLAT_MINUTES
    return clamp_travel_minutes(minutes)


def base_travel_time(travel_time: Any, description: str | None = None) -> float:
    """
    Derive a base travel time from whatever the model gave us.

    Order of preference: an explicit number, a distance mentioned in the
    description ("3.5 km away"), digits or distance words inside a string
    travel time ("about 20 min", "short walk"), then the medium default.
    """
    if isinstance(travel_time, (int, float)) and not isinstance(travel_time, bool):
        if not math.isnan(travel_time):
            return travel_time

    if description:
        distance_match = _DISTANCE_PATTERN.search(description)
        if distance_match:
            distance = float(distance_match.group(1))
            if distance < 2:
                return SHORT_TRIP_MINUTES
            if distance <= 5:
                return MEDIUM_TRIP_MINUTES
            return LONG_TRIP_MINUTES

    if isinstance(travel_time, str):
        numeric_match = re.search(r"\d+", travel_time)
        if numeric_match:
            return int(numeric_match.group(0))

        lowered = travel_time.lower()
        if "short" in lowered or "nearby" in lowered:
            return SHORT_TRIP_MINUTES
        if "long" in lowered or "far" in lowered:
            return LONG_TRIP_MINUTES

    return MEDIUM_TRIP_MINUTES


def estimate_travel_time_from_hint(
    travel_time: Any, description: str | None = None, best_time_to_visit: str | None = None
) -> int:
    """
    Travel time for a model-described stop: base estimate, +40% in rush hour,
    clamped to [5, 180].
    """
    minutes = base_travel_time(travel_time, description)
    if best_time_to_visit and is_rush_hour(best_time_to_visit):
        minutes *= RUSH_HOUR_MULTIPLIER
    return clamp_travel_minutes(minutes)


def _to_24_hour(hour: int, meridiem: str | None) -> int:
    if not meridiem:
        return hour
    meridiem = meridiem.upper()
    if meridiem == "AM":
        return 0 if hour == 12 else hour
    return hour if hour == 12 else hour + 12


def is_rush_hour(time_str: str) -> bool:
    """
    Check whether a time string falls into rush hour (8-10 AM or 4-7 PM).

    Only explicit hour markers count ("8:30", "9 am", "5:15 PM"); daypart
    labels like "morning" do not.
    """
    if not time_str:
        return False

    match = _TIME_PATTERN.search(time_str)
    if not match:
        return False

    hour = int(match.group(1))
    meridiem = match.group(3) or match.group(4)
    hour = _to_24_hour(hour, meridiem)

    return 8 <= hour < 10 or 16 <= hour < 19


def adjust_duration_for_pace(base_minutes: float, pace: Pace | str) -> int:
    """
    Scale on-site duration by pace.

    Args:
        base_minutes: Base dwell time in minutes
        pace: "relaxed" (x0.7), "balanced" (x1.0) or "intensive" (x1.3)

    Returns:
        Scaled duration in minutes

    Raises:
        ValueError: For an unknown pace
    """
    multiplier = PACE_MULTIPLIERS[Pace(pace)]
    return int(round(base_minutes * multiplier))


def minutes_to_time_string(minutes: int) -> str:
    """Convert minutes since midnight to 12-hour format, wrapping past midnight."""
    minutes = minutes % (24 * 60)
    hours = minutes // 60
    mins = minutes % 60

    if hours == 0:
        return f"12:{mins:02d} AM"
    elif hours < 12:
        return f"{hours}:{mins:02d} AM"
    elif hours == 12:
        return f"12:{mins:02d} PM"
    else:
        return f"{hours - 12}:{mins:02d} PM"


def parse_clock_time(time_str: str) -> int | None:
    """Parse "HH:MM" (optionally with AM/PM) into minutes since midnight."""
    match = _CLOCK_PATTERN.match(time_str or "")
    if not match:
        return None

    hour = int(match.group(1))
    minute = int(match.group(2))
    if minute > 59 or hour > 23 or (match.group(3) and not 1 <= hour <= 12):
        return None

    return _to_24_hour(hour, match.group(3)) * 60 + minute


def format_best_time(time_str: str) -> str:
    """
    Canonicalize a clock time to "h:mm AM/PM"; pass anything else through.

    "09:30" -> "9:30 AM", "17:05" -> "5:05 PM", "morning" -> "morning".
    """
    text = (time_str or "").strip()
    minutes = parse_clock_time(text)
    if minutes is None:
        return text
    return minutes_to_time_string(minutes)
