"""
Geographic utilities for day clustering and route ordering.
"""

import math
from typing import TypeVar

from tripplanner.core.schemas import Place

P = TypeVar("P", bound=Place)


def haversine_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Calculate the great-circle distance between two points on Earth.

    Args:
        lat1, lng1: Coordinates of point 1 in degrees
        lat2, lng2: Coordinates of point 2 in degrees

    Returns:
        Distance in kilometers (NaN in, NaN out)
    """
    R = 6371  # Earth's radius in kilometers

    # Convert to radians
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)

    # Haversine formula
    a = math.sin(dlat / 2) ** 2 + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlng / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return R * c


def place_distance(a: Place, b: Place) -> float:
    return haversine_distance(a.latitude, a.longitude, b.latitude, b.longitude)


def cluster_places_by_days(places: list[P], num_days: int) -> list[list[P]]:
    """
    Split places into one bucket per day, round-robin by input order.

    Place i lands in bucket i % num_days. This is a cheap stand-in for
    spatial clustering: day assignment done upstream (by the user or the
    model) already carries most of the proximity information.

    Args:
        places: Places in input order (the manual path prefixes the departure point)
        num_days: Number of buckets, at least 1

    Returns:
        List of place lists, one per day
    """
    if num_days < 1:
        raise ValueError(f"num_days must be at least 1, got {num_days}")

    groups: list[list[P]] = [[] for _ in range(num_days)]
    for i, place in enumerate(places):
        groups[i % num_days].append(place)
    return groups


def optimize_daily_route(places: list[P]) -> list[P]:
    """
    Order one day's places with a nearest-neighbor walk.

    Starts at the first place and always moves to the closest unvisited one.
    Ties keep the earliest candidate in input order. No backtracking or 2-opt,
    so the result is a reasonable route, not the shortest one.

    Args:
        places: Places with latitude/longitude

    Returns:
        Reordered list of places
    """
    if len(places) <= 1:
        return list(places)

    route = [places[0]]
    remaining = list(places[1:])

    # Nearest-neighbor: always pick closest unvisited place
    while remaining:
        current = route[-1]

        min_dist = float("inf")
        nearest_idx = 0

        for idx, candidate in enumerate(remaining):
            dist = place_distance(current, candidate)
            if dist < min_dist:
                min_dist = dist
                nearest_idx = idx

        route.append(remaining.pop(nearest_idx))

    return route


def parse_places_import(text: str) -> list[Place]:
    """
    Parse a pasted places list, one place per line as 'Name | Address'.

    The address part is optional; blank lines are skipped. Coordinates start
    at the 0/0 sentinel until geocoding fills them in.
    """
    places = []
    for line in text.splitlines():
        if not line.strip():
            continue
        name, _, address = line.partition("|")
        name = name.strip()
        if not name:
            continue
        places.append(Place(name=name, address=address.strip(), notes=""))
    return places
