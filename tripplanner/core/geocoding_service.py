"""
Google Geocoding API integration for filling in place coordinates.
"""

import asyncio
import logging
from typing import Any

import requests

from tripplanner.core.errors import ConfigurationError
from tripplanner.core.schemas import Place

logger = logging.getLogger(__name__)

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"


class GeocodingService:
    """Service for resolving addresses to coordinates."""

    def __init__(self, api_key: str):
        if not api_key:
            raise ConfigurationError("GOOGLE_MAPS_API_KEY not found in environment variables")
        self.api_key = api_key

    def geocode_location(self, location: str) -> dict[str, Any] | None:
        """
        Geocode a location string to latitude/longitude coordinates.

        Args:
            location: Address or place name (e.g., "Louvre Museum, Paris")

        Returns:
            Dictionary with 'lat', 'lng' and 'formatted_address' keys, or None if geocoding fails
        """
        params = {"address": location, "key": self.api_key}

        try:
            response = requests.get(GEOCODE_URL, params=params, timeout=10)
            response.raise_for_status()
            data = response.json()

            if data.get("status") != "OK" or not data.get("results"):
                logger.warning(f"Geocoding failed for {location}: {data.get('status')}")
                return None

            result = data["results"][0]
            return {
                "lat": result["geometry"]["location"]["lat"],
                "lng": result["geometry"]["location"]["lng"],
                "formatted_address": result.get("formatted_address", ""),
            }

        except (requests.RequestException, ValueError, KeyError) as e:
            logger.error(f"Error geocoding {location}: {e}")
            return None

    def geocode_place(self, place: Place) -> Place:
        """Fill in coordinates for a place still at the 0/0 sentinel."""
        if place.has_coordinates:
            return place

        result = self.geocode_location(place.address or place.name)
        if not result:
            return place

        update: dict[str, Any] = {"latitude": result["lat"], "longitude": result["lng"]}
        # The address only defaulted to the name; prefer the resolved one
        if place.address == place.name and result["formatted_address"]:
            update["address"] = result["formatted_address"]
        return place.model_copy(update=update)

    async def geocode_places(self, places: list[Place]) -> list[Place]:
        """Geocode places concurrently, preserving input order."""
        return list(
            await asyncio.gather(*(asyncio.to_thread(self.geocode_place, p) for p in places))
        )
