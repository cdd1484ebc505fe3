#!/usr/bin/env python3
"""
Run both itinerary paths by hand against real services.

The AI path calls the configured model (AISUITE_MODEL, GOOGLE_API_KEY).
The manual path geocodes a short places list when GOOGLE_MAPS_API_KEY is
set and falls back to default travel times otherwise.

Usage:
    poetry run python scripts/run_itinerary_generation.py
"""
import asyncio
import os
import sys
from datetime import date

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Add the project root to the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

try:
    from tripplanner.core.errors import ItineraryError
    from tripplanner.core.geo_utils import parse_places_import
    from tripplanner.core.geocoding_service import GeocodingService
    from tripplanner.core.itinerary_orchestrator import ItineraryOrchestrator
    from tripplanner.core.schemas import (
        ItineraryGenerateRequest,
        ManualOptimizeRequest,
        MustVisitPlace,
        Place,
    )
    from tripplanner.core.settings import get_settings
except Exception as e:
    print(f"❌ Failed to import modules: {e}")
    print("Make sure:")
    print("  1. You're running from the project root")
    print("  2. Poetry environment is activated: poetry install")
    sys.exit(1)


PLACES_TEXT = """Louvre Museum | Rue de Rivoli, 75001 Paris
Musee d'Orsay | 1 Rue de la Legion d'Honneur, 75007 Paris
Sainte-Chapelle | 10 Boulevard du Palais, 75001 Paris
Sacre-Coeur | 35 Rue du Chevalier de la Barre, 75018 Paris
Arc de Triomphe | Place Charles de Gaulle, 75008 Paris
"""


def print_section(title: str):
    """Print a formatted section header."""
    print("\n" + "=" * 80)
    print(f"  {title}")
    print("=" * 80 + "\n")


async def run_generation(orchestrator: ItineraryOrchestrator):
    print_section("AI Itinerary Generation")

    request = ItineraryGenerateRequest(
        start_point="Gare du Nord, Paris",
        end_point="Gare de Lyon, Paris",
        duration=3,
        must_visit_places=[
            MustVisitPlace(name="Louvre Museum", preferred_day=0),
            MustVisitPlace(name="Sacre-Coeur"),
        ],
        pace="balanced",
    )

    try:
        itinerary = await orchestrator.generate(request)
    except ItineraryError as e:
        print(f"❌ Generation failed: {e}")
        return None

    for day in itinerary.days:
        print(f"Day {day.day_index + 1}:")
        for stop in day.stops:
            if stop.is_hotel:
                print(f"  🏨 {stop.name} (tier: {stop.price_tier or '?'})")
            else:
                print(
                    f"  📍 {stop.name} - {stop.estimated_duration} min, "
                    f"{stop.best_time_to_visit or 'any time'}, "
                    f"next: {stop.travel_time_to_next if stop.travel_time_to_next is not None else '-'}"
                )
    return itinerary


async def run_manual_optimization(orchestrator: ItineraryOrchestrator):
    print_section("Manual Optimization")

    places = parse_places_import(PLACES_TEXT)
    departure = Place(name="Eiffel Tower", address="Champ de Mars, 75007 Paris")

    api_key = get_settings().google_maps_api_key
    if api_key:
        geocoder = GeocodingService(api_key)
        places = await geocoder.geocode_places(places)
        departure = geocoder.geocode_place(departure)
        print(f"Geocoded {sum(p.has_coordinates for p in places)}/{len(places)} places")
    else:
        print("⚠️  GOOGLE_MAPS_API_KEY not set, using default travel times")

    days = await orchestrator.optimize(
        ManualOptimizeRequest(
            places=places,
            day_count=2,
            pace="relaxed",
            departure_point=departure,
            start_date=date.today(),
        )
    )

    for day in days:
        print(f"{day.date}: {day.total_duration} min on site, {day.total_travel_time} min travel")
        for stop in day.locations:
            print(f"  {stop.best_time_to_visit:>9}  {stop.name}")
    return days


async def main():
    orchestrator = ItineraryOrchestrator()

    await run_manual_optimization(orchestrator)
    result = await run_generation(orchestrator)

    print_section("Summary")
    if result:
        print("✅ Itinerary generation completed")
    else:
        print("❌ Itinerary generation failed")
        print("   Check error messages above")


if __name__ == "__main__":
    asyncio.run(main())
