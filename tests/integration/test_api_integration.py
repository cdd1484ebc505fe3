import json

import pytest
from httpx import ASGITransport, AsyncClient

from tripplanner.api.routers.itineraries import get_orchestrator
from tripplanner.api.routers.places import get_geocoder
from tripplanner.core.errors import ConfigurationError
from tripplanner.core.itinerary_orchestrator import ItineraryOrchestrator
from tripplanner.core.settings import Settings
from tripplanner.main import create_app

MODEL_RESPONSE = json.dumps(
    [
        {"name": "Gare du Nord", "dayIndex": 0, "estimatedDuration": 30, "travelTimeToNext": 15, "bestTimeToVisit": "morning"},
        {"name": "Sacre-Coeur", "dayIndex": 0, "estimatedDuration": 90, "travelTimeToNext": 20, "bestTimeToVisit": "afternoon"},
        {"name": "[HOTEL] Hotel Amour", "description": "$$ Garden courtyard", "dayIndex": 0},
        {"name": "Gare de Lyon", "dayIndex": 1, "estimatedDuration": 30, "bestTimeToVisit": "evening"},
    ]
)

GENERATE_PAYLOAD = {
    "start_point": "Gare du Nord",
    "end_point": "Gare de Lyon",
    "duration": 2,
    "must_visit_places": [{"name": "Sacre-Coeur", "preferred_day": 0}],
    "pace": "balanced",
}


class StaticGenerator:
    def __init__(self, response):
        self.response = response

    async def generate(self, prompt: str) -> str:
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


class StubGeocoder:
    async def geocode_places(self, places):
        return [
            place.model_copy(update={"latitude": 48.8867, "longitude": 2.3431}) for place in places
        ]


async def no_sleep(delay: float) -> None:
    return None


def make_app(generator_response=None, geocoder=None):
    app = create_app()
    orchestrator = ItineraryOrchestrator(
        generator=StaticGenerator(generator_response),
        settings=Settings(generation_max_retries=2, day_start_time="11:00"),
        sleep=no_sleep,
    )
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_geocoder] = lambda: geocoder
    return app


def client_for(app) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_healthz_integration():
    async with client_for(create_app()) as ac:
        response = await ac.get("/healthz")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_generate_itinerary_integration():
    async with client_for(make_app(MODEL_RESPONSE)) as ac:
        response = await ac.post("/itineraries/generate", json=GENERATE_PAYLOAD)

    assert response.status_code == 200
    body = response.json()
    assert body["duration"] == 2
    day_zero, day_one = body["days"]
    assert [stop["name"] for stop in day_zero["stops"]] == [
        "Gare du Nord",
        "Sacre-Coeur",
        "[HOTEL] Hotel Amour",
    ]
    hotel = day_zero["stops"][-1]
    assert hotel["kind"] == "hotel"
    assert "estimated_duration" not in hotel
    assert day_one["stops"][-1]["travel_time_to_next"] is None


@pytest.mark.asyncio
async def test_generate_itinerary_exhausted_retries_returns_502():
    async with client_for(make_app("no itinerary here")) as ac:
        response = await ac.post("/itineraries/generate", json=GENERATE_PAYLOAD)

    assert response.status_code == 502
    detail = response.json()["detail"]
    assert detail["attempts"] == 2
    assert "No JSON array found" in detail["provider_error"]


@pytest.mark.asyncio
async def test_generate_itinerary_unconfigured_returns_503():
    app = make_app(ConfigurationError("GOOGLE_API_KEY is not set"))
    async with client_for(app) as ac:
        response = await ac.post("/itineraries/generate", json=GENERATE_PAYLOAD)

    assert response.status_code == 503
    assert response.json()["detail"] == "GOOGLE_API_KEY is not set"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"duration": 0},
        {"pace": "turbo"},
        {"must_visit_places": [{"name": "Louvre", "preferred_day": 5}]},
    ],
)
async def test_generate_itinerary_rejects_invalid_payload(overrides):
    async with client_for(make_app(MODEL_RESPONSE)) as ac:
        response = await ac.post("/itineraries/generate", json={**GENERATE_PAYLOAD, **overrides})

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_optimize_itinerary_integration():
    payload = {
        "places": [
            {"name": "Louvre Museum", "latitude": 48.8606, "longitude": 2.3376},
            {"name": "Arc de Triomphe", "latitude": 48.8738, "longitude": 2.2950},
        ],
        "day_count": 1,
        "pace": "balanced",
        "departure_point": {"name": "Eiffel Tower", "latitude": 48.8584, "longitude": 2.2945},
        "start_date": "2025-06-01",
    }

    async with client_for(make_app()) as ac:
        response = await ac.post("/itineraries/optimize", json=payload)

    assert response.status_code == 200
    [day] = response.json()
    assert day["date"] == "2025-06-01"
    assert [stop["name"] for stop in day["locations"]] == ["Arc de Triomphe", "Louvre Museum"]
    assert day["locations"][0]["best_time_to_visit"] == "11:05 AM"
    assert day["total_duration"] == 120


@pytest.mark.asyncio
async def test_optimize_itinerary_rejects_zero_days():
    payload = {"places": [], "day_count": 0, "departure_point": {"name": "Home"}}
    async with client_for(make_app()) as ac:
        response = await ac.post("/itineraries/optimize", json=payload)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_import_places_integration():
    text = "Sacre-Coeur | 35 Rue du Chevalier de la Barre\n\nMoulin Rouge\n"
    async with client_for(make_app()) as ac:
        response = await ac.post("/places/import", json={"text": text})

    assert response.status_code == 200
    places = response.json()
    assert [p["name"] for p in places] == ["Sacre-Coeur", "Moulin Rouge"]
    assert places[1]["address"] == "Moulin Rouge"
    assert places[0]["latitude"] == 0.0


@pytest.mark.asyncio
async def test_import_places_with_geocoding():
    async with client_for(make_app(geocoder=StubGeocoder())) as ac:
        response = await ac.post("/places/import", json={"text": "Sacre-Coeur", "geocode": True})

    assert response.status_code == 200
    assert response.json()[0]["latitude"] == 48.8867


@pytest.mark.asyncio
async def test_import_places_empty_text_returns_400():
    async with client_for(make_app()) as ac:
        response = await ac.post("/places/import", json={"text": "  \n \n"})

    assert response.status_code == 400
    assert response.json()["detail"] == "Please enter at least one place"


@pytest.mark.asyncio
async def test_import_places_geocoding_unconfigured_returns_503():
    async with client_for(make_app(geocoder=None)) as ac:
        response = await ac.post("/places/import", json={"text": "Sacre-Coeur", "geocode": True})

    assert response.status_code == 503
