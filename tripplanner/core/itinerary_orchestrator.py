"""
Itinerary orchestration: AI generation with retries, and manual optimization.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import timedelta
from typing import Protocol

from tripplanner.core.errors import ConfigurationError, GenerationFailed
from tripplanner.core.geo_utils import cluster_places_by_days, optimize_daily_route, place_distance
from tripplanner.core.itinerary_planner import build_itinerary_prompt
from tripplanner.core.response_normalizer import normalize_itinerary_response
from tripplanner.core.schemas import (
    AttractionStop,
    DayPlan,
    GeneratedItinerary,
    ItineraryGenerateRequest,
    ManualOptimizeRequest,
    OptimizedDay,
    Pace,
    Place,
    ScheduledStop,
)
from tripplanner.core.settings import Settings, get_settings
from tripplanner.core.travel_time_utils import (
    adjust_duration_for_pace,
    estimate_travel_time,
    estimate_travel_time_from_hint,
    minutes_to_time_string,
    parse_clock_time,
)

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]

DEFAULT_DAY_START_MINUTES = 9 * 60


class TextGenerator(Protocol):
    async def generate(self, prompt: str) -> str: ...


def apply_pace(stops: list[ScheduledStop], pace: Pace) -> list[ScheduledStop]:
    """Scale every attraction's duration by the trip pace."""
    return [
        stop.model_copy(
            update={"estimated_duration": adjust_duration_for_pace(stop.estimated_duration, pace)}
        )
        if not stop.is_hotel
        else stop
        for stop in stops
    ]


def group_stops_by_day(stops: list[ScheduledStop], trip_days: int) -> list[DayPlan]:
    """
    Bucket ordered stops per day. A day ending on an attraction has nowhere
    to travel to, so that stop's travel_time_to_next becomes None.
    """
    days = [DayPlan(day_index=i) for i in range(trip_days)]
    for stop in stops:
        days[stop.day_index].stops.append(stop)

    for day in days:
        if day.stops and not day.stops[-1].is_hotel:
            day.stops[-1] = day.stops[-1].model_copy(update={"travel_time_to_next": None})
    return days


def leg_travel_minutes(origin: Place, destination: Place, departure_time: str) -> int:
    """Coordinate-based estimate when both ends are geocoded, medium default otherwise."""
    if origin.has_coordinates and destination.has_coordinates:
        return estimate_travel_time(place_distance(origin, destination), departure_time)
    return estimate_travel_time_from_hint(None)


class ItineraryOrchestrator:
    """Runs the AI generation path and the manual optimization path."""

    def __init__(
        self,
        generator: TextGenerator | None = None,
        settings: Settings | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.settings = settings or get_settings()
        self._generator = generator
        self._sleep = sleep

    @property
    def generator(self) -> TextGenerator:
        if self._generator is None:
            from tripplanner.core.llm_provider import LLMProvider

            self._generator = LLMProvider(
                model=self.settings.aisuite_model,
                temperature=self.settings.generation_temperature,
            )
        return self._generator

    # -------------------------------------------------------------------------
    # AI path
    # -------------------------------------------------------------------------

    async def generate(self, request: ItineraryGenerateRequest) -> GeneratedItinerary:
        """
        Generate an itinerary through the external model.

        Each attempt calls the generator, normalizes its text and applies the
        pace. Any failure except a configuration problem is retried, waiting
        attempt * generation_retry_delay seconds in between.

        Raises:
            ConfigurationError: Missing/invalid credentials (not retried)
            GenerationFailed: Every attempt failed; wraps the last error
        """
        prompt = build_itinerary_prompt(
            request.start_point,
            request.end_point,
            request.duration,
            request.must_visit_places,
            request.pace,
        )

        max_retries = self.settings.generation_max_retries
        last_error: Exception | None = None

        for attempt in range(1, max_retries + 1):
            try:
                logger.debug(f"Attempt {attempt} of {max_retries}")
                raw_text = await self.generator.generate(prompt)

                stops = normalize_itinerary_response(
                    raw_text, request.start_point, request.end_point, request.duration
                )
                stops = apply_pace(stops, request.pace)

                return GeneratedItinerary(
                    start_point=request.start_point,
                    end_point=request.end_point,
                    duration=request.duration,
                    pace=request.pace,
                    days=group_stops_by_day(stops, request.duration),
                )
            except ConfigurationError:
                raise
            except Exception as exc:
                last_error = exc
                logger.error(f"Attempt {attempt} failed: {exc}")

                if attempt < max_retries:
                    delay = self.settings.generation_retry_delay * attempt
                    logger.debug(f"Retrying in {delay}s...")
                    await self._sleep(delay)

        raise GenerationFailed(max_retries, last_error) from last_error

    # -------------------------------------------------------------------------
    # Manual path
    # -------------------------------------------------------------------------

    async def optimize(self, request: ManualOptimizeRequest) -> list[OptimizedDay]:
        """
        Cluster places into days, order each day and attach time estimates.

        The departure point leads day 0 so the first leg is timed from it, but
        it is not part of the returned locations. No places, no schedule.
        """
        if not request.places:
            return []

        departure = request.departure_point
        clusters = cluster_places_by_days([departure, *request.places], request.day_count)

        days = await asyncio.gather(
            *(
                self._plan_day(day_index, cluster, departure, request)
                for day_index, cluster in enumerate(clusters)
            )
        )
        logger.info(f"Optimized {len(request.places)} places into {len(days)} days")
        return list(days)

    async def _plan_day(
        self,
        day_index: int,
        cluster: list[Place],
        departure: Place,
        request: ManualOptimizeRequest,
    ) -> OptimizedDay:
        if day_index > 0:
            cluster = [p for p in cluster if p is not departure]
        route = optimize_daily_route(cluster)

        day_start = parse_clock_time(self.settings.day_start_time)
        clock = DEFAULT_DAY_START_MINUTES if day_start is None else day_start

        locations: list[AttractionStop] = []
        total_travel_time = 0
        total_duration = 0

        for idx, place in enumerate(route):
            is_departure = place is departure
            duration = 0
            if not is_departure:
                base = place.estimated_duration or self.settings.default_visit_duration
                duration = adjust_duration_for_pace(base, request.pace)

            arrival = clock
            clock += duration
            total_duration += duration

            travel_time = None
            if idx < len(route) - 1:
                travel_time = leg_travel_minutes(
                    place, route[idx + 1], minutes_to_time_string(clock)
                )
                clock += travel_time
                total_travel_time += travel_time

            if is_departure:
                continue

            locations.append(
                AttractionStop(
                    name=place.name,
                    address=place.address,
                    description=place.notes or "",
                    day_index=day_index,
                    place_id=place.id,
                    latitude=place.latitude,
                    longitude=place.longitude,
                    estimated_duration=duration,
                    best_time_to_visit=minutes_to_time_string(arrival),
                    travel_time_to_next=travel_time,
                )
            )

        return OptimizedDay(
            day_index=day_index,
            date=request.start_date + timedelta(days=day_index) if request.start_date else None,
            locations=locations,
            total_travel_time=total_travel_time,
            total_duration=total_duration,
        )
