import re
from datetime import date as Date
from enum import Enum
from typing import Annotated, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Pace(str, Enum):
    """Trip-wide multiplier on dwell time."""

    RELAXED = "relaxed"
    BALANCED = "balanced"
    INTENSIVE = "intensive"


class Place(BaseModel):
    """A point of interest. 0/0 coordinates mean 'not geocoded yet'."""

    id: str | None = None
    name: str = Field(..., min_length=1)
    address: str = ""
    latitude: float = 0.0
    longitude: float = 0.0
    rating: float | None = Field(None, description="Rating (1-5)")
    notes: str | None = None
    estimated_duration: int | None = Field(
        None, ge=0, description="Base on-site time in minutes before pace scaling"
    )

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v

    @model_validator(mode="after")
    def default_address_to_name(self) -> "Place":
        if not self.address.strip():
            self.address = self.name
        return self

    @property
    def has_coordinates(self) -> bool:
        return not (self.latitude == 0 and self.longitude == 0)


# =============================================================================
# Scheduled stops (Attraction | Hotel tagged union)
# =============================================================================


class StopBase(BaseModel):
    name: str
    address: str = ""
    description: str = ""
    day_index: int = Field(..., ge=0)
    is_starting_point: bool = False
    place_id: str | None = None
    latitude: float | None = None
    longitude: float | None = None


class AttractionStop(StopBase):
    is_hotel: ClassVar[bool] = False

    kind: Literal["attraction"] = "attraction"
    estimated_duration: int = Field(..., description="On-site dwell time in minutes")
    best_time_to_visit: str = Field(
        "",
        description="Daypart label ('morning') or clock time ('9:30 AM')",
    )
    # None for the last stop of a day
    travel_time_to_next: int | None = Field(None, description="Minutes to the next stop")


class HotelStop(StopBase):
    """Overnight stop. Never carries duration, best time or travel time."""

    model_config = ConfigDict(extra="forbid")
    is_hotel: ClassVar[bool] = True

    kind: Literal["hotel"] = "hotel"

    @property
    def price_tier(self) -> int | None:
        """Number of '$' signs in the description ('$$$' = luxury)."""
        match = re.search(r"\${1,4}", self.description)
        return len(match.group(0)) if match else None


ScheduledStop = Annotated[AttractionStop | HotelStop, Field(discriminator="kind")]


class DayPlan(BaseModel):
    day_index: int = Field(..., ge=0)
    stops: list[ScheduledStop] = Field(default_factory=list)


# =============================================================================
# AI generation path
# =============================================================================


class MustVisitPlace(BaseModel):
    name: str = Field(..., min_length=1)
    preferred_day: int | None = Field(
        None, ge=0, description="0-based day index, None means any day"
    )


class ItineraryGenerateRequest(BaseModel):
    start_point: str = Field(..., min_length=1)
    end_point: str = Field(..., min_length=1)
    duration: int = Field(..., ge=1, le=30, description="Trip length in days")
    must_visit_places: list[MustVisitPlace] = Field(default_factory=list)
    pace: Pace = Pace.BALANCED

    @model_validator(mode="after")
    def preferred_days_within_trip(self) -> "ItineraryGenerateRequest":
        for place in self.must_visit_places:
            if place.preferred_day is not None and place.preferred_day >= self.duration:
                raise ValueError(
                    f"preferred_day {place.preferred_day} for '{place.name}' "
                    f"is outside a {self.duration}-day trip"
                )
        return self


class GeneratedItinerary(BaseModel):
    start_point: str
    end_point: str
    duration: int
    pace: Pace
    days: list[DayPlan] = Field(default_factory=list)


# =============================================================================
# Manual optimization path
# =============================================================================


class ManualOptimizeRequest(BaseModel):
    places: list[Place] = Field(default_factory=list)
    day_count: int = Field(..., ge=1, le=60)
    pace: Pace = Pace.BALANCED
    departure_point: Place
    start_date: Date | None = None


class OptimizedDay(BaseModel):
    day_index: int
    date: Date | None = None
    locations: list[AttractionStop] = Field(default_factory=list)
    total_travel_time: int = 0
    total_duration: int = 0


# =============================================================================
# Places import
# =============================================================================


class PlacesImportRequest(BaseModel):
    text: str = Field(..., description="One place per line: 'Name | Address'")
    geocode: bool = False
