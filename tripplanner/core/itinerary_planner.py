"""
Helper functions for building the itinerary generation prompt.
"""

from tripplanner.core.schemas import MustVisitPlace, Pace


def format_must_visit_places(places: list[MustVisitPlace]) -> str:
    """
    Render must-visit places for the prompt.

    Args:
        places: Places the itinerary has to include

    Returns:
        Comma-separated list, e.g. "Louvre (Day 2), Montmartre (any day)"
    """
    if not places:
        return "None specified"

    rendered = []
    for place in places:
        if place.preferred_day is not None:
            rendered.append(f"{place.name} (Day {place.preferred_day + 1})")
        else:
            rendered.append(f"{place.name} (any day)")
    return ", ".join(rendered)


def get_pace_guidance(pace: Pace) -> str:
    if pace == Pace.RELAXED:
        return "Relaxed: 2-3 attractions per day with generous breaks."
    elif pace == Pace.INTENSIVE:
        return "Intensive: 5-6 attractions per day, short breaks, early starts."
    return "Balanced: 3-4 attractions per day with time for meals."


def build_itinerary_prompt(
    start_point: str,
    end_point: str,
    duration: int,
    must_visit_places: list[MustVisitPlace],
    pace: Pace,
) -> str:
    """
    Build the single prompt sent to the generation service.

    The response contract (one JSON array of stop objects, [HOTEL]-prefixed
    hotels without timing fields) is what response_normalizer expects.
    """
    last_day = duration - 1
    places = format_must_visit_places(must_visit_places)

    return (
        f"As an expert travel planner, create a detailed {duration}-day itinerary "
        "optimized for geographic efficiency, including accommodation recommendations.\n\n"
        f"Start Point: {start_point}\n"
        f"End Point: {end_point}\n"
        f"Must-Visit Places: {places}\n"
        f"Pace: {pace.value} ({get_pace_guidance(pace)})\n\n"
        "CRITICAL REQUIREMENTS:\n\n"
        "1. Day Structure and Hotels:\n"
        f'   - Day 1 MUST start with "{start_point}"\n'
        f"   - Days 2 to {duration} MUST start from the previous day's hotel\n"
        "   - Each day except the last MUST have EXACTLY ONE hotel as its last entry\n"
        f'   - Day {duration} MUST end at "{end_point}"\n\n'
        "2. Geographic Optimization:\n"
        "   - Group locations by proximity to minimize travel time\n"
        "   - Plan each day's route in a logical sequence\n"
        "   - Each day's attractions should be near that night's hotel\n\n"
        "3. Hotel Entries:\n"
        '   - Name MUST start with the "[HOTEL]" prefix\n'
        "   - Do NOT include estimatedDuration, travelTimeToNext or bestTimeToVisit\n"
        '   - Description MUST include the price range ("$" budget, "$$" mid-range, "$$$" luxury),\n'
        "     key amenities, and why it is well placed for the next day\n\n"
        "4. Travel Time Rules (attractions only):\n"
        "   - travelTimeToNext is an exact number of minutes, not a range\n"
        "   - Short distances (<2km): 15 minutes\n"
        "   - Medium distances (2-5km): 25 minutes\n"
        "   - Long distances (>5km): 45 minutes\n"
        "   - Add 40% during peak hours (8-10am, 4-7pm)\n\n"
        "5. Duration Guidelines (attractions only, in minutes):\n"
        "   - Major attractions: 180-240\n"
        "   - Medium attractions: 120-180\n"
        "   - Minor attractions: 60-120\n\n"
        "6. Response Format:\n"
        "[\n"
        "  {\n"
        '    "name": "Location Name or [HOTEL] Hotel Name",\n'
        '    "address": "Full Street Address, City, Region",\n'
        '    "description": "Brief description (hotels: price range, amenities, location benefits)",\n'
        '    "estimatedDuration": number_of_minutes,\n'
        '    "travelTimeToNext": number_of_minutes,\n'
        '    "bestTimeToVisit": "morning/afternoon/evening or HH:MM",\n'
        '    "dayIndex": number,\n'
        '    "isStartingPoint": boolean,\n'
        '    "isHotel": boolean\n'
        "  }\n"
        "]\n\n"
        "STRICT FORMAT RULES:\n"
        f'- First location MUST be "{start_point}" with dayIndex 0\n'
        f'- Last location MUST be "{end_point}" with dayIndex {last_day}\n'
        f"- dayIndex must be between 0 and {last_day}\n"
        "- Use ONLY double quotes, NO trailing commas, NO comments\n"
        "- estimatedDuration and travelTimeToNext must be numbers (omit for hotels)\n"
        "- Include FULL addresses; keep descriptions under 200 characters\n"
        "- NO markdown formatting, NO text before or after the array\n"
        "- RESPOND WITH ONLY THE JSON ARRAY"
    )
