from fastapi import APIRouter, Depends, HTTPException

from tripplanner.core.geo_utils import parse_places_import
from tripplanner.core.geocoding_service import GeocodingService
from tripplanner.core.schemas import Place, PlacesImportRequest
from tripplanner.core.settings import get_settings

router = APIRouter(prefix="/places", tags=["places"])


def get_geocoder() -> GeocodingService | None:
    api_key = get_settings().google_maps_api_key
    if not api_key:
        return None
    return GeocodingService(api_key)


@router.post("/import", response_model=list[Place])
async def import_places(
    payload: PlacesImportRequest,
    geocoder: GeocodingService | None = Depends(get_geocoder),
) -> list[Place]:
    """Parse a pasted 'Name | Address' list, optionally geocoding each place."""
    places = parse_places_import(payload.text)
    if not places:
        raise HTTPException(status_code=400, detail="Please enter at least one place")

    if payload.geocode:
        if geocoder is None:
            raise HTTPException(status_code=503, detail="Geocoding is not configured")
        places = await geocoder.geocode_places(places)

    return places
