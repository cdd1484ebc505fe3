import logging

from fastapi import APIRouter, Depends, HTTPException

from tripplanner.core.errors import ConfigurationError, GenerationFailed
from tripplanner.core.itinerary_orchestrator import ItineraryOrchestrator
from tripplanner.core.schemas import (
    GeneratedItinerary,
    ItineraryGenerateRequest,
    ManualOptimizeRequest,
    OptimizedDay,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/itineraries", tags=["itineraries"])


def get_orchestrator() -> ItineraryOrchestrator:
    return ItineraryOrchestrator()


@router.post("/generate", response_model=GeneratedItinerary)
async def generate_itinerary(
    payload: ItineraryGenerateRequest,
    orchestrator: ItineraryOrchestrator = Depends(get_orchestrator),
) -> GeneratedItinerary:
    """Generate a day-by-day itinerary with the external model."""
    try:
        return await orchestrator.generate(payload)
    except ConfigurationError as e:
        logger.error(f"Itinerary generation is not configured: {e}")
        raise HTTPException(status_code=503, detail=str(e))
    except GenerationFailed as e:
        raise HTTPException(
            status_code=502,
            detail={"provider_error": str(e), "attempts": e.attempts},
        )


@router.post("/optimize", response_model=list[OptimizedDay])
async def optimize_itinerary(
    payload: ManualOptimizeRequest,
    orchestrator: ItineraryOrchestrator = Depends(get_orchestrator),
) -> list[OptimizedDay]:
    """Cluster, order and time the given places without the model."""
    return await orchestrator.optimize(payload)
