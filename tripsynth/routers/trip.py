from fastapi import APIRouter, Depends, HTTPException, status, Response
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
import logging
from datetime import datetime, timezone

from tripsynth.config import settings
from tripsynth.dependencies import get_generator_status, get_inflight_registry
from tripsynth.models.itinerary import PlanTripRequest, PlanTripResponse, UserIntent
from tripsynth.services.intent_parser import parse_intent
from tripsynth.services.itinerary_service import get_itinerary_service

logger = logging.getLogger(__name__)
router = APIRouter(tags=["trip"])


class AnalyzeTextRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=2000, description="Free-text travel request")


class ErrorResponse(BaseModel):
    """Error response model"""
    status: str = "error"
    message: str
    details: Optional[Dict[str, Any]] = None


@router.post("/plantrip", response_model=PlanTripResponse, responses={
    400: {"model": ErrorResponse, "description": "Bad Request"},
    500: {"model": ErrorResponse, "description": "Internal Server Error"}
})
async def plan_trip(request: PlanTripRequest, response: Response):
    """
    Synthesize a scheduled single-day itinerary from a free-text request.

    The generator, the weather provider and the travel-time provider may all
    be unavailable; the response then carries a rule-based itinerary and its
    provenance says so.
    """
    start_time = datetime.now()

    try:
        logger.info(f"Planning trip for request: {request.text[:100]}")

        itinerary_service = get_itinerary_service()
        itinerary = await itinerary_service.generate_itinerary(
            text=request.text,
            attractions=request.attractions,
            context=request.context,
        )

        processing_time = (datetime.now() - start_time).total_seconds()
        logger.info(f"Trip planning completed in {processing_time:.2f}s ({itinerary.provenance.value})")

        response.headers["X-Processing-Time"] = str(processing_time)
        response.headers["X-Itinerary-Provenance"] = itinerary.provenance.value

        return PlanTripResponse(status="success", itinerary=itinerary, processingTime=processing_time)

    except ValueError as e:
        logger.error(f"Validation error in trip planning: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"status": "error", "message": f"Invalid request: {str(e)}"}
        )
    except Exception as e:
        logger.error(f"Unexpected error in trip planning: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"status": "error", "message": "Internal server error"}
        )


@router.post("/analyze-text", response_model=UserIntent)
async def analyze_text(request: AnalyzeTextRequest):
    """Extract budget, categories, group size and transport preferences from a request"""
    if len(request.text.strip()) < settings.min_request_length:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"status": "error", "message": f"Text must be at least {settings.min_request_length} characters long"}
        )
    return parse_intent(request.text)


@router.get("/health")
async def health_check(generator: Dict[str, Any] = Depends(get_generator_status)):
    """Health check endpoint for the trip service"""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {
            "generator": generator,
            "inflight_requests": len(get_inflight_registry()),
        }
    }
