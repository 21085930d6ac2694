import uuid
import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional

from tripsynth.config import settings
from tripsynth.models.itinerary import (
    ContextSnapshot,
    Itinerary,
    NormalizedItinerary,
    UserIntent,
    WeatherContext,
)
from tripsynth.services.candidate_filter import classify_weather_bias
from tripsynth.services.fallback_engine import recommend_transport_mode, weather_recommendation

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


def truncate(text: str, limit: int) -> str:
    text = " ".join(text.split())
    if len(text) <= limit:
        return text
    return text[:limit - 3].rstrip() + "..."


def normalize_result(
    itinerary: Itinerary,
    intent: UserIntent,
    context: Optional[ContextSnapshot] = None,
    meta: Optional[Dict[str, Any]] = None,
    today: Optional[date] = None,
) -> NormalizedItinerary:
    """Wrap an Itinerary in the caller-facing shape, whichever tier produced it"""
    today = today or date.today()
    weather_context = None
    if context is not None:
        weather_context = WeatherContext(
            condition=context.weather.condition,
            temperature=context.weather.temperature,
            bias=classify_weather_bias(context).value,
            recommendation=weather_recommendation(context),
        )

    result = NormalizedItinerary(
        itineraryId=f"itin_{uuid.uuid4().hex[:12]}",
        title=truncate(intent.text, settings.title_max_length),
        description=f'Trip plan based on: "{truncate(intent.text, settings.description_max_length)}"',
        startDate=today.isoformat(),
        endDate=today.isoformat(),
        totalDurationMins=itinerary.totalDurationMins,
        totalTravelMins=itinerary.totalTravelMins,
        totalCost=itinerary.totalCost,
        visits=itinerary.visits,
        provenance=itinerary.provenance,
        transportMode=intent.transportMode or recommend_transport_mode(context),
        weatherContext=weather_context,
        meta={
            "generatedAt": datetime.now(timezone.utc).isoformat(),
            "generatedBy": "ItineraryService",
            "version": "1.0",
            **(meta or {}),
        },
    )
    logger.info(f"Normalized itinerary {result.itineraryId} with {len(result.visits)} visits")
    return result
