"""
Fallback Recommendation Engine.

Rule-based selection used whenever the generator is unavailable, its output
cannot be repaired, or a duplicate request short-circuits the call.
"""

import logging
from typing import List, Optional, Tuple

from tripsynth.config import settings
from tripsynth.models.itinerary import Attraction, ContextSnapshot, TransportMode
from tripsynth.services.candidate_filter import (
    WeatherBias,
    blended_selection,
    classify_weather_bias,
    keyword_category_filter,
)
from tripsynth.services.intent_parser import wants_cultural_and_food
from tripsynth.services.output_repair import Selection

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


KEYWORD_REASON = "Matches keywords from your request"
GENERAL_REASON = "Popular Hong Kong highlight"


def recommend_transport_mode(context: Optional[ContextSnapshot]) -> TransportMode:
    """MTR in bad weather or heat, walking plus transit otherwise"""
    if context is None:
        return TransportMode.mixed

    condition = (context.weather.condition or "").lower()
    if "rain" in condition or "storm" in condition or context.alerts:
        return TransportMode.public_transport
    if context.weather.temperature is not None and context.weather.temperature > 32:
        return TransportMode.public_transport
    return TransportMode.mixed


def weather_recommendation(context: Optional[ContextSnapshot]) -> str:
    if context is None:
        return "No weather data available"

    weather = context.weather
    recommendations = []

    if "rain" in (weather.condition or "").lower():
        recommendations.append("Rainy weather - indoor attractions recommended")
    if weather.temperature is not None and weather.temperature > settings.hot_temperature_c:
        recommendations.append("Hot weather - seek air-conditioned venues during peak hours")
    if weather.uvIndex is not None and weather.uvIndex > settings.high_uv_index:
        recommendations.append("High UV index - bring sun protection or stay indoors 11AM-3PM")
    if weather.airQualityIndex is not None and weather.airQualityIndex < settings.poor_air_quality_index:
        recommendations.append("Poor air quality - indoor activities strongly recommended")
    if context.alerts:
        recommendations.append(f"Active weather alerts: {', '.join(a.title for a in context.alerts)}")

    return "; ".join(recommendations) if recommendations else "Good conditions for outdoor activities"


class FallbackRecommendationEngine:
    """Keyword and weather driven attraction selection"""

    def __init__(self, take: Optional[int] = None, min_visits: Optional[int] = None):
        self.take = take or settings.fallback_take
        self.min_visits = min_visits or settings.fallback_min_visits

    def _pick(self, text: str, candidates: List[Attraction], bias: WeatherBias) -> Tuple[List[Attraction], str]:
        if wants_cultural_and_food(text):
            blended = blended_selection(candidates, bias)
            if blended:
                logger.info(f"Fallback cultural + food plan: {[a.name for a in blended]}")
                return blended, KEYWORD_REASON

        matched = keyword_category_filter(candidates, text, bias)
        if matched:
            return matched[:self.take], KEYWORD_REASON

        logger.info("No specific matches found, using general selection")
        return candidates[:self.take], GENERAL_REASON

    def _top_up(
        self,
        picked: List[Attraction],
        candidates: List[Attraction],
        catalog: List[Attraction],
        bias: WeatherBias,
    ) -> List[Attraction]:
        """Candidates first, then weather-compatible catalog entries, then the rest of the catalog"""
        pools = [
            candidates,
            [a for a in catalog if bias != WeatherBias.indoor or a.is_indoor],
            catalog,
        ]
        chosen = {a.id for a in picked}
        extra: List[Attraction] = []
        for pool in pools:
            for attraction in pool:
                if len(picked) + len(extra) >= self.min_visits:
                    break
                if attraction.id not in chosen:
                    chosen.add(attraction.id)
                    extra.append(attraction)

        if extra:
            logger.info(f"Topping up fallback selection with {[a.name for a in extra]}")
        return picked + extra

    def select(
        self,
        text: str,
        candidates: List[Attraction],
        context: Optional[ContextSnapshot] = None,
        catalog: Optional[List[Attraction]] = None,
    ) -> List[Selection]:
        """
        Rule-based selection over the candidate subset.

        When fewer than ``min_visits`` attractions are picked, the selection is
        topped up from the candidates and then from the full request catalog.
        """
        bias = classify_weather_bias(context)
        lowered = (text or "").lower()

        picked, reason = self._pick(lowered, candidates, bias)

        if len(picked) < self.min_visits:
            picked = self._top_up(picked, candidates, catalog or candidates, bias)

        logger.info(f"Fallback selected {len(picked)} attractions: {', '.join(a.name for a in picked)}")
        return [
            Selection(attraction_id=a.id, name=a.name, visit_order=index + 1, reason=reason)
            for index, a in enumerate(picked)
        ]
