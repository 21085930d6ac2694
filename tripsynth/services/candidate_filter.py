"""
Candidate Filter.

Narrows the full attraction catalog to a weather- and category-aware subset
that fits the generator's prompt. Pure functions over already-fetched data.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from tripsynth.config import settings
from tripsynth.models.itinerary import (
    Attraction,
    AlertSeverity,
    Category,
    ContextSnapshot,
    UserIntent,
)
from tripsynth.services.intent_parser import mentions_any, wants_cultural_and_food

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


PRECIPITATION_WORDS = ("rain", "shower", "storm", "thunder", "typhoon", "drizzle")
HIGH_SEVERITY = {AlertSeverity.warning, AlertSeverity.critical}

CULTURAL_NAME_HINTS = ("temple", "museum", "heritage")
FOOD_NAME_HINTS = ("market", "restaurant", "dim sum", "tea")


class WeatherBias(str, Enum):
    none = "none"
    mixed = "mixed"
    indoor = "indoor"


@dataclass
class CandidateSet:
    candidates: List[Attraction] = field(default_factory=list)
    bias: WeatherBias = WeatherBias.none
    blended: bool = False
    relaxed: bool = False


def classify_weather_bias(context: Optional[ContextSnapshot]) -> WeatherBias:
    """Classify the snapshot as indoor-biased, mixed or unconstrained."""
    if context is None:
        return WeatherBias.none

    weather = context.weather
    condition = (weather.condition or "").lower()

    if any(word in condition for word in PRECIPITATION_WORDS) or any(
        alert.severity in HIGH_SEVERITY for alert in context.alerts
    ):
        return WeatherBias.indoor

    if (weather.temperature is not None and weather.temperature > settings.hot_temperature_c) or (
        weather.uvIndex is not None and weather.uvIndex > settings.high_uv_index
    ):
        return WeatherBias.mixed

    if weather.airQualityIndex is not None and weather.airQualityIndex < settings.poor_air_quality_index:
        return WeatherBias.indoor

    return WeatherBias.none


def is_cultural_match(attraction: Attraction) -> bool:
    if attraction.category in (Category.cultural, Category.historical, Category.museum):
        return True
    # "Temple Street Night Market" is a food venue, not a temple
    name = attraction.name.lower()
    return attraction.category != Category.food and any(hint in name for hint in CULTURAL_NAME_HINTS)


def is_food_match(attraction: Attraction) -> bool:
    name = attraction.name.lower()
    return (
        attraction.category == Category.food
        or any(hint in name for hint in FOOD_NAME_HINTS)
        or "dim sum" in (attraction.description or "").lower()
    )


def blended_selection(attractions: List[Attraction], bias: WeatherBias, per_group: int = 2) -> List[Attraction]:
    """Up to ``per_group`` cultural matches followed by up to ``per_group`` food matches."""
    cultural = [
        a for a in attractions
        if is_cultural_match(a) and (bias != WeatherBias.indoor or a.is_indoor)
    ][:per_group]
    food = [a for a in attractions if is_food_match(a) and a not in cultural][:per_group]
    return cultural + food


def _apply_weather(attractions: List[Attraction], bias: WeatherBias) -> List[Attraction]:
    if bias == WeatherBias.indoor:
        return [a for a in attractions if a.is_indoor]
    return list(attractions)


def _apply_intent(attractions: List[Attraction], intent: Optional[UserIntent]) -> List[Attraction]:
    if intent is None:
        return list(attractions)

    result = list(attractions)
    if intent.budget is not None:
        result = [a for a in result if a.cost <= intent.budget]
    if intent.accessibilityRequired:
        result = [a for a in result if a.accessibility.wheelchairAccessible]
    if intent.preferredCategories:
        preferred = set(intent.preferredCategories)
        # stable: preferred categories first, catalog order otherwise
        result.sort(key=lambda a: 0 if a.category in preferred else 1)
    return result


def filter_candidates(
    catalog: List[Attraction],
    context: Optional[ContextSnapshot] = None,
    intent: Optional[UserIntent] = None,
    max_candidates: Optional[int] = None,
) -> CandidateSet:
    """
    Build the candidate subset for a request.

    Relaxes filters in order (weather bias, then intent narrowing) whenever a
    stage would leave nothing to choose from.
    """
    limit = max_candidates or settings.max_candidates
    bias = classify_weather_bias(context)
    text = intent.text if intent else ""

    if bias != WeatherBias.none:
        logger.info(f"Weather bias for this request: {bias.value}")

    weather_filtered = _apply_weather(catalog, bias)

    if text and wants_cultural_and_food(text):
        blended = blended_selection(_apply_intent(weather_filtered, intent), bias)
        if blended:
            logger.info(f"Blended cultural + food selection: {[a.name for a in blended]}")
            return CandidateSet(candidates=blended[:limit], bias=bias, blended=True)

    candidates = _apply_intent(weather_filtered, intent)
    relaxed = False

    if not candidates:
        logger.warning("No candidates after weather and intent filtering, dropping weather bias")
        candidates = _apply_intent(catalog, intent)
        relaxed = True

    if not candidates:
        logger.warning("No candidates after intent filtering, using the whole catalog")
        candidates = list(catalog)

    return CandidateSet(candidates=candidates[:limit], bias=bias, relaxed=relaxed)


def keyword_category_filter(attractions: List[Attraction], text: str, bias: WeatherBias) -> Optional[List[Attraction]]:
    """
    Single-category keyword matching over an already weather-filtered list.

    Returns None when the text carries no recognised category keyword.
    """
    if mentions_any(text, ("cultural", "culture", "harbor", "history", "historic", "heritage")):
        return [a for a in attractions if a.category in (Category.cultural, Category.historical)]
    if mentions_any(text, ("nature", "peak", "mountain", "park", "hike")):
        if bias == WeatherBias.indoor:
            return []
        return [a for a in attractions if a.category == Category.nature]
    if mentions_any(text, ("food", "market", "eat", "dimsum", "dim sum")):
        return [a for a in attractions if a.category == Category.food]
    return None
