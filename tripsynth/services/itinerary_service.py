import time
import logging
from typing import List, Optional

from tripsynth.config import settings
from tripsynth.dependencies import get_context_gatherer, get_inflight_registry
from tripsynth.models.catalog import get_default_catalog
from tripsynth.models.itinerary import Attraction, ContextSnapshot, NormalizedItinerary, Provenance
from tripsynth.services.candidate_filter import filter_candidates
from tripsynth.services.context_service import ContextGatherer
from tripsynth.services.fallback_engine import FallbackRecommendationEngine
from tripsynth.services.generation_requester import GenerationRequester, InFlightRegistry
from tripsynth.services.intent_parser import parse_intent
from tripsynth.services.llm_service import get_llm_service
from tripsynth.services.output_repair import repair_output
from tripsynth.services.result_normalizer import normalize_result
from tripsynth.services.scheduler import build_itinerary

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


class ItineraryService:
    """Synthesizes a scheduled single-day itinerary from a free-text request"""

    def __init__(
        self,
        llm_service=None,
        registry: Optional[InFlightRegistry] = None,
        context_gatherer: Optional[ContextGatherer] = None,
        fallback_engine: Optional[FallbackRecommendationEngine] = None,
        catalog: Optional[List[Attraction]] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self.llm_service = llm_service or get_llm_service()
        self.registry = registry if registry is not None else get_inflight_registry()
        self.requester = GenerationRequester(self.llm_service, self.registry, timeout_seconds)
        self.context_gatherer = context_gatherer or get_context_gatherer()
        self.fallback_engine = fallback_engine or FallbackRecommendationEngine()
        self.default_catalog = catalog or get_default_catalog()

    async def generate_itinerary(
        self,
        text: str,
        attractions: Optional[List[Attraction]] = None,
        context: Optional[ContextSnapshot] = None,
        arrival: Optional[float] = None,
    ) -> NormalizedItinerary:
        """
        Run the full pipeline for one request.

        Args:
            text: Free-text travel request
            attractions: Candidate catalog; the built-in catalog when omitted or empty
            context: Pre-fetched context snapshot; gathered live when omitted
            arrival: Request arrival time (epoch seconds) used for deduplication

        Returns:
            NormalizedItinerary; generator and provider failures are recovered locally

        Raises:
            ValueError: if the request text is too short
        """
        text = (text or "").strip()
        if len(text) < settings.min_request_length:
            raise ValueError(f"Request text must be at least {settings.min_request_length} characters long")

        started = time.monotonic()
        catalog = list(attractions) if attractions else self.default_catalog
        intent = parse_intent(text)

        gathered = context is None
        if gathered:
            context = await self.context_gatherer.gather(catalog)

        candidate_set = filter_candidates(catalog, context, intent)
        candidates = candidate_set.candidates
        logger.info(f"Selected {len(candidates)} candidates from {len(catalog)} attractions")

        if gathered:
            context = await self.context_gatherer.extend_travel_times(context, catalog, candidates)

        generation_status = None
        repair_tier = None
        selections, provenance = None, None

        try:
            outcome = await self.requester.request(text, candidates, context, arrival)
            generation_status = outcome.status.value
            if outcome.succeeded:
                repair = repair_output(outcome.content, candidates)
                repair_tier = repair.tier
                if repair.succeeded:
                    selections, provenance = repair.selections, repair.provenance
        except Exception as e:
            logger.error(f"Generator stage failed, using rule-based fallback: {e}", exc_info=True)

        if selections is None:
            logger.warning(f"Using rule-based fallback (generator status: {generation_status})")
            selections = self.fallback_engine.select(text, candidates, context, catalog)
            provenance = Provenance.rule_based_fallback

        itinerary = build_itinerary(selections, catalog, context.travelTimes, provenance)

        return normalize_result(
            itinerary,
            intent,
            context,
            meta={
                "candidateCount": len(candidates),
                "weatherBias": candidate_set.bias.value,
                "filtersRelaxed": candidate_set.relaxed,
                "generatorStatus": generation_status,
                "repairTier": repair_tier,
                "processingTime": round(time.monotonic() - started, 3),
            },
        )


_itinerary_service_instance = None


def get_itinerary_service() -> ItineraryService:
    """Get singleton instance of ItineraryService"""
    global _itinerary_service_instance
    if _itinerary_service_instance is None:
        _itinerary_service_instance = ItineraryService()
    return _itinerary_service_instance
