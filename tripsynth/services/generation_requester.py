"""
Generation Requester.

Builds the instruction payload for the generator and issues exactly one call
per logical request. Rapid repeated submissions of the same request are
detected by fingerprint and short-circuited to the fallback engine.
"""

import time
import uuid
import asyncio
import hashlib
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from tripsynth.config import settings
from tripsynth.models.itinerary import Attraction, ContextSnapshot
from tripsynth.services.context_service import travel_time_summary
from tripsynth.services.llm_service import SystemInstructions, default_llm_config

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


class InFlightRegistry:
    """
    Process-wide set of fingerprints with a generator call in flight.

    Check-and-set is atomic under a lock. Each acquisition returns a token so
    that a late release from an earlier holder cannot clear a newer marker.
    Entries expire after ``ttl_seconds`` in case a release never happens.
    """

    def __init__(self, ttl_seconds: Optional[float] = None, clock=time.monotonic):
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.inflight_ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[str, Tuple[str, float]] = {}

    def _evict_expired(self, now: float) -> None:
        expired = [fp for fp, (_, expires_at) in self._entries.items() if expires_at <= now]
        for fp in expired:
            logger.warning(f"Evicting stale in-flight marker {fp[:12]}")
            del self._entries[fp]

    def try_acquire(self, fingerprint: str) -> Optional[str]:
        with self._lock:
            now = self._clock()
            self._evict_expired(now)
            if fingerprint in self._entries:
                return None
            token = uuid.uuid4().hex
            self._entries[fingerprint] = (token, now + self.ttl_seconds)
            return token

    def release(self, fingerprint: str, token: str) -> bool:
        with self._lock:
            entry = self._entries.get(fingerprint)
            if entry is None or entry[0] != token:
                return False
            del self._entries[fingerprint]
            return True

    def is_in_flight(self, fingerprint: str) -> bool:
        with self._lock:
            self._evict_expired(self._clock())
            return fingerprint in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def compute_fingerprint(text: str, arrival: Optional[float] = None) -> str:
    """Key for a logically duplicate request: truncated text plus arrival time bucket"""
    arrival = time.time() if arrival is None else arrival
    bucket = int(arrival // settings.dedup_bucket_seconds)
    prefix = " ".join(text.lower().split())[:settings.dedup_text_prefix]
    return hashlib.sha1(f"{prefix}|{bucket}".encode("utf-8")).hexdigest()


class GenerationStatus(str, Enum):
    ok = "ok"
    duplicate = "duplicate"
    unavailable = "unavailable"
    timeout = "timeout"
    empty = "empty"


@dataclass
class GenerationOutcome:
    status: GenerationStatus
    content: str = ""
    error: Optional[str] = None
    fingerprint: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == GenerationStatus.ok


def build_generation_prompt(text: str, candidates: List[Attraction], context: Optional[ContextSnapshot]) -> str:
    """Create the instruction payload: request, candidates, live conditions and travel times"""
    attraction_lines = [
        f"{a.id}: {a.name} - {a.description} ({a.category.value}, {a.priceRange.value}, "
        f"{a.estimatedVisitTime or settings.default_visit_minutes}min)"
        for a in candidates
    ]

    prompt_parts = [f'Create Hong Kong trip plan for: "{text}"']

    if context is not None:
        weather = context.weather
        alerts = context.ranked_alerts()
        prompt_parts.append(
            "\nIMPORTANT - Current Real-Time Conditions:\n"
            f"- Weather: {weather.condition} ({weather.temperature if weather.temperature is not None else '?'}°C)\n"
            f"- Air Quality Index: {weather.airQualityIndex if weather.airQualityIndex is not None else 'Unknown'}\n"
            f"- UV Index: {weather.uvIndex if weather.uvIndex is not None else 'Unknown'}\n"
            f"- Active Alerts: {', '.join(a.title for a in alerts) if alerts else 'None'}\n\n"
            "Weather-Based Recommendations:\n"
            "- If weather is rainy/stormy: Prioritize indoor attractions (museums, shopping malls)\n"
            f"- If very hot (>{settings.hot_temperature_c:g}°C) or UV high (>{settings.high_uv_index:g}): "
            "Suggest indoor activities during peak hours\n"
            f"- If air quality poor (<{settings.poor_air_quality_index:g}): Recommend indoor attractions\n"
            "- If typhoon/severe weather alerts: Strongly favor indoor, accessible attractions"
        )
        prompt_parts.append(travel_time_summary(context.travelTimes, candidates))

    prompt_parts.append("\nAvailable attractions:\n" + "\n".join(attraction_lines))
    return "\n".join(prompt_parts)


class GenerationRequester:
    """Issues one generator call per logical request, guarded by the in-flight registry"""

    def __init__(self, llm_service, registry: InFlightRegistry, timeout_seconds: Optional[float] = None):
        self.llm_service = llm_service
        self.registry = registry
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else settings.generator_timeout_seconds

    async def request(
        self,
        text: str,
        candidates: List[Attraction],
        context: Optional[ContextSnapshot] = None,
        arrival: Optional[float] = None,
    ) -> GenerationOutcome:
        fingerprint = compute_fingerprint(text, arrival)
        token = self.registry.try_acquire(fingerprint)
        if token is None:
            logger.info(f"Duplicate request {fingerprint[:12]} already in flight, skipping generator call")
            return GenerationOutcome(status=GenerationStatus.duplicate, fingerprint=fingerprint)

        prompt = build_generation_prompt(text, candidates, context)
        config = default_llm_config(self.llm_service)

        call = asyncio.ensure_future(asyncio.to_thread(
            self.llm_service.generate_content,
            user_message=prompt,
            system_instruction=SystemInstructions.trip_planner(),
            config=config,
        ))
        # released once the call resolves, even if the caller has gone away
        call.add_done_callback(lambda _: self.registry.release(fingerprint, token))

        try:
            response = await asyncio.wait_for(asyncio.shield(call), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.error(f"Generator call exceeded {self.timeout_seconds}s, falling back")
            self.registry.release(fingerprint, token)
            return GenerationOutcome(status=GenerationStatus.timeout, fingerprint=fingerprint)
        except Exception as e:
            logger.error(f"Generator call raised: {e}")
            return GenerationOutcome(status=GenerationStatus.unavailable, error=str(e), fingerprint=fingerprint)

        if not response.success:
            status = GenerationStatus.timeout if getattr(response, "timed_out", False) else GenerationStatus.unavailable
            return GenerationOutcome(status=status, error=response.error, fingerprint=fingerprint)

        if not (response.content or "").strip():
            logger.warning("Generator returned an empty response")
            return GenerationOutcome(status=GenerationStatus.empty, fingerprint=fingerprint)

        return GenerationOutcome(status=GenerationStatus.ok, content=response.content, fingerprint=fingerprint)
