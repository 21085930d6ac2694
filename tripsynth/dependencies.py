import logging
from typing import Optional, Dict, Any

from fastapi import HTTPException
from dotenv import load_dotenv

from tripsynth.services.context_service import ContextGatherer, DistanceMatrixProvider, HKOWeatherProvider
from tripsynth.services.generation_requester import InFlightRegistry
from tripsynth.services.llm_service import get_llm_service
load_dotenv()
logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


# Lazily initialize process-wide collaborators to reuse across requests
_inflight_registry: Optional[InFlightRegistry] = None
_context_gatherer: Optional[ContextGatherer] = None


def get_inflight_registry() -> InFlightRegistry:
    """
    The single in-flight fingerprint store shared by every request.

    Deduplication only works if all requests see the same registry.
    """
    global _inflight_registry
    if _inflight_registry is None:
        _inflight_registry = InFlightRegistry()
        logger.info(f"Initialized in-flight registry (ttl={_inflight_registry.ttl_seconds}s)")
    return _inflight_registry


def get_context_gatherer() -> ContextGatherer:
    global _context_gatherer
    if _context_gatherer is None:
        _context_gatherer = ContextGatherer(HKOWeatherProvider(), DistanceMatrixProvider())
    return _context_gatherer


def reset_dependencies():
    """Drop cached collaborators (used by tests)"""
    global _inflight_registry, _context_gatherer
    _inflight_registry = None
    _context_gatherer = None


# ---------------------------
# FastAPI dependencies
# ---------------------------
def get_generator_status() -> Dict[str, Any]:
    """
    Report the configured generator backend.
    Raises HTTPException(503) if the backend cannot even be constructed.
    """
    try:
        return get_llm_service().get_status()
    except RuntimeError as e:
        logger.error(f"Generator backend unavailable: {e}")
        raise HTTPException(status_code=503, detail={"status": "unhealthy", "error": str(e)})
