import logging
from typing import Dict, Any, List, Optional
from dataclasses import dataclass

import requests
from google import genai
from google.genai import types

from tripsynth.config import settings

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


# Human-readable schema documentation for the generator
SELECTION_SCHEMA_DOCS = """
RETURN ONLY VALID JSON with this exact structure:
{
  "selectedAttractions": [
    {
      "attractionId": "exact-id-from-list",
      "name": "exact name from list",
      "reason": "why selected",
      "visitOrder": 1,
      "suggestedTime": "09:00",
      "duration": 90
    }
  ],
  "totalDuration": 270,
  "estimatedCost": 800
}
"""


@dataclass
class LLMConfig:
    """Configuration for LLM calls"""
    model: str = settings.ollama_model
    temperature: float = settings.generator_temperature
    top_p: float = settings.generator_top_p
    max_output_tokens: int = settings.generator_max_tokens
    timeout_seconds: Optional[float] = settings.generator_timeout_seconds


@dataclass
class LLMResponse:
    """Standardized LLM response"""
    success: bool
    content: str
    raw_response: Any
    error: Optional[str] = None
    timed_out: bool = False


class OllamaLLMService:
    """Generator backed by a local Ollama endpoint"""

    provider = "ollama"

    def __init__(self, endpoint: Optional[str] = None, model: Optional[str] = None):
        self.endpoint = (endpoint or settings.ollama_endpoint).rstrip("/")
        self.model = model or settings.ollama_model
        self.is_available: Optional[bool] = None

    def check_availability(self) -> bool:
        """Check whether Ollama is running and the configured model is pulled"""
        try:
            response = requests.get(f"{self.endpoint}/api/tags", timeout=5)
            response.raise_for_status()
            models = response.json().get("models", [])
            base_name = self.model.split(":")[0]
            self.is_available = any(base_name in m.get("name", "") for m in models)
            if not self.is_available:
                logger.warning(f"Ollama is running but model {self.model} was not found. Run: ollama pull {self.model}")
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Ollama not reachable at {self.endpoint}: {e}")
            self.is_available = False
        return self.is_available

    def get_status(self) -> Dict[str, Any]:
        available = self.check_availability()
        return {
            "isAvailable": available,
            "endpoint": self.endpoint,
            "model": self.model,
            "provider": "Local Ollama" if available else "Fallback System",
        }

    def generate_content(
        self,
        user_message: str,
        system_instruction: str,
        config: Optional[LLMConfig] = None
    ) -> LLMResponse:
        """
        Generate content with a single non-streaming call to /api/generate

        Args:
            user_message: The instruction payload for this request
            system_instruction: Generator role and output contract
            config: LLM configuration (optional, uses defaults if not provided)

        Returns:
            LLMResponse object; failures are reported, never raised
        """
        if config is None:
            config = LLMConfig(model=self.model)

        payload = {
            "model": config.model or self.model,
            "prompt": f"{system_instruction}\n\n{user_message}" if system_instruction else user_message,
            "stream": False,
            "options": {
                "temperature": config.temperature,
                "top_p": config.top_p,
                "num_predict": config.max_output_tokens,
            },
        }

        try:
            logger.info(f"Making generator call with model: {payload['model']}")
            response = requests.post(
                f"{self.endpoint}/api/generate",
                json=payload,
                timeout=config.timeout_seconds,
            )
            response.raise_for_status()
            content = response.json().get("response") or ""
            logger.info(f"Generator call successful, response length: {len(content)}")
            return LLMResponse(success=True, content=content, raw_response=response)

        except requests.Timeout as e:
            logger.error(f"Generator call timed out: {e}")
            return LLMResponse(success=False, content="", raw_response=None, error=str(e), timed_out=True)
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Generator call failed: {e}")
            return LLMResponse(success=False, content="", raw_response=None, error=str(e))


class VertexAILLMService:
    """Generator backed by Vertex AI"""

    provider = "vertex"

    def __init__(self):
        self.project_id = settings.project_id
        self.location = settings.region

        if not self.project_id:
            raise RuntimeError("PROJECT_ID environment variable is required for the vertex backend")

        try:
            self.client = genai.Client(
                vertexai=True,
                project=self.project_id,
                location=self.location
            )
            logger.info(f"Initialized Vertex AI client for project: {self.project_id}")
        except Exception as e:
            logger.error(f"Failed to initialize Vertex AI client: {e}")
            raise RuntimeError(f"Vertex AI client initialization failed: {e}")

    def _create_contents(self, system_instruction: str, user_message: str) -> List[types.Content]:
        """Create content structure for the LLM"""
        combined_message = f"{system_instruction}\n\n{user_message}"

        return [
            types.Content(
                role="user",
                parts=[
                    types.Part(text=combined_message)
                ]
            )
        ]

    def get_status(self) -> Dict[str, Any]:
        return {
            "isAvailable": True,
            "endpoint": f"vertex:{self.project_id}/{self.location}",
            "model": settings.vertex_model,
            "provider": "Vertex AI",
        }

    def generate_content(
        self,
        user_message: str,
        system_instruction: str,
        config: Optional[LLMConfig] = None
    ) -> LLMResponse:
        if config is None:
            config = LLMConfig(model=settings.vertex_model)

        try:
            logger.info(f"Making LLM call with model: {config.model}")

            generate_content_config = types.GenerateContentConfig(
                temperature=config.temperature,
                top_p=config.top_p,
                max_output_tokens=config.max_output_tokens,
            )

            response = self.client.models.generate_content(
                model=config.model,
                contents=self._create_contents(system_instruction, user_message),
                config=generate_content_config
            )

            content = response.text or ""
            logger.info(f"LLM call successful, response length: {len(content)}")
            return LLMResponse(success=True, content=content, raw_response=response)

        except Exception as e:
            logger.error(f"LLM call failed: {e}")
            return LLMResponse(success=False, content="", raw_response=None, error=str(e))


# Singleton instance
_llm_service_instance = None

def get_llm_service():
    """Get singleton instance of the configured generator backend"""
    global _llm_service_instance
    if _llm_service_instance is None:
        if settings.generator_backend == "vertex":
            _llm_service_instance = VertexAILLMService()
        else:
            _llm_service_instance = OllamaLLMService()
    return _llm_service_instance


def default_llm_config(service) -> LLMConfig:
    """Per-backend defaults for the itinerary generation call"""
    if getattr(service, "provider", "") == "vertex":
        return LLMConfig(model=settings.vertex_model)
    return LLMConfig(model=getattr(service, "model", settings.ollama_model))


# Predefined System Instructions
class SystemInstructions:
    """Collection of predefined system instructions"""

    @staticmethod
    def trip_planner() -> str:
        return (
            "You are a Hong Kong tourism expert planning a single day of sightseeing.\n"
            "Select attractions ONLY from the list you are given and schedule them in a sensible order.\n\n"
            "=== RULES ===\n"
            "- Select 3-4 attractions matching the user's request\n"
            "- Schedule starting 9:00 AM with realistic gaps for travel\n"
            "- Use the exact attractionId and name from the list\n"
            "- Respect the current weather, alerts and traffic conditions\n"
            "- Return ONLY the JSON, no other text\n"
            + SELECTION_SCHEMA_DOCS
        )
