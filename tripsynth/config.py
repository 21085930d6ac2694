import os
from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import List
from dotenv import load_dotenv
load_dotenv()

class Settings(BaseSettings):
    # Application Settings
    min_request_length: int = 10
    title_max_length: int = 60
    description_max_length: int = 100
    allowed_origins: List[str] = ["http://localhost:3000", "http://localhost:3001"]
    log_level: str = "INFO"
    port: int = 8000

    # Generator (local language model)
    generator_backend: str = "ollama"  # "ollama" or "vertex"
    ollama_endpoint: str = "http://localhost:11434"
    ollama_model: str = "llama3.1:8b"
    vertex_model: str = "gemini-2.0-flash-lite"
    generator_timeout_seconds: float = 60.0
    generator_temperature: float = 0.0
    generator_top_p: float = 0.5
    generator_max_tokens: int = 800

    # In-flight deduplication
    dedup_text_prefix: int = 50
    dedup_bucket_seconds: int = 10
    inflight_ttl_seconds: float = 120.0

    # Candidate selection
    max_candidates: int = 8
    fallback_take: int = 4
    fallback_min_visits: int = 3
    extraction_max_items: int = 4

    # Scheduling defaults
    default_start_time: str = "09:00"
    default_travel_minutes: int = 90
    default_visit_minutes: int = 120

    # Weather thresholds
    hot_temperature_c: float = 30.0
    high_uv_index: float = 8.0
    poor_air_quality_index: float = 50.0

    # External providers
    provider_timeout_seconds: float = 10.0
    hko_current_weather_url: str = "https://data.weather.gov.hk/weatherAPI/opendata/weather.php?dataType=rhrread&lang=en"
    hko_warning_url: str = "https://data.weather.gov.hk/weatherAPI/opendata/weather.php?dataType=warnsum&lang=en"
    distance_matrix_url: str = "https://maps.googleapis.com/maps/api/distancematrix/json"
    google_maps_api_key: str = ""
    traffic_max_locations: int = 10

    # Vertex AI (optional generator backend)
    project_id: str = ""
    region: str = "us-central1"

    # Pydantic V2 configuration (Python 3.13 compatible)
    model_config = ConfigDict(
        env_file=".env",
        extra="ignore"  # Allow extra environment variables without validation errors
    )

class CloudRunConfig:
    """Configuration for Cloud Run deployment"""

    # Environment Detection
    IS_CLOUD_RUN: bool = os.getenv("K_SERVICE") is not None

    PORT: int = int(os.getenv("PORT", "8080"))

settings = Settings()
cloud_config = CloudRunConfig()
