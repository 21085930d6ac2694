"""
Context Gatherer.

Fetches the per-request context snapshot: current weather and active alerts
from the Hong Kong Observatory, and a traffic-aware travel-time matrix from
the Google Distance Matrix API. Pure data-fetch; each provider degrades to a
neutral value on failure and the two fetches run concurrently.
"""

import math
import asyncio
import logging
from typing import Dict, Any, List, Optional, Tuple

import requests

from tripsynth.config import settings
from tripsynth.models.itinerary import (
    AlertSeverity,
    Attraction,
    ContextSnapshot,
    NEUTRAL_WEATHER,
    WeatherAlert,
    WeatherSnapshot,
)

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


HKO_ICON_CONDITIONS = {
    50: "sunny",
    51: "partly-cloudy",
    52: "partly-cloudy",
    53: "partly-cloudy with showers",
    54: "cloudy with showers",
    60: "cloudy",
    61: "overcast",
    62: "light rain",
    63: "rain",
    64: "heavy-rain",
    65: "thunderstorm",
    70: "fine",
    71: "fine",
    72: "fine",
    73: "fine",
    74: "fine",
    75: "fine",
    76: "cloudy",
    77: "overcast",
    83: "fog",
    84: "mist",
    85: "haze",
}

TravelMatrix = Dict[str, Dict[str, float]]


class HKOWeatherProvider:
    """Current weather and warning summary from the Hong Kong Observatory open data API"""

    def __init__(self, session: Optional[requests.Session] = None):
        self.session = session or requests.Session()
        self.timeout = settings.provider_timeout_seconds

    def _get_json(self, url: str) -> Optional[Dict[str, Any]]:
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"HKO request failed for {url}: {e}")
            return None

    @staticmethod
    def _first_value(block: Any) -> Optional[float]:
        try:
            return float(block["data"][0]["value"])
        except (KeyError, IndexError, TypeError, ValueError):
            return None

    @staticmethod
    def _alert_severity(code: str, subtype: Optional[str]) -> AlertSeverity:
        code = code.upper()
        subtype = subtype or ""
        if "TC" in code:
            if any(signal in subtype for signal in ("8", "9", "10")):
                return AlertSeverity.critical
            return AlertSeverity.warning
        if "RAIN" in code:
            if subtype.startswith("WRAINB") or "Black" in subtype:
                return AlertSeverity.critical
            if subtype.startswith("WRAINR") or "Red" in subtype:
                return AlertSeverity.warning
            return AlertSeverity.advisory
        if "WL" in code or "WFNT" in code or "WTS" in code:
            return AlertSeverity.warning
        return AlertSeverity.advisory

    @staticmethod
    def _alert_type(code: str) -> str:
        if "TC" in code:
            return "typhoon"
        if "WL" in code:
            return "landslip"
        if "WFNT" in code:
            return "flooding"
        return "weather"

    def parse_warnings(self, warning_data: Optional[Dict[str, Any]]) -> List[WeatherAlert]:
        alerts = []
        for warning_type, warning in (warning_data or {}).items():
            if not isinstance(warning, dict):
                continue
            subtype = warning.get("code") or warning.get("type")
            title = warning.get("name") or warning_type
            message = title + (f" ({warning['type']})" if warning.get("type") else "")
            alerts.append(WeatherAlert(
                id=warning.get("code") or warning_type,
                title=title,
                severity=self._alert_severity(warning_type, subtype),
                type=self._alert_type(warning_type),
                message=message,
            ))
        return alerts

    def fetch(self) -> Tuple[WeatherSnapshot, List[WeatherAlert]]:
        """Current weather and alerts; neutral defaults if the provider is down"""
        current = self._get_json(settings.hko_current_weather_url)
        warnings = self._get_json(settings.hko_warning_url)

        alerts = self.parse_warnings(warnings)

        if not current:
            logger.warning("Using neutral weather defaults")
            return NEUTRAL_WEATHER, alerts

        icons = current.get("icon") or []
        condition = HKO_ICON_CONDITIONS.get(icons[0], NEUTRAL_WEATHER.condition) if icons else NEUTRAL_WEATHER.condition
        if any(alert.type == "typhoon" for alert in alerts):
            condition = "typhoon"

        temperature = self._first_value(current.get("temperature"))
        humidity = self._first_value(current.get("humidity"))
        uv_index = self._first_value(current.get("uvindex"))

        weather = WeatherSnapshot(
            condition=condition,
            temperature=temperature if temperature is not None else NEUTRAL_WEATHER.temperature,
            uvIndex=uv_index if uv_index is not None else NEUTRAL_WEATHER.uvIndex,
            humidity=humidity if humidity is not None else NEUTRAL_WEATHER.humidity,
        )
        logger.info(f"HKO weather: {weather.condition}, {weather.temperature}°C, {len(alerts)} active alerts")
        return weather, alerts


class DistanceMatrixProvider:
    """Traffic-aware travel times between attractions via the Google Distance Matrix API"""

    def __init__(self, api_key: Optional[str] = None, session: Optional[requests.Session] = None):
        self.api_key = api_key if api_key is not None else settings.google_maps_api_key
        self.session = session or requests.Session()
        self.is_available = bool(self.api_key and self.api_key.strip())

        if not self.is_available:
            logger.info("Google Maps API key not configured - traffic data disabled")

    @staticmethod
    def matrix_locations(attractions: List[Attraction]) -> List[Attraction]:
        """The attractions a matrix request actually covers"""
        return [a for a in attractions if a.location is not None][:settings.traffic_max_locations]

    def fetch_matrix(self, attractions: List[Attraction]) -> TravelMatrix:
        """Directional travel minutes keyed by attraction id; empty when unavailable"""
        if not self.is_available:
            return {}

        located = self.matrix_locations(attractions)
        if len(located) < 2:
            return {}

        locations = "|".join(f"{a.location.lat},{a.location.lng}" for a in located)
        params = {
            "origins": locations,
            "destinations": locations,
            "departure_time": "now",
            "traffic_model": "best_guess",
            "units": "metric",
            "key": self.api_key,
        }

        try:
            logger.info(f"Fetching traffic data for {len(located)} attractions")
            response = self.session.get(settings.distance_matrix_url, params=params, timeout=settings.provider_timeout_seconds)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Traffic service error: {e}")
            return {}

        if data.get("status") != "OK":
            logger.error(f"Google Maps API error: {data.get('status')}")
            return {}

        return self.process_matrix(data, located)

    @staticmethod
    def process_matrix(data: Dict[str, Any], attractions: List[Attraction]) -> TravelMatrix:
        matrix: TravelMatrix = {}
        for origin_index, row in enumerate(data.get("rows", [])):
            for dest_index, element in enumerate(row.get("elements", [])):
                if origin_index == dest_index or element.get("status") != "OK":
                    continue
                if origin_index >= len(attractions) or dest_index >= len(attractions):
                    continue
                normal = (element.get("duration") or {}).get("value", 0)
                in_traffic = (element.get("duration_in_traffic") or {}).get("value", normal)
                minutes = math.ceil(in_traffic / 60)
                if minutes <= 0:
                    continue
                origin_id = attractions[origin_index].id
                matrix.setdefault(origin_id, {})[attractions[dest_index].id] = minutes
        return matrix


def travel_time_summary(matrix: TravelMatrix, catalog: List[Attraction], limit: int = 10) -> str:
    """Human-readable summary of the longest known routes for the generator prompt"""
    if not matrix:
        return "Traffic data: Not available"

    names = {a.id: a.name for a in catalog}
    routes = [
        (names.get(origin, origin), names.get(dest, dest), minutes)
        for origin, row in matrix.items()
        for dest, minutes in row.items()
    ]
    routes.sort(key=lambda r: r[2], reverse=True)

    lines = ["REAL-TIME TRAFFIC CONDITIONS:", f"- Total routes analyzed: {len(routes)}"]
    for origin, dest, minutes in routes[:limit]:
        lines.append(f"- {origin} → {dest}: {int(minutes)}min")
    return "\n".join(lines)


class ContextGatherer:
    """Assembles a ContextSnapshot from the weather and traffic providers"""

    def __init__(
        self,
        weather_provider: Optional[HKOWeatherProvider] = None,
        traffic_provider: Optional[DistanceMatrixProvider] = None,
    ):
        self.weather_provider = weather_provider or HKOWeatherProvider()
        self.traffic_provider = traffic_provider or DistanceMatrixProvider()

    async def gather(self, catalog: List[Attraction]) -> ContextSnapshot:
        """
        Fetch weather/alerts and travel times concurrently.

        Either fetch may fail on its own; the snapshot is still built from
        whatever came back.
        """
        weather_result, traffic_result = await asyncio.gather(
            asyncio.to_thread(self.weather_provider.fetch),
            asyncio.to_thread(self.traffic_provider.fetch_matrix, catalog),
            return_exceptions=True,
        )

        if isinstance(weather_result, Exception):
            logger.error(f"Weather provider failed: {weather_result}")
            weather, alerts = NEUTRAL_WEATHER, []
        else:
            weather, alerts = weather_result

        if isinstance(traffic_result, Exception):
            logger.error(f"Travel-time provider failed: {traffic_result}")
            travel_times = {}
        else:
            travel_times = traffic_result

        snapshot = ContextSnapshot(weather=weather, alerts=alerts, travelTimes=travel_times)
        return snapshot.model_copy(update={"alerts": snapshot.ranked_alerts()})

    async def extend_travel_times(
        self,
        context: ContextSnapshot,
        fetched: List[Attraction],
        candidates: List[Attraction],
    ) -> ContextSnapshot:
        """
        Fetch travel times for candidates the first matrix request left out.

        The first request covers only the leading catalog entries; filtering
        can keep attractions beyond them.
        """
        if not self.traffic_provider.is_available:
            return context

        covered = {a.id for a in self.traffic_provider.matrix_locations(fetched)}
        missing = [a for a in self.traffic_provider.matrix_locations(candidates) if a.id not in covered]
        if not missing:
            return context

        logger.info(f"Fetching travel times for {len(missing)} candidates outside the first matrix")
        try:
            extra = await asyncio.to_thread(self.traffic_provider.fetch_matrix, candidates)
        except Exception as e:
            logger.error(f"Travel-time provider failed: {e}")
            return context

        merged = {origin: dict(row) for origin, row in context.travelTimes.items()}
        for origin, row in extra.items():
            merged.setdefault(origin, {}).update(row)
        return context.model_copy(update={"travelTimes": merged})
