from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Dict, Any, List


# ---------------------------
# Enums & lookup tables
# ---------------------------

class Category(str, Enum):
    cultural = "cultural"
    nature = "nature"
    entertainment = "entertainment"
    shopping = "shopping"
    food = "food"
    historical = "historical"
    museum = "museum"
    nightlife = "nightlife"


class PriceTier(str, Enum):
    free = "free"
    low = "low"
    medium = "medium"
    high = "high"
    luxury = "luxury"


PRICE_TIER_COSTS: Dict[str, int] = {
    "free": 0,
    "low": 25,
    "medium": 125,
    "high": 350,
    "luxury": 750,
}

INDOOR_CATEGORIES = {Category.museum, Category.cultural, Category.shopping, Category.food}


class AlertSeverity(str, Enum):
    info = "info"
    advisory = "advisory"
    warning = "warning"
    critical = "critical"


SEVERITY_RANK = {
    AlertSeverity.info: 0,
    AlertSeverity.advisory: 1,
    AlertSeverity.warning: 2,
    AlertSeverity.critical: 3,
}


class Provenance(str, Enum):
    generator = "generator"
    generator_repaired = "generator-repaired"
    text_extraction_fallback = "text-extraction-fallback"
    rule_based_fallback = "rule-based-fallback"


class TransportMode(str, Enum):
    walking = "walking"
    driving = "driving"
    public_transport = "public_transport"
    mixed = "mixed"


def price_estimate(tier: Optional[str]) -> int:
    """Fixed cost estimate for a price tier; unknown tiers cost nothing."""
    if isinstance(tier, Enum):
        tier = tier.value
    return PRICE_TIER_COSTS.get(tier or "", 0)


# ---------------------------
# Reference data
# ---------------------------

class GeoPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float
    address: Optional[str] = None


class Accessibility(BaseModel):
    model_config = ConfigDict(frozen=True)

    wheelchairAccessible: bool = False
    hasElevator: bool = False
    hasRestrooms: bool = False
    audioGuide: bool = False


class Attraction(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    category: Category
    location: Optional[GeoPoint] = None
    priceRange: PriceTier = PriceTier.free
    estimatedVisitTime: Optional[int] = None
    accessibility: Accessibility = Accessibility()
    rating: Optional[float] = None
    tags: List[str] = []

    @property
    def cost(self) -> int:
        return price_estimate(self.priceRange)

    @property
    def is_indoor(self) -> bool:
        return self.category in INDOOR_CATEGORIES


# ---------------------------
# Context snapshot
# ---------------------------

class WeatherAlert(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    severity: AlertSeverity = AlertSeverity.info
    type: str = "weather"
    message: str = ""


class WeatherSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    condition: str = "partly-cloudy"
    temperature: Optional[float] = None
    uvIndex: Optional[float] = None
    airQualityIndex: Optional[float] = None
    humidity: Optional[float] = None


class ContextSnapshot(BaseModel):
    """Weather, alerts and travel times fetched once for a request."""
    model_config = ConfigDict(frozen=True)

    weather: WeatherSnapshot = WeatherSnapshot()
    alerts: List[WeatherAlert] = []
    travelTimes: Dict[str, Dict[str, float]] = {}

    def ranked_alerts(self) -> List[WeatherAlert]:
        return sorted(self.alerts, key=lambda a: SEVERITY_RANK[a.severity], reverse=True)


NEUTRAL_WEATHER = WeatherSnapshot(condition="partly-cloudy", temperature=26, uvIndex=6.2, humidity=75)


# ---------------------------
# Request intent & schedule
# ---------------------------

class UserIntent(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    budget: Optional[float] = None
    preferredCategories: List[Category] = []
    groupSize: Optional[int] = None
    hasChildren: bool = False
    accessibilityRequired: bool = False
    transportMode: Optional[TransportMode] = None
    keywords: List[str] = []


class ScheduledVisit(BaseModel):
    attraction: Attraction
    ordinal: int
    startTime: str
    durationMins: int
    endTime: str
    travelMins: int = 0
    estimatedCost: int = 0
    priority: int
    rationale: str = ""


class Itinerary(BaseModel):
    visits: List[ScheduledVisit] = []
    totalDurationMins: int = 0
    totalTravelMins: int = 0
    totalCost: int = 0
    provenance: Provenance


# ---------------------------
# Request/Response Models
# ---------------------------

class WeatherContext(BaseModel):
    condition: Optional[str] = None
    temperature: Optional[float] = None
    bias: str = "none"
    recommendation: str = ""


class NormalizedItinerary(BaseModel):
    itineraryId: str
    title: str
    description: str
    startDate: str
    endDate: str
    totalDurationMins: int
    totalTravelMins: int
    totalCost: int
    visits: List[ScheduledVisit]
    provenance: Provenance
    transportMode: TransportMode = TransportMode.mixed
    weatherContext: Optional[WeatherContext] = None
    meta: Dict[str, Any] = {}


class PlanTripRequest(BaseModel):
    """Request model for single-day itinerary synthesis"""
    text: str = Field(..., min_length=1, max_length=2000, description="Free-text travel request")
    attractions: Optional[List[Attraction]] = Field(None, description="Pre-fetched candidate catalog")
    context: Optional[ContextSnapshot] = Field(None, description="Pre-fetched context snapshot")


class PlanTripResponse(BaseModel):
    status: str
    itinerary: NormalizedItinerary
    processingTime: float
