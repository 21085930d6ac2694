"""
Built-in Hong Kong attraction catalog.

Used whenever a caller does not supply its own candidate catalog. The data is
read-only reference data for the lifetime of the process.
"""

from typing import List

from tripsynth.models.itinerary import Attraction


_RAW_CATALOG = [
    {
        "id": "the-peak",
        "name": "Victoria Peak",
        "description": "Iconic mountain offering panoramic views of Hong Kong skyline and harbor.",
        "location": {"lat": 22.2708, "lng": 114.1550, "address": "Peak Rd, Hong Kong"},
        "category": "nature",
        "priceRange": "medium",
        "rating": 4.5,
        "estimatedVisitTime": 180,
        "tags": ["views", "nature", "iconic", "photography"],
        "accessibility": {"wheelchairAccessible": True, "hasElevator": True, "hasRestrooms": True, "audioGuide": True},
    },
    {
        "id": "tsim-sha-tsui",
        "name": "Tsim Sha Tsui Promenade",
        "description": "Waterfront walkway with stunning harbor views and Symphony of Lights show.",
        "location": {"lat": 22.2940, "lng": 114.1722, "address": "Tsim Sha Tsui, Kowloon"},
        "category": "cultural",
        "priceRange": "free",
        "rating": 4.3,
        "estimatedVisitTime": 120,
        "tags": ["waterfront", "views", "free", "evening"],
        "accessibility": {"wheelchairAccessible": True, "hasElevator": False, "hasRestrooms": True, "audioGuide": False},
    },
    {
        "id": "temple-street",
        "name": "Temple Street Night Market",
        "description": "Famous night market with street food, fortune tellers, and shopping.",
        "location": {"lat": 22.3069, "lng": 114.1722, "address": "Temple St, Yau Ma Tei, Kowloon"},
        "category": "food",
        "priceRange": "low",
        "rating": 4.2,
        "estimatedVisitTime": 150,
        "tags": ["market", "street food", "night"],
        "accessibility": {"wheelchairAccessible": False, "hasElevator": False, "hasRestrooms": True, "audioGuide": False},
    },
    {
        "id": "man-mo-temple",
        "name": "Man Mo Temple",
        "description": "Historic Taoist temple dedicated to the gods of literature and war.",
        "location": {"lat": 22.2814, "lng": 114.1506, "address": "Hollywood Rd, Sheung Wan"},
        "category": "cultural",
        "priceRange": "free",
        "rating": 4.4,
        "estimatedVisitTime": 60,
        "tags": ["temple", "heritage", "history"],
        "accessibility": {"wheelchairAccessible": False, "hasElevator": False, "hasRestrooms": False, "audioGuide": False},
    },
    {
        "id": "central-district",
        "name": "Central District",
        "description": "Hong Kong's main business district with shopping and dining.",
        "location": {"lat": 22.2855, "lng": 114.1577, "address": "Central, Hong Kong Island"},
        "category": "shopping",
        "priceRange": "high",
        "rating": 4.5,
        "estimatedVisitTime": 240,
        "tags": ["shopping", "dining", "business"],
        "accessibility": {"wheelchairAccessible": True, "hasElevator": True, "hasRestrooms": True, "audioGuide": False},
    },
    {
        "id": "victoria-harbor",
        "name": "Victoria Harbor",
        "description": "Historic harbor with stunning city skyline views.",
        "location": {"lat": 22.2870, "lng": 114.1740, "address": "Victoria Harbour, Hong Kong"},
        "category": "cultural",
        "priceRange": "free",
        "rating": 4.6,
        "estimatedVisitTime": 90,
        "tags": ["harbor", "views", "free"],
        "accessibility": {"wheelchairAccessible": True, "hasElevator": False, "hasRestrooms": True, "audioGuide": False},
    },
    {
        "id": "star-ferry",
        "name": "Star Ferry",
        "description": "Historic ferry service across Victoria Harbor.",
        "location": {"lat": 22.2935, "lng": 114.1686, "address": "Star Ferry Pier, Tsim Sha Tsui"},
        "category": "cultural",
        "priceRange": "low",
        "rating": 4.5,
        "estimatedVisitTime": 30,
        "tags": ["ferry", "harbor", "history"],
        "accessibility": {"wheelchairAccessible": True, "hasElevator": False, "hasRestrooms": False, "audioGuide": False},
    },
    {
        "id": "hk-museum-of-history",
        "name": "Hong Kong Museum of History",
        "description": "Permanent exhibition tracing six thousand years of Hong Kong heritage.",
        "location": {"lat": 22.3017, "lng": 114.1774, "address": "100 Chatham Rd S, Tsim Sha Tsui"},
        "category": "museum",
        "priceRange": "low",
        "rating": 4.4,
        "estimatedVisitTime": 120,
        "tags": ["museum", "history", "indoor"],
        "accessibility": {"wheelchairAccessible": True, "hasElevator": True, "hasRestrooms": True, "audioGuide": True},
    },
    {
        "id": "city-hall-dim-sum",
        "name": "City Hall Maxim's Palace",
        "description": "Traditional dim sum served from trolleys overlooking the harbor.",
        "location": {"lat": 22.2818, "lng": 114.1610, "address": "City Hall, Central"},
        "category": "food",
        "priceRange": "medium",
        "rating": 4.1,
        "estimatedVisitTime": 90,
        "tags": ["dim sum", "restaurant", "lunch"],
        "accessibility": {"wheelchairAccessible": True, "hasElevator": True, "hasRestrooms": True, "audioGuide": False},
    },
]


DEFAULT_CATALOG: List[Attraction] = [Attraction(**raw) for raw in _RAW_CATALOG]


def get_default_catalog() -> List[Attraction]:
    """Get the built-in attraction catalog"""
    return list(DEFAULT_CATALOG)
