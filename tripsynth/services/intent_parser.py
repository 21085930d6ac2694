"""
Keyword-based request analysis.

Derives a UserIntent from free-text requests. The keyword tables are shared
with the candidate filter and the fallback engine so that every component
reads the same signals out of the request text. Substring matching is a
precision/recall trade-off, not a guaranteed reading of intent.
"""

import re
import logging
from typing import Iterable, List, Optional, Tuple

from tripsynth.models.itinerary import Category, TransportMode, UserIntent

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


CULTURAL_KEYWORDS = ("cultural", "culture", "heritage", "temple", "history", "historic", "harbor", "museum")
FOOD_KEYWORDS = ("food", "lunch", "dinner", "breakfast", "brunch", "meal", "eat", "dim sum", "dimsum", "market")
NATURE_KEYWORDS = ("nature", "peak", "mountain", "park", "hike", "hiking", "beach")

# Keywords that imply a meal, as opposed to markets in general
MEAL_KEYWORDS = ("food", "lunch", "dinner", "breakfast", "brunch", "meal", "eat", "dim sum", "dimsum")

_CATEGORY_KEYWORDS = [
    (Category.cultural, ("culture", "cultural", "temple", "heritage")),
    (Category.historical, ("history", "historic")),
    (Category.nature, ("nature", "mountain", "park", "hike", "beach")),
    (Category.food, ("food", "eat", "dim sum", "dimsum", "lunch", "dinner")),
    (Category.shopping, ("shop", "market", "mall")),
    (Category.museum, ("museum", "gallery")),
    (Category.nightlife, ("night", "bar", "club")),
    (Category.entertainment, ("show", "theme park", "entertainment")),
]

_BUDGET_PATTERNS = [
    re.compile(r"budget\s*(?:of|is|:)?\s*(?:hk\s*)?\$?\s*(\d+(?:\.\d+)?)"),
    re.compile(r"(?:hk)?\$\s*(\d+(?:\.\d+)?)"),
    re.compile(r"(\d+(?:\.\d+)?)\s*(?:hkd|hk\$|dollars)"),
]


def mentions_any(text: str, keywords: Iterable[str]) -> bool:
    text = text.lower()
    return any(re.search(r"\b" + re.escape(keyword), text) for keyword in keywords)


def wants_cultural_and_food(text: str) -> bool:
    """True when a cultural interest co-occurs with a meal in the same request."""
    return mentions_any(text, CULTURAL_KEYWORDS) and mentions_any(text, MEAL_KEYWORDS)


def extract_budget(text: str) -> Optional[float]:
    text = text.lower()
    for pattern in _BUDGET_PATTERNS:
        match = pattern.search(text)
        if match:
            return float(match.group(1))
    if mentions_any(text, ("cheap", "affordable", "budget")):
        return 500.0
    if mentions_any(text, ("luxury", "expensive", "premium")):
        return 2000.0
    return None


def extract_categories(text: str) -> List[Category]:
    text = text.lower()
    return [category for category, words in _CATEGORY_KEYWORDS if mentions_any(text, words)]


def extract_group_size(text: str) -> Tuple[Optional[int], bool]:
    text = text.lower()
    match = re.search(r"(?:group|party|family) of (\d+)|(\d+) (?:people|persons|adults|friends)", text)
    if match:
        return int(match.group(1) or match.group(2)), mentions_any(text, ("kid", "child"))
    if mentions_any(text, ("family", "children", "kids", "kid")):
        return 4, True
    if mentions_any(text, ("solo", "alone", "by myself")):
        return 1, False
    if mentions_any(text, ("couple", "two of us", "partner")):
        return 2, False
    return None, False


def extract_transport_mode(text: str) -> Optional[TransportMode]:
    text = text.lower()
    if mentions_any(text, ("mtr", "bus", "public transport", "metro", "tram")):
        return TransportMode.public_transport
    if mentions_any(text, ("drive", "driving", "car ", "taxi")):
        return TransportMode.driving
    if mentions_any(text, ("walk", "walking", "on foot")):
        return TransportMode.walking
    return None


def parse_intent(text: str) -> UserIntent:
    """Derive a UserIntent from a raw request string"""
    lowered = text.lower()
    group_size, has_children = extract_group_size(lowered)
    keywords = [
        word for word in CULTURAL_KEYWORDS + FOOD_KEYWORDS + NATURE_KEYWORDS
        if mentions_any(lowered, (word,))
    ]

    intent = UserIntent(
        text=text,
        budget=extract_budget(lowered),
        preferredCategories=extract_categories(lowered),
        groupSize=group_size,
        hasChildren=has_children,
        accessibilityRequired=mentions_any(lowered, ("wheelchair", "accessible", "mobility", "stroller")),
        transportMode=extract_transport_mode(lowered),
        keywords=list(dict.fromkeys(keywords)),
    )
    logger.info(
        f"Parsed intent: budget={intent.budget}, categories={[c.value for c in intent.preferredCategories]}, "
        f"group={intent.groupSize}, accessible={intent.accessibilityRequired}"
    )
    return intent
