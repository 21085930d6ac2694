"""
Output Repair Pipeline.

Turns the generator's raw text into a validated selection list, or gives up
explicitly. Four tiers run in order, each returning a RepairOutcome:

  1. direct deserialization of the largest brace-delimited substring
  2. reconstruction of a truncated ``selectedAttractions`` list
  3. declarative text normalization, re-parsing after every pass
  4. heuristic field extraction, then plain name containment

A tier either succeeds (with a provenance tag), hands its candidate strings to
the next tier (``retry``), or reports that nothing could be salvaged
(``exhausted``). Every tier is deterministic and safe to re-run on its own
output.
"""

import re
import json
import math
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Pattern

from tripsynth.config import settings
from tripsynth.models.itinerary import Attraction, PRICE_TIER_COSTS, Provenance

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


LIST_FIELD = "selectedAttractions"
ANCHOR_FIELD = "attractionId"
REQUIRED_ITEM_FIELDS = ("attractionId", "name", "visitOrder", "suggestedTime", "duration")
AGGREGATE_FIELDS = ("totalDuration", "estimatedCost")
NUMERIC_FIELDS = ("duration", "visitOrder", "totalDuration", "estimatedCost", "priority", "recommendationScore")

_NUMERIC_KEYS = "|".join(NUMERIC_FIELDS)
_COST_WORDS = "|".join(PRICE_TIER_COSTS)


@dataclass
class Selection:
    """One attraction chosen by the generator (or by a fallback), before scheduling"""
    attraction_id: str
    name: str = ""
    visit_order: Optional[int] = None
    suggested_time: Optional[str] = None
    duration: Optional[int] = None
    reason: str = ""


class RepairStatus(str, Enum):
    success = "success"
    retry = "retry"
    exhausted = "exhausted"


@dataclass
class RepairOutcome:
    status: RepairStatus
    tier: int
    provenance: Optional[Provenance] = None
    selections: List[Selection] = field(default_factory=list)
    candidates: List[str] = field(default_factory=list)
    detail: str = ""

    @property
    def succeeded(self) -> bool:
        return self.status == RepairStatus.success


# -------------------------
# Structural helpers
# -------------------------

def largest_brace_substring(text: str) -> Optional[str]:
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    return text[start:end + 1]


def is_incomplete(candidate: Optional[str]) -> bool:
    """Unbalanced delimiters or missing aggregate fields"""
    if candidate is None:
        return True
    if candidate.count("{") != candidate.count("}") or candidate.count("[") != candidate.count("]"):
        return True
    return any(f'"{name}"' not in candidate for name in AGGREGATE_FIELDS)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _valid_item(item: Any) -> bool:
    if not isinstance(item, dict):
        return False
    if any(name not in item for name in REQUIRED_ITEM_FIELDS):
        return False
    return (
        isinstance(item["attractionId"], (str, int)) and not isinstance(item["attractionId"], bool)
        and isinstance(item["name"], str)
        and _is_number(item["visitOrder"])
        and isinstance(item["suggestedTime"], str)
        and _is_number(item["duration"])
    )


def validate_payload(data: Any) -> Optional[List[Dict[str, Any]]]:
    """Return the item list if the payload carries every required field"""
    if not isinstance(data, dict):
        return None
    items = data.get(LIST_FIELD)
    if not isinstance(items, list) or not items:
        return None
    if any(name not in data for name in AGGREGATE_FIELDS):
        return None
    if not all(_valid_item(item) for item in items):
        return None
    return items


def resolve_selections(items: List[Dict[str, Any]], catalog: List[Attraction]) -> List[Selection]:
    """
    Map validated items onto the catalog.

    Items are matched by id, then by exact (case-insensitive) name; anything
    else is dropped. Duplicates keep their first occurrence.
    """
    by_id = {a.id: a for a in catalog}
    by_name = {a.name.lower(): a for a in catalog}

    ordered = sorted(enumerate(items), key=lambda pair: (pair[1].get("visitOrder", 0), pair[0]))
    selections: List[Selection] = []
    seen = set()
    for _, item in ordered:
        attraction = by_id.get(str(item["attractionId"])) or by_name.get(str(item.get("name", "")).lower())
        if attraction is None:
            logger.warning(f"Dropping unknown attraction from generator output: {item.get('attractionId')}")
            continue
        if attraction.id in seen:
            continue
        seen.add(attraction.id)
        selections.append(Selection(
            attraction_id=attraction.id,
            name=attraction.name,
            visit_order=int(item["visitOrder"]),
            suggested_time=item["suggestedTime"],
            duration=int(item["duration"]),
            reason=str(item.get("reason") or ""),
        ))
    return selections


def parse_candidate(candidate: Optional[str], catalog: List[Attraction]) -> Optional[List[Selection]]:
    if not candidate:
        return None
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    items = validate_payload(data)
    if items is None:
        return None
    selections = resolve_selections(items, catalog)
    return selections or None


# -------------------------
# Tier 1: direct deserialization
# -------------------------

def parse_direct(raw_text: str, previous: RepairOutcome, catalog: List[Attraction]) -> RepairOutcome:
    candidate = largest_brace_substring(raw_text)
    selections = parse_candidate(candidate, catalog)
    if selections:
        logger.info(f"Tier 1 parsed {len(selections)} selections")
        return RepairOutcome(RepairStatus.success, 1, Provenance.generator, selections, [candidate])
    logger.info("Tier 1 failed, escalating to reconstruction")
    return RepairOutcome(RepairStatus.retry, 1, candidates=[candidate] if candidate else [])


# -------------------------
# Tier 2: reconstruction
# -------------------------

_LIST_START = re.compile(r'"%s"\s*:\s*\[' % LIST_FIELD)
_DURATION_VALUE = re.compile(r'"duration"\s*:\s*"?(\d+)')
_ID_VALUE = re.compile(r'"attractionId"\s*:\s*"([^"]+)"')


def extract_selection_list(text: str) -> Optional[str]:
    """
    The ``"selectedAttractions": [...]`` fragment, closed explicitly.

    Delimiters are counted without regard to quoting, since the quoting is
    exactly what cannot be trusted. An unclosed list is cut after its last
    fully-closed item.
    """
    match = _LIST_START.search(text)
    if match is None:
        return None

    depth = 0
    last_item_end = None
    for index in range(match.end() - 1, len(text)):
        char = text[index]
        if char in "[{":
            depth += 1
        elif char in "]}":
            depth -= 1
            if depth == 0:
                return text[match.start():index + 1]
            if depth == 1 and char == "}":
                last_item_end = index

    if last_item_end is None:
        return None
    return text[match.start():last_item_end + 1] + "]"


def recompute_aggregates(list_text: str, catalog: List[Attraction]) -> Dict[str, int]:
    by_id = {a.id: a for a in catalog}
    total_duration = sum(int(value) for value in _DURATION_VALUE.findall(list_text))
    estimated_cost = sum(by_id[i].cost for i in _ID_VALUE.findall(list_text) if i in by_id)
    return {"totalDuration": total_duration, "estimatedCost": estimated_cost}


def reconstruct(text: str, catalog: List[Attraction]) -> Optional[str]:
    list_text = extract_selection_list(text)
    if list_text is None:
        return None
    totals = recompute_aggregates(list_text, catalog)
    return "{%s,\"totalDuration\":%d,\"estimatedCost\":%d}" % (
        list_text, totals["totalDuration"], totals["estimatedCost"]
    )


def reconstruct_list(raw_text: str, previous: RepairOutcome, catalog: List[Attraction]) -> RepairOutcome:
    first = previous.candidates[0] if previous.candidates else None
    if first is not None and not is_incomplete(first):
        return RepairOutcome(RepairStatus.retry, 2, candidates=previous.candidates)

    rebuilt = reconstruct(raw_text, catalog)
    if rebuilt is None:
        logger.info("Tier 2 found no selection list to rebuild")
        return RepairOutcome(RepairStatus.retry, 2, candidates=previous.candidates)

    selections = parse_candidate(rebuilt, catalog)
    if selections:
        logger.info(f"Tier 2 rebuilt {len(selections)} selections from a truncated response")
        return RepairOutcome(RepairStatus.success, 2, Provenance.generator_repaired, selections, [rebuilt])

    logger.info("Tier 2 reconstruction did not parse, escalating to text normalization")
    return RepairOutcome(RepairStatus.retry, 2, candidates=[rebuilt] + previous.candidates)


# -------------------------
# Tier 3: text normalization
# -------------------------

@dataclass(frozen=True)
class NormalizationRule:
    name: str
    detector: Pattern
    transform: Callable[[str], str]

    def apply(self, text: str) -> str:
        if not self.detector.search(text):
            return text
        for _ in range(10):
            updated = self.transform(text)
            if updated == text:
                break
            text = updated
        return text


def _sub(pattern: str, replacement, flags: int = 0) -> Callable[[str], str]:
    compiled = re.compile(pattern, flags)
    return lambda text: compiled.sub(replacement, text)


def _cost_word(match: "re.Match") -> str:
    return f"{match.group(1)}{PRICE_TIER_COSTS[match.group(2).lower()]}"


NORMALIZATION_RULES: List[NormalizationRule] = [
    NormalizationRule(
        "collapse_whitespace",
        re.compile(r"^\s|\s$|\s{2,}|[\r\n\t]"),
        lambda text: re.sub(r"\s+", " ", text).strip(),
    ),
    NormalizationRule(
        "join_split_time",
        re.compile(r'"\d{1,2}:\s*"\d{2}"'),
        _sub(r'"(\d{1,2}):\s*"(\d{2})"+', r'"\1:\2"'),
    ),
    NormalizationRule(
        "quoted_null_fragment",
        re.compile(r'"null,"'),
        _sub(r':\s*"null,"\s*(?=")', ": null, "),
    ),
    NormalizationRule(
        "unquote_literals",
        re.compile(r':\s*"(?:true|false|null)"'),
        _sub(r'(:\s*)"(true|false|null)"', r"\1\2"),
    ),
    NormalizationRule(
        "unquote_numbers",
        re.compile(r'"(?:%s)"\s*:\s*"-?\d' % _NUMERIC_KEYS),
        _sub(r'("(?:%s)"\s*:\s*)"(-?\d+(?:\.\d+)?)\s*,?\s*"' % _NUMERIC_KEYS, r"\1\2"),
    ),
    NormalizationRule(
        "close_unterminated_numbers",
        re.compile(r'"(?:%s)"\s*:\s*"-?\d' % _NUMERIC_KEYS),
        _sub(r'("(?:%s)"\s*:\s*)"(-?\d+(?:\.\d+)?)\s*(?=[,}\]])' % _NUMERIC_KEYS, r"\1\2"),
    ),
    NormalizationRule(
        "quoted_cost_words",
        re.compile(r'"(?:%s)"\s*:\s*"(?:%s)"' % (_NUMERIC_KEYS, _COST_WORDS), re.IGNORECASE),
        _sub(r'("(?:%s)"\s*:\s*)"(%s)"' % (_NUMERIC_KEYS, _COST_WORDS), _cost_word, re.IGNORECASE),
    ),
    NormalizationRule(
        "bare_cost_words",
        re.compile(r":\s*(?:%s)\b" % _COST_WORDS, re.IGNORECASE),
        _sub(r"(:\s*)(%s)\b(?=\s*[,}\]]|\s*$)" % _COST_WORDS, _cost_word, re.IGNORECASE),
    ),
    NormalizationRule(
        "collapse_repeated_quotes",
        re.compile(r'[^:\s\[,{]"{2,}'),
        _sub(r'(?<=[^:\s\[,{])"{2,}', '"'),
    ),
    NormalizationRule(
        "missing_separators",
        re.compile(r'[\d"el]\s+"[A-Za-z_]\w*"\s*:'),
        _sub(r'(?<=[\d"el])\s+(?="[A-Za-z_]\w*"\s*:)', ", "),
    ),
    NormalizationRule(
        "repeated_commas",
        re.compile(r",\s*,"),
        _sub(r",(?:\s*,)+", ","),
    ),
    NormalizationRule(
        "trailing_separators",
        re.compile(r",\s*[}\]]"),
        _sub(r",\s*([}\]])", r"\1"),
    ),
    NormalizationRule(
        "trailing_comma_at_end",
        re.compile(r",\s*$"),
        _sub(r"(?:\s*,)+\s*$", ""),
    ),
]


def normalize_passes(text: str, rules: Optional[List[NormalizationRule]] = None):
    """Yield (rule name, text) after each rule that changed the text"""
    for rule in rules or NORMALIZATION_RULES:
        updated = rule.apply(text)
        if updated != text:
            text = updated
            yield rule.name, text


def normalize_text(text: str, rules: Optional[List[NormalizationRule]] = None) -> str:
    """Apply the whole rule sequence until nothing changes; idempotent"""
    for _ in range(5):
        updated = text
        for _, updated in normalize_passes(updated, rules):
            pass
        if updated == text:
            break
        text = updated
    return text


def normalize_and_parse(raw_text: str, previous: RepairOutcome, catalog: List[Attraction]) -> RepairOutcome:
    normalized_candidates = []
    for candidate in previous.candidates:
        for rule_name, text in normalize_passes(candidate):
            selections = parse_candidate(text, catalog)
            if selections:
                logger.info(f"Tier 3 recovered {len(selections)} selections after '{rule_name}'")
                return RepairOutcome(RepairStatus.success, 3, Provenance.generator_repaired, selections, [text])

        normalized = normalize_text(candidate)
        normalized_candidates.append(normalized)
        rebuilt = reconstruct(normalized, catalog) if is_incomplete(normalized) else None
        selections = parse_candidate(rebuilt, catalog) or parse_candidate(normalized, catalog)
        if selections:
            logger.info(f"Tier 3 recovered {len(selections)} selections from the fully normalized text")
            return RepairOutcome(RepairStatus.success, 3, Provenance.generator_repaired, selections, [rebuilt or normalized])

    logger.info("Tier 3 normalization exhausted, escalating to text extraction")
    return RepairOutcome(RepairStatus.retry, 3, candidates=normalized_candidates)


# -------------------------
# Tier 4: heuristic extraction
# -------------------------

_FIELD_PATTERNS = {
    "id": re.compile(r'"attractionId"\s*:\s*"?([^",}\]\s]+)"?'),
    "name": re.compile(r'"name"\s*:\s*"([^"]+)"'),
    "time": re.compile(r'"suggestedTime"\s*:\s*"?(\d{1,2})\s*:\s*"?(\d{2})'),
    "duration": re.compile(r'"duration"\s*:\s*"?(\d+)'),
    "reason": re.compile(r'"reason"\s*:\s*"([^"]*)"'),
}


def split_blocks(raw_text: str, anchor: str = ANCHOR_FIELD) -> List[str]:
    """Slice the text into one block per anchor occurrence, starting at the enclosing '{'"""
    starts = []
    for match in re.finditer(r'"%s"' % re.escape(anchor), raw_text):
        brace = raw_text.rfind("{", starts[-1] + 1 if starts else 0, match.start())
        starts.append(brace if brace != -1 else match.start())
    return [raw_text[start:(starts[i + 1] if i + 1 < len(starts) else len(raw_text))] for i, start in enumerate(starts)]


def extract_block(block: str) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}
    for key, pattern in _FIELD_PATTERNS.items():
        match = pattern.search(block)
        if match is None:
            continue
        if key == "time":
            fields[key] = f"{int(match.group(1)):02d}:{match.group(2)}"
        elif key == "duration":
            fields[key] = int(match.group(1))
        else:
            fields[key] = match.group(1)
    return fields


def extract_from_text(raw_text: str, previous: RepairOutcome, catalog: List[Attraction]) -> RepairOutcome:
    by_id = {a.id: a for a in catalog}
    selections: List[Selection] = []
    seen = set()

    for block in split_blocks(raw_text):
        fields = extract_block(block)
        attraction = by_id.get(fields.get("id", ""))
        if attraction is None or attraction.id in seen:
            continue
        seen.add(attraction.id)
        selections.append(Selection(
            attraction_id=attraction.id,
            name=attraction.name,
            visit_order=len(selections) + 1,
            suggested_time=fields.get("time"),
            duration=fields.get("duration"),
            reason=fields.get("reason") or "Selected by AI",
        ))

    if selections:
        logger.info(f"Tier 4 extracted {len(selections)} attractions from field blocks")
        return RepairOutcome(RepairStatus.success, 4, Provenance.text_extraction_fallback, selections)

    lowered = raw_text.lower()
    mentioned = [a for a in catalog if a.name and a.name.lower() in lowered][:settings.extraction_max_items]
    if mentioned:
        logger.info(f"Tier 4 matched {len(mentioned)} attraction names in the response text")
        return RepairOutcome(
            RepairStatus.success, 4, Provenance.text_extraction_fallback,
            [
                Selection(attraction_id=a.id, name=a.name, visit_order=i + 1, reason="Mentioned in AI response")
                for i, a in enumerate(mentioned)
            ],
        )

    logger.warning("All repair tiers exhausted")
    return RepairOutcome(RepairStatus.exhausted, 4, detail="no structured or textual selections found")


REPAIR_TIERS = [parse_direct, reconstruct_list, normalize_and_parse, extract_from_text]


def repair_output(raw_text: str, catalog: List[Attraction]) -> RepairOutcome:
    """Run the tiers in order until one succeeds or the last one gives up"""
    outcome = RepairOutcome(RepairStatus.retry, 0)
    if not raw_text or not raw_text.strip():
        return RepairOutcome(RepairStatus.exhausted, 0, detail="empty response")

    for tier in REPAIR_TIERS:
        outcome = tier(raw_text, outcome, catalog)
        if outcome.status != RepairStatus.retry:
            return outcome
    return RepairOutcome(RepairStatus.exhausted, outcome.tier, detail="repair tiers exhausted")
