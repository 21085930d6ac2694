"""
Itinerary Scheduler.

Assigns start/end times, travel gaps and costs to an ordered selection. Runs
identically for generator, repaired, extracted and rule-based selections.
"""

import re
import logging
from typing import Dict, List, Optional

from tripsynth.config import settings
from tripsynth.models.itinerary import Attraction, Itinerary, Provenance, ScheduledVisit
from tripsynth.services.output_repair import Selection

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


MINUTES_PER_DAY = 24 * 60
LAST_MINUTE = MINUTES_PER_DAY - 1
TIME_PATTERN = re.compile(r"^\s*([01]?\d|2[0-3]):([0-5]\d)\s*$")


def parse_hhmm(value: Optional[str]) -> Optional[int]:
    """Minutes after midnight, or None if the value is not a valid HH:MM time"""
    if not isinstance(value, str):
        return None
    match = TIME_PATTERN.match(value)
    if match is None:
        return None
    return int(match.group(1)) * 60 + int(match.group(2))


def format_hhmm(minutes: int) -> str:
    minutes %= MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def lookup_travel_minutes(
    travel_times: Optional[Dict[str, Dict[str, float]]],
    origin: Attraction,
    destination: Attraction,
) -> int:
    """
    Travel minutes from origin to destination.

    The matrix may be keyed by id or by name; only positive durations are
    trusted, anything else falls back to the configured default.
    """
    default = settings.default_travel_minutes
    if not travel_times:
        return default

    row = travel_times.get(origin.id) or travel_times.get(origin.name)
    if row is None:
        lowered = origin.name.lower()
        row = next((r for key, r in travel_times.items() if key.lower() == lowered), None)
    if not row:
        return default

    minutes = row.get(destination.id)
    if minutes is None:
        minutes = row.get(destination.name)
    if minutes is None:
        lowered = destination.name.lower()
        minutes = next((m for key, m in row.items() if key.lower() == lowered), None)

    try:
        minutes = float(minutes)
    except (TypeError, ValueError):
        return default
    return int(round(minutes)) if minutes > 0 else default


def visit_duration(selection: Selection, attraction: Attraction) -> int:
    if selection.duration is not None and selection.duration > 0:
        return int(selection.duration)
    if attraction.estimatedVisitTime and attraction.estimatedVisitTime > 0:
        return attraction.estimatedVisitTime
    return settings.default_visit_minutes


def schedule_visits(
    selections: List[Selection],
    catalog: List[Attraction],
    travel_times: Optional[Dict[str, Dict[str, float]]] = None,
) -> List[ScheduledVisit]:
    by_id = {a.id: a for a in catalog}
    default_start = parse_hhmm(settings.default_start_time) or 9 * 60

    visits: List[ScheduledVisit] = []
    previous: Optional[Attraction] = None
    previous_end = 0

    for selection in selections:
        attraction = by_id.get(selection.attraction_id)
        if attraction is None:
            logger.warning(f"Skipping selection outside the catalog: {selection.attraction_id}")
            continue

        if previous is None:
            travel = 0
            suggested = parse_hhmm(selection.suggested_time)
            start = suggested if suggested is not None else default_start
        else:
            travel = lookup_travel_minutes(travel_times, previous, attraction)
            start = previous_end + travel
            if start >= MINUTES_PER_DAY:
                logger.info(f"Dropping {attraction.name} and later visits: start would pass midnight")
                break

        duration = visit_duration(selection, attraction)
        end = start + duration
        if end > LAST_MINUTE:
            if visits:
                logger.info(f"Dropping {attraction.name} and later visits: visit would end after midnight")
                break
            # the first visit is cut short at 23:59
            duration = max(LAST_MINUTE - start, 0)
            end = start + duration
        ordinal = len(visits)

        visits.append(ScheduledVisit(
            attraction=attraction,
            ordinal=ordinal,
            startTime=format_hhmm(start),
            durationMins=duration,
            endTime=format_hhmm(end),
            travelMins=travel,
            estimatedCost=attraction.cost,
            priority=ordinal + 1,
            rationale=selection.reason or f"Visit {attraction.name}",
        ))
        previous, previous_end = attraction, end

    return visits


def build_itinerary(
    selections: List[Selection],
    catalog: List[Attraction],
    travel_times: Optional[Dict[str, Dict[str, float]]],
    provenance: Provenance,
) -> Itinerary:
    """Schedule the selection and recompute every total from the visits"""
    visits = schedule_visits(selections, catalog, travel_times)
    itinerary = Itinerary(
        visits=visits,
        totalDurationMins=sum(v.durationMins for v in visits),
        totalTravelMins=sum(v.travelMins for v in visits),
        totalCost=sum(v.estimatedCost for v in visits),
        provenance=provenance,
    )
    logger.info(
        f"Scheduled {len(visits)} visits ({provenance.value}): "
        f"{itinerary.totalDurationMins} min, HK${itinerary.totalCost}"
    )
    return itinerary
