import os, sys
import asyncio
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from tripsynth.services.itinerary_service import get_itinerary_service


def plan_itinerary(text: str):
    service = get_itinerary_service()
    itinerary = asyncio.run(service.generate_itinerary(text))

    print(f"{itinerary.title} [{itinerary.provenance.value}]")
    for visit in itinerary.visits:
        print(f"  {visit.startTime}-{visit.endTime}  {visit.attraction.name} (+{visit.travelMins} min travel, HK${visit.estimatedCost})")
    print(f"Total: {itinerary.totalDurationMins} min visiting, {itinerary.totalTravelMins} min travel, HK${itinerary.totalCost}")
    return itinerary


if __name__ == "__main__":
    plan_itinerary(" ".join(sys.argv[1:]) or "Cultural sites with dim sum lunch, budget 500")
