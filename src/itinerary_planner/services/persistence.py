from __future__ import annotations

import logging
from collections.abc import Sequence

from django.db import DatabaseError, transaction

from itinerary_planner.exceptions import PersistError
from itinerary_planner.models import Itinerary, Visit
from itinerary_planner.services.types import ItineraryHeader, PlannedVisit

logger = logging.getLogger(__name__)


class ItineraryStore:
    def save(self, header: ItineraryHeader, visits: Sequence[PlannedVisit]) -> Itinerary:
        """Write the itinerary and all of its visits in one transaction."""
        try:
            with transaction.atomic():
                itinerary = Itinerary.objects.create(
                    owner_id=header.owner_id,
                    city=header.city,
                    date=header.date,
                    window_start=header.window_start,
                    window_end=header.window_end,
                    start_latitude=header.start.latitude,
                    start_longitude=header.start.longitude,
                    travel_mode=header.mode,
                    dwell_minutes=header.dwell_minutes,
                    total_distance_km=header.total_distance_km,
                    total_travel_minutes=header.total_travel_minutes,
                    completion_time=header.completion_time,
                    buffer_minutes=header.buffer_minutes,
                    feasible=header.feasible,
                )
                for visit in visits:
                    Visit.objects.create(
                        itinerary=itinerary,
                        place_id=visit.place.id,
                        sequence=visit.sequence,
                        arrival_time=visit.arrival.time(),
                        departure_time=visit.departure.time(),
                        dwell_minutes=visit.dwell_minutes,
                        travel_minutes_from_previous=visit.leg.travel_minutes,
                        distance_from_previous_km=visit.leg.distance_km,
                    )
        except DatabaseError as exc:
            logger.error("Itinerary transaction for owner %s rolled back: %s", header.owner_id, exc)
            raise PersistError("Could not save itinerary") from exc

        logger.info("Saved itinerary %s with %d visits", itinerary.pk, len(visits))
        return itinerary
