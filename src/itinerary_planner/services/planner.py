from __future__ import annotations

import logging
import time

from django.conf import settings

from itinerary_planner.exceptions import PlanningTimeoutError
from itinerary_planner.schemas import ItineraryPlanRequest, ItineraryResponse
from itinerary_planner.services.catalog import PlaceCatalog
from itinerary_planner.services.matrix import MatrixProvider, get_matrix_provider
from itinerary_planner.services.optimization import check_dwell_budget, optimize_route
from itinerary_planner.services.persistence import ItineraryStore
from itinerary_planner.services.types import ItineraryHeader

logger = logging.getLogger(__name__)


class ItineraryPlannerService:
    def __init__(
        self,
        catalog: PlaceCatalog | None = None,
        matrix_provider: MatrixProvider | None = None,
        store: ItineraryStore | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        self.catalog = catalog or PlaceCatalog()
        self.matrix_provider = matrix_provider or get_matrix_provider()
        self.store = store or ItineraryStore()
        self.timeout_seconds = (
            timeout_seconds
            if timeout_seconds is not None
            else float(settings.PLANNING_TIMEOUT_SECONDS)
        )

    def plan(self, request: ItineraryPlanRequest, owner_id: str) -> ItineraryResponse:
        deadline = time.monotonic() + self.timeout_seconds

        places = self.catalog.resolve(request.place_ids)
        check_dwell_budget(len(places), request.dwell_minutes, request.window_minutes)

        nodes = [request.start, *(place.location for place in places)]
        matrix = self.matrix_provider.get_matrix(
            nodes,
            nodes,
            request.mode,
            timeout=self._remaining(deadline),
        )
        self._remaining(deadline)

        route = optimize_route(
            places=places,
            matrix=matrix,
            window_start=request.window_start_at,
            window_end=request.window_end_at,
            dwell_minutes=request.dwell_minutes,
        )
        self._remaining(deadline)

        header = ItineraryHeader(
            owner_id=owner_id,
            city=request.city or places[0].city,
            date=request.date,
            window_start=request.window_start,
            window_end=request.window_end,
            start=request.start,
            mode=request.mode,
            dwell_minutes=request.dwell_minutes,
            total_distance_km=route.total_distance_km,
            total_travel_minutes=route.total_travel_minutes,
            completion_time=route.completion.time(),
            buffer_minutes=route.buffer_minutes,
            feasible=route.feasible,
        )
        itinerary = self.store.save(header, route.visits)
        logger.info(
            "Planned itinerary %s: %d stops, %.1f km, %d minutes of buffer",
            itinerary.pk,
            len(route.visits),
            route.total_distance_km,
            route.buffer_minutes,
        )
        return ItineraryResponse.from_model(itinerary)

    @staticmethod
    def _remaining(deadline: float) -> float:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise PlanningTimeoutError("Itinerary planning exceeded its deadline")
        return remaining
