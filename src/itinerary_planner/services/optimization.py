from __future__ import annotations

from datetime import datetime, timedelta

from itinerary_planner.exceptions import InfeasibleScheduleError, ProviderPartialResultError
from itinerary_planner.services.types import (
    DistanceMatrix,
    PlaceRef,
    PlannedVisit,
    RouteLeg,
    RoutePlan,
)

START_INDEX = 0


def minutes_between(earlier: datetime, later: datetime) -> int:
    return int((later - earlier).total_seconds() // 60)


def check_dwell_budget(place_count: int, dwell_minutes: int, available_minutes: int) -> None:
    """Reject requests whose dwell time alone cannot fit in the window.

    Travel time is unknown before the matrix is fetched, so zero is used as
    its lower bound.
    """
    required_minutes = place_count * dwell_minutes
    if required_minutes > available_minutes:
        raise InfeasibleScheduleError(
            required_minutes=required_minutes,
            available_minutes=available_minutes,
        )


def _selection_key(
    matrix: DistanceMatrix, current: int, candidate: int, place: PlaceRef
) -> tuple[float, int]:
    # Nearest first; equal distances resolve to the lowest place id.
    return matrix.distance_km(current, candidate), place.id


def optimize_route(
    places: list[PlaceRef],
    matrix: DistanceMatrix,
    window_start: datetime,
    window_end: datetime,
    dwell_minutes: int,
) -> RoutePlan:
    """Order ``places`` by greedy nearest neighbour from the start location.

    ``matrix`` is indexed by node: node 0 is the start location and node
    ``i`` is ``places[i - 1]``. The first stop whose departure falls after
    ``window_end`` aborts the whole plan with ``InfeasibleScheduleError``.
    """
    node_count = len(places) + 1
    if len(matrix.origins) != node_count or len(matrix.destinations) != node_count:
        raise ProviderPartialResultError(
            f"Matrix covers {len(matrix.origins)}x{len(matrix.destinations)} nodes, "
            f"expected {node_count}x{node_count}"
        )

    available_minutes = minutes_between(window_start, window_end)
    check_dwell_budget(len(places), dwell_minutes, available_minutes)

    current = START_INDEX
    clock = window_start
    remaining = set(range(1, node_count))
    visits: list[PlannedVisit] = []
    total_distance_km = 0.0
    total_travel_minutes = 0

    while remaining:
        next_index = min(
            remaining,
            key=lambda candidate: _selection_key(
                matrix, current, candidate, places[candidate - 1]
            ),
        )
        place = places[next_index - 1]
        travel_minutes = matrix.travel_minutes(current, next_index)
        distance_km = matrix.distance_km(current, next_index)
        arrival = clock + timedelta(minutes=travel_minutes)
        departure = arrival + timedelta(minutes=dwell_minutes)

        if departure > window_end:
            raise InfeasibleScheduleError(
                required_minutes=minutes_between(window_start, departure),
                available_minutes=available_minutes,
                place_id=place.id,
                sequence=len(visits) + 1,
            )

        visits.append(
            PlannedVisit(
                sequence=len(visits) + 1,
                place=place,
                leg=RouteLeg(
                    from_id=None if current == START_INDEX else places[current - 1].id,
                    to_id=place.id,
                    distance_km=distance_km,
                    travel_minutes=travel_minutes,
                ),
                arrival=arrival,
                departure=departure,
                dwell_minutes=dwell_minutes,
            )
        )
        total_distance_km += distance_km
        total_travel_minutes += travel_minutes
        current = next_index
        clock = departure
        remaining.remove(next_index)

    return RoutePlan(
        visits=tuple(visits),
        total_distance_km=total_distance_km,
        total_travel_minutes=total_travel_minutes,
        completion=clock,
        buffer_minutes=minutes_between(clock, window_end),
        feasible=True,
    )
