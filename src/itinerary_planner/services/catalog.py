from __future__ import annotations

from itinerary_planner.exceptions import PlaceNotFoundError
from itinerary_planner.models import Place
from itinerary_planner.services.types import PlaceRef


class PlaceCatalog:
    def resolve(self, place_ids: list[int]) -> list[PlaceRef]:
        """Load published places by id, keeping the requested order."""
        places = Place.objects.filter(
            id__in=place_ids, status=Place.Status.PUBLISHED
        ).only("id", "title", "address", "city", "latitude", "longitude")
        by_id = {place.id: place for place in places}

        missing = [place_id for place_id in place_ids if place_id not in by_id]
        if missing:
            raise PlaceNotFoundError(missing)

        return [
            PlaceRef(
                id=place.id,
                name=place.title,
                location=place.location,
                address=place.address,
                city=place.city,
            )
            for place in (by_id[place_id] for place_id in place_ids)
        ]
