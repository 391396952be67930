from __future__ import annotations

import datetime as dt
from collections.abc import Mapping
from typing import Annotated, Any, Literal

from django.conf import settings
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    PlainValidator,
    PositiveInt,
    field_validator,
    model_validator,
)

from itinerary_planner.exceptions import RequestValidationError
from itinerary_planner.models import Itinerary
from itinerary_planner.services.types import GeoPoint


def _coerce_point(value: Any) -> GeoPoint:
    if isinstance(value, GeoPoint):
        return value
    try:
        if isinstance(value, str):
            if value.lstrip().upper().startswith("POINT"):
                return GeoPoint.from_wkt(value)
            return GeoPoint.decode(value)
        if isinstance(value, Mapping):
            return GeoPoint.from_mapping(value)
    except RequestValidationError as exc:
        raise ValueError(str(exc)) from exc
    raise ValueError("Location must be a GeoJSON Point, a latitude/longitude object or WKT")


Location = Annotated[
    GeoPoint,
    PlainValidator(_coerce_point),
    PlainSerializer(lambda point: point.to_geojson(), return_type=dict),
]


class ItineraryPlanRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    start: Location
    place_ids: list[PositiveInt] = Field(min_length=1)
    date: dt.date
    window_start: dt.time
    window_end: dt.time
    dwell_minutes: int | None = None
    mode: Literal["walking", "driving", "taxi"] = "driving"
    city: str = Field(default="", max_length=100)

    @field_validator("window_start", "window_end")
    @classmethod
    def check_local_time(cls, value: dt.time) -> dt.time:
        if value.tzinfo is not None:
            raise ValueError("Window times are local to the city and must not carry a UTC offset")
        return value

    @model_validator(mode="after")
    def check_policy(self) -> ItineraryPlanRequest:
        max_places = settings.MAX_ITINERARY_PLACES
        if len(self.place_ids) > max_places:
            raise ValueError(f"At most {max_places} places can be planned at once")
        if len(set(self.place_ids)) != len(self.place_ids):
            raise ValueError("place_ids must not contain duplicates")

        if self.dwell_minutes is None:
            self.dwell_minutes = settings.DWELL_MINUTES_DEFAULT
        if not settings.DWELL_MINUTES_MIN <= self.dwell_minutes <= settings.DWELL_MINUTES_MAX:
            raise ValueError(
                f"dwell_minutes must be between {settings.DWELL_MINUTES_MIN} "
                f"and {settings.DWELL_MINUTES_MAX}"
            )

        if self.window_minutes < settings.MIN_WINDOW_MINUTES:
            raise ValueError(
                f"window_end must be at least {settings.MIN_WINDOW_MINUTES} minutes "
                "after window_start"
            )
        return self

    @property
    def window_start_at(self) -> dt.datetime:
        return dt.datetime.combine(self.date, self.window_start)

    @property
    def window_end_at(self) -> dt.datetime:
        return dt.datetime.combine(self.date, self.window_end)

    @property
    def window_minutes(self) -> int:
        return int((self.window_end_at - self.window_start_at).total_seconds() // 60)


class PlaceResponse(BaseModel):
    id: int
    name: str
    address: str
    city: str
    location: Location


class VisitResponse(BaseModel):
    sequence: int
    place: PlaceResponse
    arrival_time: dt.time
    departure_time: dt.time
    dwell_minutes: int
    travel_minutes_from_previous: int
    distance_from_previous_km: float


class ItineraryResponse(BaseModel):
    id: int
    owner_id: str
    city: str
    date: dt.date
    window_start: dt.time
    window_end: dt.time
    mode: Literal["walking", "driving", "taxi"]
    dwell_minutes: int
    start: Location
    visits: list[VisitResponse]
    total_distance_km: float
    total_travel_minutes: int
    completion_time: dt.time
    feasible: bool
    buffer_minutes: int
    status: Literal["draft", "completed", "cancelled"]

    @classmethod
    def from_model(cls, itinerary: Itinerary) -> ItineraryResponse:
        visits = itinerary.visits.select_related("place").order_by("sequence")
        return cls(
            id=itinerary.pk,
            owner_id=itinerary.owner_id,
            city=itinerary.city,
            date=itinerary.date,
            window_start=itinerary.window_start,
            window_end=itinerary.window_end,
            mode=str(itinerary.travel_mode),
            dwell_minutes=itinerary.dwell_minutes,
            start=itinerary.start_location,
            visits=[
                VisitResponse(
                    sequence=visit.sequence,
                    place=PlaceResponse(
                        id=visit.place.pk,
                        name=visit.place.title,
                        address=visit.place.address,
                        city=visit.place.city,
                        location=visit.place.location,
                    ),
                    arrival_time=visit.arrival_time,
                    departure_time=visit.departure_time,
                    dwell_minutes=visit.dwell_minutes,
                    travel_minutes_from_previous=visit.travel_minutes_from_previous,
                    distance_from_previous_km=round(visit.distance_from_previous_km, 3),
                )
                for visit in visits
            ],
            total_distance_km=round(itinerary.total_distance_km, 3),
            total_travel_minutes=itinerary.total_travel_minutes,
            completion_time=itinerary.completion_time,
            feasible=itinerary.feasible,
            buffer_minutes=itinerary.buffer_minutes,
            status=str(itinerary.status),
        )
