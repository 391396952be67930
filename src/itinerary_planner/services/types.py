from __future__ import annotations

import json
import math
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any, Literal

from itinerary_planner.exceptions import (
    CoordinateDecodeError,
    InvalidCoordinateError,
    ProviderPartialResultError,
)
from itinerary_planner.services.geo import haversine_km

TravelMode = Literal["walking", "driving", "taxi"]

_NUMBER = r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?"
_WKT_POINT_RE = re.compile(
    rf"^\s*POINT\s*\(\s*(?P<lng>{_NUMBER})\s+(?P<lat>{_NUMBER})\s*\)\s*$",
    re.IGNORECASE,
)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass(slots=True, frozen=True)
class GeoPoint:
    """A WGS84 coordinate.

    Three wire forms decode to the same point: GeoJSON
    ``{"type": "Point", "coordinates": [lng, lat]}``, the flat
    ``{"latitude": .., "longitude": ..}`` object and WKT ``POINT(lng lat)``.
    GeoJSON is the canonical output form. Both GeoJSON and WKT put longitude
    first.
    """

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "latitude", float(self.latitude))
        object.__setattr__(self, "longitude", float(self.longitude))
        self.validate()

    def validate(self) -> None:
        if not (math.isfinite(self.latitude) and math.isfinite(self.longitude)):
            raise InvalidCoordinateError("Coordinates must be finite numbers")
        if not -90.0 <= self.latitude <= 90.0:
            raise InvalidCoordinateError(
                f"Latitude {self.latitude} must be between -90 and 90"
            )
        if not -180.0 <= self.longitude <= 180.0:
            raise InvalidCoordinateError(
                f"Longitude {self.longitude} must be between -180 and 180"
            )

    def distance_km(self, other: GeoPoint) -> float:
        return haversine_km(self.latitude, self.longitude, other.latitude, other.longitude)

    def to_geojson(self) -> dict[str, Any]:
        return {"type": "Point", "coordinates": [self.longitude, self.latitude]}

    def encode(self) -> bytes:
        return json.dumps(self.to_geojson()).encode()

    def to_wkt(self) -> str:
        # repr gives the shortest text that parses back to the same float.
        return f"POINT({self.longitude!r} {self.latitude!r})"

    @classmethod
    def decode(cls, payload: bytes | str) -> GeoPoint:
        try:
            data = json.loads(payload)
        except (TypeError, ValueError) as exc:
            raise CoordinateDecodeError("Coordinate payload is not valid JSON") from exc
        if not isinstance(data, Mapping):
            raise CoordinateDecodeError("Coordinate payload must be a JSON object")
        return cls.from_mapping(data)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> GeoPoint:
        coordinates = data.get("coordinates")
        if (
            data.get("type") == "Point"
            and isinstance(coordinates, (list, tuple))
            and len(coordinates) == 2
            and all(_is_number(value) for value in coordinates)
        ):
            longitude, latitude = coordinates
            return cls(latitude=latitude, longitude=longitude)

        latitude = data.get("latitude")
        longitude = data.get("longitude")
        if _is_number(latitude) and _is_number(longitude):
            return cls(latitude=latitude, longitude=longitude)

        raise CoordinateDecodeError(
            "Expected a GeoJSON Point or an object with latitude and longitude"
        )

    @classmethod
    def from_wkt(cls, text: str) -> GeoPoint:
        match = _WKT_POINT_RE.match(text) if isinstance(text, str) else None
        if match is None:
            raise CoordinateDecodeError(
                f"Expected 'POINT(longitude latitude)', got {text!r}"
            )
        return cls(latitude=float(match["lat"]), longitude=float(match["lng"]))


@dataclass(slots=True, frozen=True)
class PlaceRef:
    id: int
    name: str
    location: GeoPoint
    address: str
    city: str = ""


@dataclass(slots=True, frozen=True)
class RouteLeg:
    from_id: int | None
    to_id: int
    distance_km: float
    travel_minutes: int


@dataclass(slots=True, frozen=True)
class DistanceMatrix:
    """Distance and travel time for every origin/destination pair.

    Entries are addressed by index into ``origins`` and ``destinations``.
    Travel times are not assumed to be symmetric.
    """

    origins: tuple[GeoPoint, ...]
    destinations: tuple[GeoPoint, ...]
    distance_rows: tuple[tuple[float, ...], ...]
    duration_rows: tuple[tuple[int, ...], ...]

    def __post_init__(self) -> None:
        expected_shape = (len(self.origins), len(self.destinations))
        for name, rows in (("distance", self.distance_rows), ("duration", self.duration_rows)):
            if len(rows) != expected_shape[0] or any(
                len(row) != expected_shape[1] for row in rows
            ):
                raise ProviderPartialResultError(
                    f"Matrix {name} rows do not cover {expected_shape[0]}x{expected_shape[1]} pairs"
                )
            for row in rows:
                for value in row:
                    if value is None or not _is_number(value) or value < 0:
                        raise ProviderPartialResultError(
                            f"Matrix {name} entry {value!r} is missing or invalid"
                        )

    @classmethod
    def from_rows(
        cls,
        origins: Sequence[GeoPoint],
        destinations: Sequence[GeoPoint],
        distance_rows: Sequence[Sequence[float]],
        duration_rows: Sequence[Sequence[int]],
    ) -> DistanceMatrix:
        return cls(
            origins=tuple(origins),
            destinations=tuple(destinations),
            distance_rows=tuple(tuple(row) for row in distance_rows),
            duration_rows=tuple(tuple(row) for row in duration_rows),
        )

    def distance_km(self, origin_index: int, destination_index: int) -> float:
        return self.distance_rows[origin_index][destination_index]

    def travel_minutes(self, origin_index: int, destination_index: int) -> int:
        return self.duration_rows[origin_index][destination_index]


@dataclass(slots=True, frozen=True)
class PlannedVisit:
    sequence: int
    place: PlaceRef
    leg: RouteLeg
    arrival: datetime
    departure: datetime
    dwell_minutes: int


@dataclass(slots=True, frozen=True)
class RoutePlan:
    visits: tuple[PlannedVisit, ...]
    total_distance_km: float
    total_travel_minutes: int
    completion: datetime
    buffer_minutes: int
    feasible: bool


@dataclass(slots=True, frozen=True)
class ItineraryHeader:
    owner_id: str
    city: str
    date: date
    window_start: time
    window_end: time
    start: GeoPoint
    mode: TravelMode
    dwell_minutes: int
    total_distance_km: float
    total_travel_minutes: int
    completion_time: time
    buffer_minutes: int
    feasible: bool
