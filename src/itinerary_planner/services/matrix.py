from __future__ import annotations

import hashlib
import logging
import math
import time
from collections.abc import Mapping, Sequence
from typing import Any, Protocol

import httpx
from django.conf import settings
from django.core.cache import cache

from itinerary_planner.exceptions import (
    ProviderPartialResultError,
    ProviderRateLimitedError,
    ProviderUnavailableError,
)
from itinerary_planner.services.geo import travel_minutes_at_speed
from itinerary_planner.services.types import DistanceMatrix, GeoPoint, TravelMode

logger = logging.getLogger(__name__)

METERS_TO_KM = 0.001

OSRM_PROFILES: dict[str, str] = {
    "walking": "foot",
    "driving": "driving",
    "taxi": "driving",
}

# Road distance may beat the great-circle figure only by rounding noise.
GREAT_CIRCLE_TOLERANCE_KM = 0.05


class MatrixProvider(Protocol):
    def get_matrix(
        self,
        origins: Sequence[GeoPoint],
        destinations: Sequence[GeoPoint],
        mode: TravelMode,
        *,
        timeout: float | None = None,
    ) -> DistanceMatrix: ...


class HaversineMatrixProvider:
    """Prices every pair locally from great-circle distance and an average speed."""

    def __init__(self, speeds_kmh: Mapping[str, float] | None = None) -> None:
        self.speeds_kmh = dict(speeds_kmh or settings.AVERAGE_SPEED_KMH)

    def get_matrix(
        self,
        origins: Sequence[GeoPoint],
        destinations: Sequence[GeoPoint],
        mode: TravelMode,
        *,
        timeout: float | None = None,
    ) -> DistanceMatrix:
        try:
            speed_kmh = float(self.speeds_kmh[mode])
        except KeyError as exc:
            raise ValueError(f"No average speed configured for mode {mode!r}") from exc

        distance_rows = [
            [origin.distance_km(destination) for destination in destinations]
            for origin in origins
        ]
        duration_rows = [
            [travel_minutes_at_speed(distance, speed_kmh) for distance in row]
            for row in distance_rows
        ]
        return DistanceMatrix.from_rows(origins, destinations, distance_rows, duration_rows)


class OsrmMatrixProvider:
    """Prices all pairs with a single OSRM ``table`` request."""

    def __init__(self) -> None:
        self.base_url = settings.OSRM_BASE_URL.rstrip("/")
        self.timeout = settings.OSRM_TIMEOUT_SECONDS
        self.retry_count = settings.OSRM_RETRY_COUNT

    def get_matrix(
        self,
        origins: Sequence[GeoPoint],
        destinations: Sequence[GeoPoint],
        mode: TravelMode,
        *,
        timeout: float | None = None,
    ) -> DistanceMatrix:
        if not origins or not destinations:
            raise ValueError("At least one origin and one destination are required")

        cache_key = self._cache_key(origins, destinations, mode)
        cached = cache.get(cache_key)
        if cached:
            return DistanceMatrix.from_rows(
                origins, destinations, cached["distance_rows"], cached["duration_rows"]
            )

        params = {"annotations": "distance,duration"}
        if list(origins) == list(destinations):
            # OSRM treats every coordinate as both source and destination by default.
            points = list(origins)
        else:
            points = [*origins, *destinations]
            params["sources"] = ";".join(str(index) for index in range(len(origins)))
            params["destinations"] = ";".join(
                str(index) for index in range(len(origins), len(points))
            )
        coordinates = ";".join(f"{point.longitude:.6f},{point.latitude:.6f}" for point in points)
        endpoint = f"{self.base_url}/table/v1/{OSRM_PROFILES[mode]}/{coordinates}"

        budget = self.timeout if timeout is None else min(self.timeout, timeout)
        deadline = time.monotonic() + budget

        for attempt in range(self.retry_count + 1):
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            try:
                response = httpx.get(endpoint, params=params, timeout=remaining)
                if response.status_code == httpx.codes.TOO_MANY_REQUESTS:
                    raise ProviderRateLimitedError("OSRM rate limit exceeded")
                response.raise_for_status()
                payload = response.json()
            except ValueError as exc:
                raise ProviderUnavailableError("OSRM returned a non-JSON response") from exc
            except httpx.HTTPError as exc:
                logger.warning(
                    "OSRM table request failed (attempt %d/%d): %s",
                    attempt + 1,
                    self.retry_count + 1,
                    exc,
                )
                if attempt >= self.retry_count:
                    raise ProviderUnavailableError("OSRM table request failed") from exc
                backoff = 0.3 * (attempt + 1)
                if deadline - time.monotonic() <= backoff:
                    break
                time.sleep(backoff)
                continue

            matrix = self._parse_response(payload, origins, destinations)
            self._warn_on_implausible_distances(matrix)
            cache.set(
                cache_key,
                {
                    "distance_rows": [list(row) for row in matrix.distance_rows],
                    "duration_rows": [list(row) for row in matrix.duration_rows],
                },
                timeout=settings.MATRIX_CACHE_TTL_SECONDS,
            )
            return matrix

        raise ProviderUnavailableError("OSRM table request timed out")

    @staticmethod
    def _cache_key(
        origins: Sequence[GeoPoint], destinations: Sequence[GeoPoint], mode: str
    ) -> str:
        encoded = "|".join(
            [
                mode,
                ";".join(f"{point.latitude:.6f}:{point.longitude:.6f}" for point in origins),
                ";".join(f"{point.latitude:.6f}:{point.longitude:.6f}" for point in destinations),
            ]
        ).encode()
        digest = hashlib.sha256(encoded).hexdigest()
        return f"matrix:{digest}"

    @staticmethod
    def _parse_response(
        payload: Any,
        origins: Sequence[GeoPoint],
        destinations: Sequence[GeoPoint],
    ) -> DistanceMatrix:
        code = payload.get("code") if isinstance(payload, dict) else None
        if code != "Ok":
            raise ProviderUnavailableError(f"OSRM table request rejected: {code}")

        durations = payload.get("durations")
        distances = payload.get("distances")
        if durations is None or distances is None:
            raise ProviderPartialResultError("OSRM response is missing durations or distances")

        try:
            distance_rows = [
                [None if value is None else float(value) * METERS_TO_KM for value in row]
                for row in distances
            ]
            duration_rows = [
                [None if value is None else math.ceil(float(value) / 60.0) for value in row]
                for row in durations
            ]
        except (TypeError, ValueError) as exc:
            raise ProviderPartialResultError("OSRM response contains malformed entries") from exc

        return DistanceMatrix.from_rows(origins, destinations, distance_rows, duration_rows)

    @staticmethod
    def _warn_on_implausible_distances(matrix: DistanceMatrix) -> None:
        for origin_index, origin in enumerate(matrix.origins):
            for destination_index, destination in enumerate(matrix.destinations):
                straight_line_km = origin.distance_km(destination)
                road_km = matrix.distance_km(origin_index, destination_index)
                if road_km + GREAT_CIRCLE_TOLERANCE_KM < straight_line_km:
                    logger.warning(
                        "OSRM distance %.3f km for pair (%d, %d) is shorter than "
                        "the great-circle distance %.3f km",
                        road_km,
                        origin_index,
                        destination_index,
                        straight_line_km,
                    )


class FallbackMatrixProvider:
    """Asks ``fallback`` when ``primary`` is unavailable.

    Rate limiting is not masked: callers are expected to back off instead.
    """

    def __init__(self, primary: MatrixProvider, fallback: MatrixProvider) -> None:
        self.primary = primary
        self.fallback = fallback

    def get_matrix(
        self,
        origins: Sequence[GeoPoint],
        destinations: Sequence[GeoPoint],
        mode: TravelMode,
        *,
        timeout: float | None = None,
    ) -> DistanceMatrix:
        try:
            return self.primary.get_matrix(origins, destinations, mode, timeout=timeout)
        except ProviderRateLimitedError:
            raise
        except ProviderUnavailableError as exc:
            logger.warning("Primary matrix provider unavailable, using fallback: %s", exc)
            return self.fallback.get_matrix(origins, destinations, mode, timeout=timeout)


def get_matrix_provider() -> MatrixProvider:
    provider_name = settings.MATRIX_PROVIDER
    if provider_name == "haversine":
        return HaversineMatrixProvider()
    if provider_name == "osrm":
        if settings.MATRIX_FALLBACK_TO_HAVERSINE:
            return FallbackMatrixProvider(OsrmMatrixProvider(), HaversineMatrixProvider())
        return OsrmMatrixProvider()
    raise ValueError(f"Unknown MATRIX_PROVIDER setting: {provider_name!r}")
