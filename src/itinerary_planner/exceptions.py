from __future__ import annotations


class ItineraryPlannerError(Exception):
    """Base exception for itinerary planning errors."""


class RequestValidationError(ItineraryPlannerError):
    """Raised when a planning request is malformed."""


class InvalidCoordinateError(RequestValidationError):
    """Raised when a latitude or longitude is outside the WGS84 range."""


class CoordinateDecodeError(RequestValidationError):
    """Raised when a coordinate payload matches none of the supported wire forms."""


class PlaceNotFoundError(ItineraryPlannerError):
    """Raised when requested place ids do not resolve in the catalog."""

    def __init__(self, place_ids: list[int]) -> None:
        self.place_ids = sorted(place_ids)
        joined = ", ".join(str(place_id) for place_id in self.place_ids)
        super().__init__(f"Unknown place id(s): {joined}")


class ProviderError(ItineraryPlannerError):
    """Base class for distance matrix provider failures."""


class ProviderUnavailableError(ProviderError):
    """Raised when the matrix provider times out or cannot be reached."""


class ProviderRateLimitedError(ProviderUnavailableError):
    """Raised when the matrix provider rejects the call with a rate limit."""


class ProviderPartialResultError(ProviderError):
    """Raised when a provider returns a matrix with missing pairs."""


class InfeasibleScheduleError(ItineraryPlannerError):
    """Raised when the visits cannot fit inside the requested time window."""

    def __init__(
        self,
        required_minutes: int,
        available_minutes: int,
        place_id: int | None = None,
        sequence: int | None = None,
    ) -> None:
        self.required_minutes = required_minutes
        self.available_minutes = available_minutes
        self.place_id = place_id
        self.sequence = sequence
        message = (
            f"Schedule needs {required_minutes} minutes "
            f"but only {available_minutes} are available"
        )
        if place_id is not None:
            message += f" (overflow at stop {sequence}, place {place_id})"
        super().__init__(message)


class PersistError(ItineraryPlannerError):
    """Raised when the itinerary transaction fails."""


class PlanningTimeoutError(ItineraryPlannerError):
    """Raised when planning exceeds the request deadline."""
