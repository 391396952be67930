from __future__ import annotations

import json
import logging
from typing import Any

from django.http import HttpRequest, HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST
from pydantic import ValidationError

from itinerary_planner.exceptions import (
    InfeasibleScheduleError,
    PersistError,
    PlaceNotFoundError,
    PlanningTimeoutError,
    ProviderPartialResultError,
    ProviderRateLimitedError,
    ProviderUnavailableError,
    RequestValidationError,
)
from itinerary_planner.models import Itinerary, Place
from itinerary_planner.schemas import ItineraryPlanRequest, ItineraryResponse
from itinerary_planner.services.planner import ItineraryPlannerService

logger = logging.getLogger(__name__)

_planner_service: ItineraryPlannerService | None = None


def get_itinerary_planner() -> ItineraryPlannerService:
    global _planner_service
    if _planner_service is None:
        _planner_service = ItineraryPlannerService()
    return _planner_service


@require_GET
def health_view(_: HttpRequest) -> HttpResponse:
    return JsonResponse(
        {
            "status": "ok",
            "places": {
                "total": Place.objects.count(),
                "published": Place.objects.filter(status=Place.Status.PUBLISHED).count(),
            },
            "itineraries": Itinerary.objects.count(),
        }
    )


@csrf_exempt
@require_POST
def itinerary_plan_view(request: HttpRequest) -> HttpResponse:
    payload = _parse_json_payload(request)
    if isinstance(payload, JsonResponse):
        return payload

    try:
        plan_request = ItineraryPlanRequest.model_validate(payload)
    except ValidationError as exc:
        return _error_response(
            "validation_error",
            "Invalid request payload",
            status=400,
            details=exc.errors(include_url=False, include_context=False),
        )

    planner = get_itinerary_planner()
    try:
        response = planner.plan(plan_request, owner_id=_owner_id(request))
    except RequestValidationError as exc:
        return _error_response("validation_error", str(exc), status=400)
    except PlaceNotFoundError as exc:
        return _error_response(
            "place_not_found", str(exc), status=404, details={"place_ids": exc.place_ids}
        )
    except InfeasibleScheduleError as exc:
        return _error_response(
            "infeasible_schedule",
            str(exc),
            status=422,
            details={
                "required_minutes": exc.required_minutes,
                "available_minutes": exc.available_minutes,
                "place_id": exc.place_id,
                "sequence": exc.sequence,
            },
        )
    except ProviderRateLimitedError as exc:
        return _error_response("provider_rate_limited", str(exc), status=503)
    except ProviderUnavailableError as exc:
        return _error_response("provider_unavailable", str(exc), status=502)
    except ProviderPartialResultError as exc:
        logger.exception("Matrix provider broke its contract")
        return _error_response("provider_partial_result", str(exc), status=502)
    except PlanningTimeoutError as exc:
        return _error_response("planning_timeout", str(exc), status=504)
    except PersistError as exc:
        return _error_response("persist_error", str(exc), status=500)

    return JsonResponse(response.model_dump(mode="json"), status=201)


@require_GET
def itinerary_detail_view(_: HttpRequest, itinerary_id: int) -> HttpResponse:
    try:
        itinerary = Itinerary.objects.get(pk=itinerary_id)
    except Itinerary.DoesNotExist:
        return _error_response(
            "itinerary_not_found", f"Itinerary {itinerary_id} does not exist", status=404
        )
    return JsonResponse(ItineraryResponse.from_model(itinerary).model_dump(mode="json"))


def _owner_id(request: HttpRequest) -> str:
    user = getattr(request, "user", None)
    if user is not None and user.is_authenticated:
        return str(user.pk)
    return "anonymous"


def _parse_json_payload(request: HttpRequest) -> dict[str, Any] | JsonResponse:
    if not request.body:
        return {}

    try:
        payload = json.loads(request.body)
    except json.JSONDecodeError:
        return _error_response("invalid_json", "Request body must be valid JSON", status=400)

    if not isinstance(payload, dict):
        return _error_response("invalid_json", "JSON body must be an object", status=400)

    return payload


def _error_response(
    code: str, message: str, status: int, details: Any | None = None
) -> JsonResponse:
    error: dict[str, Any] = {"code": code, "message": message}
    if details is not None:
        error["details"] = details
    return JsonResponse({"error": error}, status=status)
