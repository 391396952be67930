from __future__ import annotations

import httpx
import pytest

from itinerary_planner.exceptions import (
    ProviderPartialResultError,
    ProviderRateLimitedError,
    ProviderUnavailableError,
)
from itinerary_planner.services.matrix import (
    FallbackMatrixProvider,
    HaversineMatrixProvider,
    OsrmMatrixProvider,
    get_matrix_provider,
)
from itinerary_planner.services.types import DistanceMatrix, GeoPoint

SPEEDS = {"walking": 5.0, "driving": 30.0, "taxi": 30.0}

ORIGIN = GeoPoint(latitude=0.0, longitude=0.0)
EAST = GeoPoint(latitude=0.0, longitude=0.04)


def _osrm_response(payload: dict, status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code,
        json=payload,
        request=httpx.Request("GET", "https://osrm.test/table/v1/driving/0,0"),
    )


@pytest.fixture
def osrm_settings(settings):
    settings.OSRM_BASE_URL = "https://osrm.test/"
    settings.OSRM_TIMEOUT_SECONDS = 3.0
    settings.OSRM_RETRY_COUNT = 1
    return settings


def test_haversine_provider_uses_mode_speed() -> None:
    provider = HaversineMatrixProvider(SPEEDS)
    points = [GeoPoint(0, 0), GeoPoint(0, 1)]

    walking = provider.get_matrix(points, points, "walking")
    driving = provider.get_matrix(points, points, "driving")

    assert walking.distance_km(0, 1) == pytest.approx(111.195, abs=0.01)
    assert walking.travel_minutes(0, 0) == 0
    assert walking.travel_minutes(0, 1) == 1335
    assert driving.travel_minutes(0, 1) == 223
    assert driving.travel_minutes(1, 0) == driving.travel_minutes(0, 1)


def test_haversine_provider_rejects_unknown_mode() -> None:
    provider = HaversineMatrixProvider({"walking": 5.0})

    with pytest.raises(ValueError):
        provider.get_matrix([ORIGIN], [EAST], "taxi")


def test_matrix_with_missing_entry_is_rejected() -> None:
    with pytest.raises(ProviderPartialResultError):
        DistanceMatrix.from_rows([ORIGIN, EAST], [ORIGIN, EAST], [[0, 1.0], [1.0, None]], [[0, 5], [5, 0]])

    with pytest.raises(ProviderPartialResultError):
        DistanceMatrix.from_rows([ORIGIN, EAST], [ORIGIN, EAST], [[0, 1.0]], [[0, 5], [5, 0]])

    with pytest.raises(ProviderPartialResultError):
        DistanceMatrix.from_rows([ORIGIN], [EAST], [[1.0]], [[-3]])


def test_osrm_provider_prices_all_pairs_in_one_request(osrm_settings, mocker) -> None:
    get = mocker.patch(
        "itinerary_planner.services.matrix.httpx.get",
        return_value=_osrm_response(
            {
                "code": "Ok",
                "durations": [[0.0, 600.0], [610.0, 0.0]],
                "distances": [[0.0, 5000.0], [5100.0, 0.0]],
            }
        ),
    )

    matrix = OsrmMatrixProvider().get_matrix([ORIGIN, EAST], [ORIGIN, EAST], "walking")

    assert matrix.travel_minutes(0, 1) == 10
    assert matrix.travel_minutes(1, 0) == 11
    assert matrix.distance_km(0, 1) == pytest.approx(5.0)
    assert matrix.distance_km(1, 0) == pytest.approx(5.1)

    get.assert_called_once()
    endpoint = get.call_args.args[0]
    params = get.call_args.kwargs["params"]
    assert endpoint == "https://osrm.test/table/v1/foot/0.000000,0.000000;0.040000,0.000000"
    assert params == {"annotations": "distance,duration"}


def test_osrm_provider_splits_distinct_origins_and_destinations(osrm_settings, mocker) -> None:
    north = GeoPoint(latitude=0.03, longitude=0.0)
    get = mocker.patch(
        "itinerary_planner.services.matrix.httpx.get",
        return_value=_osrm_response(
            {"code": "Ok", "durations": [[600.0, 900.0]], "distances": [[5000.0, 4000.0]]}
        ),
    )

    matrix = OsrmMatrixProvider().get_matrix([ORIGIN], [EAST, north], "driving")

    assert matrix.travel_minutes(0, 1) == 15
    endpoint = get.call_args.args[0]
    params = get.call_args.kwargs["params"]
    assert endpoint.endswith("/driving/0.000000,0.000000;0.040000,0.000000;0.000000,0.030000")
    assert params["sources"] == "0"
    assert params["destinations"] == "1;2"


def test_osrm_provider_serves_repeat_requests_from_cache(osrm_settings, mocker) -> None:
    get = mocker.patch(
        "itinerary_planner.services.matrix.httpx.get",
        return_value=_osrm_response(
            {"code": "Ok", "durations": [[300.0]], "distances": [[4500.0]]}
        ),
    )
    provider = OsrmMatrixProvider()

    first = provider.get_matrix([ORIGIN], [EAST], "driving")
    second = provider.get_matrix([ORIGIN], [EAST], "driving")

    assert first == second
    get.assert_called_once()


def test_osrm_provider_treats_null_entries_as_partial_result(osrm_settings, mocker) -> None:
    mocker.patch(
        "itinerary_planner.services.matrix.httpx.get",
        return_value=_osrm_response(
            {
                "code": "Ok",
                "durations": [[0.0, None], [610.0, 0.0]],
                "distances": [[0.0, None], [5100.0, 0.0]],
            }
        ),
    )

    with pytest.raises(ProviderPartialResultError):
        OsrmMatrixProvider().get_matrix([ORIGIN, EAST], [ORIGIN, EAST], "driving")


def test_osrm_provider_does_not_retry_when_rate_limited(osrm_settings, mocker) -> None:
    get = mocker.patch(
        "itinerary_planner.services.matrix.httpx.get",
        return_value=_osrm_response({"message": "Too Many Requests"}, status_code=429),
    )

    with pytest.raises(ProviderRateLimitedError):
        OsrmMatrixProvider().get_matrix([ORIGIN], [EAST], "driving")

    get.assert_called_once()


def test_osrm_provider_retries_then_reports_unavailable(osrm_settings, mocker) -> None:
    sleep = mocker.patch("itinerary_planner.services.matrix.time.sleep")
    get = mocker.patch(
        "itinerary_planner.services.matrix.httpx.get",
        side_effect=httpx.ConnectError("connection refused"),
    )

    with pytest.raises(ProviderUnavailableError) as exc_info:
        OsrmMatrixProvider().get_matrix([ORIGIN], [EAST], "driving")

    assert not isinstance(exc_info.value, ProviderRateLimitedError)
    assert get.call_count == 2
    sleep.assert_called_once_with(0.3)


def test_osrm_provider_reports_rejected_code_as_unavailable(osrm_settings, mocker) -> None:
    mocker.patch(
        "itinerary_planner.services.matrix.httpx.get",
        return_value=_osrm_response({"code": "InvalidQuery", "message": "bad coordinates"}),
    )

    with pytest.raises(ProviderUnavailableError):
        OsrmMatrixProvider().get_matrix([ORIGIN], [EAST], "driving")


def test_osrm_provider_passes_request_budget_as_timeout(osrm_settings, mocker) -> None:
    get = mocker.patch(
        "itinerary_planner.services.matrix.httpx.get",
        return_value=_osrm_response(
            {"code": "Ok", "durations": [[300.0]], "distances": [[4500.0]]}
        ),
    )

    OsrmMatrixProvider().get_matrix([ORIGIN], [EAST], "driving", timeout=0.5)

    assert 0 < get.call_args.kwargs["timeout"] <= 0.5


def test_fallback_provider_uses_haversine_when_primary_is_down(mocker) -> None:
    primary = mocker.Mock()
    primary.get_matrix.side_effect = ProviderUnavailableError("down")
    provider = FallbackMatrixProvider(primary, HaversineMatrixProvider(SPEEDS))

    matrix = provider.get_matrix([ORIGIN], [EAST], "driving")

    assert matrix.distance_km(0, 0) == pytest.approx(ORIGIN.distance_km(EAST))
    primary.get_matrix.assert_called_once()


def test_fallback_provider_does_not_hide_partial_results(mocker) -> None:
    primary = mocker.Mock()
    primary.get_matrix.side_effect = ProviderPartialResultError("missing pair")
    fallback = mocker.Mock()
    provider = FallbackMatrixProvider(primary, fallback)

    with pytest.raises(ProviderPartialResultError):
        provider.get_matrix([ORIGIN], [EAST], "driving")

    fallback.get_matrix.assert_not_called()


def test_fallback_provider_does_not_hide_rate_limiting(mocker) -> None:
    primary = mocker.Mock()
    primary.get_matrix.side_effect = ProviderRateLimitedError("slow down")
    fallback = mocker.Mock()
    provider = FallbackMatrixProvider(primary, fallback)

    with pytest.raises(ProviderRateLimitedError):
        provider.get_matrix([ORIGIN], [EAST], "driving")

    fallback.get_matrix.assert_not_called()


def test_provider_is_selected_from_settings(settings) -> None:
    settings.MATRIX_PROVIDER = "haversine"
    assert isinstance(get_matrix_provider(), HaversineMatrixProvider)

    settings.MATRIX_PROVIDER = "osrm"
    settings.MATRIX_FALLBACK_TO_HAVERSINE = False
    assert isinstance(get_matrix_provider(), OsrmMatrixProvider)

    settings.MATRIX_FALLBACK_TO_HAVERSINE = True
    assert isinstance(get_matrix_provider(), FallbackMatrixProvider)

    settings.MATRIX_PROVIDER = "carrier-pigeon"
    with pytest.raises(ValueError):
        get_matrix_provider()
