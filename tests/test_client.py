import json

import httpx
import pytest

from aquaroute.models.domain import CandidatePoint, GeoPoint
from aquaroute.services.optimization.client import OptimizerClient, check_health, unwrap_envelope
from aquaroute.services.optimization.errors import OptimizerRejected
from aquaroute.services.optimization.request_builder import RequestBuilder

BASE_URL = "http://optimizer.test"


@pytest.fixture
def request_payload():
    return RequestBuilder().build(
        selection=[CandidatePoint(id="r1", location=GeoPoint(21.5, 39.2))],
        origin={"latitude": 21.4, "longitude": 39.1},
        owner_id="admin-1",
    )


def _client(handler, **kwargs) -> OptimizerClient:
    kwargs.setdefault("fallback_endpoints", ())
    return OptimizerClient(base_url=BASE_URL, transport=httpx.MockTransport(handler), backoff_seconds=0, **kwargs)


def test_optimize_posts_payload_and_unwraps_envelope(request_payload) -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "success": True,
                "routes": [{"id": "route-7", "totalDistance": 3.5}],
                "optimization_stats": {"best_fitness": 0.7},
            },
        )

    result = _client(handler).optimize(request_payload)

    assert seen["url"] == f"{BASE_URL}/optimize-route-genetic"
    assert seen["body"]["candidates"][0]["id"] == "r1"
    assert seen["body"]["ga_parameters"]["population_size"] == 50
    assert result == {"id": "route-7", "totalDistance": 3.5, "optimization_stats": {"best_fitness": 0.7}}


def test_non_json_body_returns_none(request_payload) -> None:
    result = _client(lambda request: httpx.Response(200, text="<html>oops</html>")).optimize(request_payload)

    assert result is None


def test_status_errors_are_raised_without_retry(request_payload) -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503, json={"detail": "down"})

    with pytest.raises(httpx.HTTPStatusError):
        _client(handler, max_retries=3).optimize(request_payload)
    assert len(calls) == 1


def test_transport_errors_are_retried(request_payload) -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) == 1:
            raise httpx.ConnectError("refused", request=request)
        return httpx.Response(200, json={"id": "route-1"})

    result = _client(handler, max_retries=1).optimize(request_payload)

    assert result == {"id": "route-1"}
    assert len(calls) == 2


def test_retries_are_bounded(request_payload) -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(httpx.ReadTimeout):
        _client(handler, max_retries=2).optimize(request_payload)
    assert len(calls) == 3


def test_client_requires_base_url(monkeypatch) -> None:
    from aquaroute.services.optimization import client as client_module

    monkeypatch.setattr(client_module.settings, "optimizer_base_url", None)

    with pytest.raises(ValueError):
        OptimizerClient()


def test_unwrap_envelope_rejections() -> None:
    with pytest.raises(OptimizerRejected):
        unwrap_envelope({"success": False, "message": "No water supplies found"})
    with pytest.raises(OptimizerRejected):
        unwrap_envelope({"success": True, "routes": []})


def test_unwrap_envelope_passes_plain_payloads() -> None:
    assert unwrap_envelope({"id": "route-1"}) == {"id": "route-1"}
    assert unwrap_envelope(["x"]) == ["x"]
    assert unwrap_envelope(None) is None


def test_health_check_falls_back_to_root() -> None:
    paths = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.path)
        if request.url.path == "/health":
            return httpx.Response(404)
        return httpx.Response(200, json={"service": "optimizer"})

    assert check_health(BASE_URL, transport=httpx.MockTransport(handler)) is True
    assert paths == ["/health", "/"]


def test_health_check_never_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    assert check_health(BASE_URL, transport=httpx.MockTransport(handler)) is False


def test_failed_primary_endpoint_falls_back_in_order(request_payload) -> None:
    paths = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.path)
        if request.url.path == "/optimize-route-genetic":
            return httpx.Response(500)
        if request.url.path == "/optimize-route-advanced":
            return httpx.Response(200, json={"success": False, "message": "no routes"})
        return httpx.Response(
            200,
            json={"success": True, "nearest_points": [{"latitude": 21.6, "longitude": 39.3, "distance_km": 2.0}]},
        )

    result = _client(handler, fallback_endpoints=("/optimize-route-advanced", "/find-nearest-points")).optimize(
        request_payload
    )

    assert paths == ["/optimize-route-genetic", "/optimize-route-advanced", "/find-nearest-points"]
    assert result["totalDistance"] == 2.0
    assert [point["nodeId"] for point in result["points"]] == ["start", "supply-closest"]


def test_primary_error_is_raised_when_every_endpoint_fails(request_payload) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/optimize-route-genetic":
            return httpx.Response(404)
        return httpx.Response(503)

    with pytest.raises(httpx.HTTPStatusError) as excinfo:
        _client(handler, fallback_endpoints=("/optimize-route-advanced",)).optimize(request_payload)

    assert excinfo.value.response.status_code == 404


def test_destination_point_becomes_route_geometry(request_payload) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "success": True,
                "routes": [
                    {
                        "destination_point": {"latitude": 21.6, "longitude": 39.3, "address": "Reservoir"},
                        "total_distance": 4.2,
                    }
                ],
            },
        )

    result = _client(handler).optimize(request_payload)

    start, stop = result["points"]
    assert start["location"] == {"latitude": 21.4, "longitude": 39.1}
    assert stop["address"] == "Reservoir"
    assert result["segments"][0]["distance"] == 4.2


def test_network_timeout_outlasts_algorithm_time_limit() -> None:
    request = RequestBuilder().build(
        selection=[CandidatePoint(id="r1", location=GeoPoint(21.5, 39.2))],
        origin={"latitude": 21.4, "longitude": 39.1},
        owner_id="admin-1",
        parameters={"time_limit": 600},
    )
    client = OptimizerClient(base_url=BASE_URL, timeout=90.0, timeout_margin=30.0)

    assert client.timeout_for(request) == 630.0
    assert client.timeout_for(request) > request.params.time_limit


def test_default_time_limit_keeps_configured_timeout(request_payload) -> None:
    client = OptimizerClient(base_url=BASE_URL, timeout=90.0, timeout_margin=10.0)

    assert client.timeout_for(request_payload) == 90.0
