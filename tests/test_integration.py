import pytest
from fastapi.testclient import TestClient

from aquaroute.api.dependencies import get_registry
from aquaroute.data.candidates_repository import StaticCandidateSource
from aquaroute.main import create_app
from aquaroute.models.domain import CandidatePoint, GeoPoint
from aquaroute.services.optimization.registry import SessionRegistry

ORIGIN = {"latitude": 21.54, "longitude": 39.17}


class DummyOptimizer:
    def __init__(self) -> None:
        self.requests = []

    def optimize(self, request):
        self.requests.append(request)
        return {
            "id": "route-9",
            "ownerId": request.owner_id,
            "candidateIds": list(request.candidate_ids),
            "totalDistance": 6.5,
            "optimization_stats": {"best_fitness": 0.9, "fitness_history": [0.3, 0.6, 0.9]},
        }


@pytest.fixture
def optimizer() -> DummyOptimizer:
    return DummyOptimizer()


@pytest.fixture
def api_client(optimizer: DummyOptimizer) -> TestClient:
    candidates = [
        CandidatePoint(id="r1", location=GeoPoint(21.5, 39.2), address="Well 1"),
        CandidatePoint(id="r2", location=GeoPoint(21.6, 39.3), address="Tap 2"),
    ]
    registry = SessionRegistry(
        candidate_source=StaticCandidateSource(candidates),
        optimizer_factory=lambda: optimizer,
    )
    app = create_app()
    app.dependency_overrides[get_registry] = lambda: registry
    return TestClient(app)


def _create_session(client: TestClient) -> str:
    response = client.post("/api/sessions", json={"owner_id": "admin-1"})
    assert response.status_code == 201
    return response.json()["session_id"]


def test_health_endpoint(api_client: TestClient) -> None:
    response = api_client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_list_candidates(api_client: TestClient) -> None:
    response = api_client.get("/api/candidates")

    assert response.status_code == 200
    assert [c["id"] for c in response.json()] == ["r1", "r2"]
    assert response.json()[0]["location"] == {"latitude": 21.5, "longitude": 39.2}


def test_new_session_is_idle(api_client: TestClient) -> None:
    session_id = _create_session(api_client)

    snapshot = api_client.get(f"/api/sessions/{session_id}").json()

    assert snapshot["status"] == "idle"
    assert snapshot["owner_id"] == "admin-1"
    assert snapshot["selected_ids"] == []
    assert snapshot["route"] is None


def test_create_session_requires_owner(api_client: TestClient) -> None:
    response = api_client.post("/api/sessions", json={"owner_id": ""})

    assert response.status_code == 422


def test_unknown_session_is_404(api_client: TestClient) -> None:
    assert api_client.get("/api/sessions/nope").status_code == 404
    assert api_client.post("/api/sessions/nope/selection/select-all").status_code == 404


def test_optimize_flow(api_client: TestClient, optimizer: DummyOptimizer) -> None:
    session_id = _create_session(api_client)
    api_client.post(f"/api/sessions/{session_id}/selection/toggle/r2")

    response = api_client.post(f"/api/sessions/{session_id}/optimize", json={"origin": ORIGIN, "preset": "fast"})

    assert response.status_code == 200
    snapshot = response.json()
    assert snapshot["status"] == "ready"
    assert snapshot["request_sequence"] == 1
    assert snapshot["selected_ids"] == ["r2"]
    assert snapshot["route"]["id"] == "route-9"
    assert snapshot["route"]["candidateIds"] == ["r2"]
    assert snapshot["telemetry"]["best_fitness"] == 0.9
    assert snapshot["telemetry"]["normalized_history"] == pytest.approx([0.0, 0.5, 1.0])
    assert snapshot["error"] is None
    assert optimizer.requests[0].params.population_size == 30


def test_optimize_with_empty_selection_reports_validation_error(
    api_client: TestClient, optimizer: DummyOptimizer
) -> None:
    session_id = _create_session(api_client)

    snapshot = api_client.post(f"/api/sessions/{session_id}/optimize", json={"origin": ORIGIN}).json()

    assert snapshot["status"] == "error"
    assert snapshot["error"]["category"] == "validation_error"
    assert snapshot["error"]["message"]
    assert optimizer.requests == []


def test_out_of_range_parameters_report_validation_error(api_client: TestClient) -> None:
    session_id = _create_session(api_client)
    api_client.post(f"/api/sessions/{session_id}/selection/select-all")

    snapshot = api_client.post(
        f"/api/sessions/{session_id}/optimize",
        json={"origin": ORIGIN, "parameters": {"population_size": 10}},
    ).json()

    assert snapshot["error"]["category"] == "validation_error"
    assert "population_size" in snapshot["error"]["detail"]


def test_selection_change_resets_ready_session(api_client: TestClient) -> None:
    session_id = _create_session(api_client)
    api_client.post(f"/api/sessions/{session_id}/selection/select-all")
    api_client.post(f"/api/sessions/{session_id}/optimize", json={"origin": ORIGIN})

    snapshot = api_client.post(f"/api/sessions/{session_id}/selection/deselect-all").json()

    assert snapshot["status"] == "idle"
    assert snapshot["route"] is None


def test_close_session(api_client: TestClient) -> None:
    session_id = _create_session(api_client)

    assert api_client.delete(f"/api/sessions/{session_id}").status_code == 200
    assert api_client.get(f"/api/sessions/{session_id}").status_code == 404
