from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from tests.conftest import PARIS_CYCLING, PRIMARY_MODEL, as_reply
from tripsmith.domain.route_synthesis.exceptions import InvalidTripRequest, RouteGenerationFailed
from tripsmith.main import app


@pytest.fixture
def client():
    previous = getattr(app.state, "route_synthesizer", None)
    yield TestClient(app)
    app.state.route_synthesizer = previous


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.headers["X-Trace-Id"]


def test_generate_route_returns_camel_case_payload(client: TestClient, make_synthesizer) -> None:
    app.state.route_synthesizer = make_synthesizer({PRIMARY_MODEL: [as_reply(PARIS_CYCLING)]})

    response = client.post(
        "/api/v1/routes/generate",
        json={"country": "France", "tripType": "cycling", "city": "Paris"},
        headers={"X-Trace-Id": "0123456789abcdef"},
    )

    assert response.status_code == 200
    assert response.headers["X-Trace-Id"] == "0123456789abcdef"
    body = response.json()
    assert body["generated"] is True
    assert body["saved"] is False
    route = body["route"]
    assert route["tripType"] == "cycling"
    assert route["routeData"]["totalDistanceKm"] == 100
    assert len(route["routeData"]["dailyRoutes"]) == 2
    assert route["routingMetadata"]["fallbackTier"] == 1
    assert route["generationMetadata"]["llmModel"] == PRIMARY_MODEL


def test_generate_route_rejects_unknown_trip_type(client: TestClient) -> None:
    app.state.route_synthesizer = AsyncMock()

    response = client.post("/api/v1/routes/generate", json={"country": "France", "tripType": "sailing"})

    assert response.status_code == 422
    app.state.route_synthesizer.synthesize.assert_not_called()


@pytest.mark.parametrize(
    "error, status",
    [
        (RouteGenerationFailed("All LLM models failed. Last error: overloaded"), 503),
        (InvalidTripRequest("Country is required"), 400),
    ],
)
def test_generate_route_maps_domain_errors(client: TestClient, error, status) -> None:
    synthesizer = AsyncMock()
    synthesizer.synthesize.side_effect = error
    app.state.route_synthesizer = synthesizer

    response = client.post("/api/v1/routes/generate", json={"country": "France", "tripType": "trekking"})

    assert response.status_code == status
    assert response.json()["detail"] == error.message
