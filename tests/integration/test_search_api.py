"""
Integration tests for the search endpoints.

Demonstrates:
- Testing the HTTP contract with the model and tools stubbed out
- Testing caller policy (legacy failures masked, agentic failures surfaced)
- Overriding FastAPI dependencies instead of patching modules
"""

import asyncio
import json

import pytest
from fastapi.testclient import TestClient

from hermes.api.deps import get_search_service
from hermes.domain.connection import ConnectionManager
from hermes.domain.errors import GenerativeServiceError
from hermes.domain.orchestrator import QueryOrchestrator
from hermes.domain.search_schema import LEGACY_EMPTY_RESPONSE
from hermes.service import SearchService

from tests.stubs import ScriptedService, StubToolProvider, factory_for, text_response

ANSWER = {"object": "ai_search", "query": "coffee in Brooklyn", "message": "Try Devoción on Grand St."}
BLANK_ERROR = {"error": {"code": "invalid_params", "message": "'q' value cannot be blank"}}


def degraded() -> ConnectionManager:
    return ConnectionManager("stub://tools", provider_factory=factory_for(ConnectionRefusedError("refused")))


def search_service(steps, connections: ConnectionManager | None = None) -> tuple[SearchService, ScriptedService]:
    connections = connections or degraded()
    model = ScriptedService(steps)
    return SearchService(QueryOrchestrator(connections, model), connections), model


@pytest.fixture
def app():
    from hermes.main import app

    yield app
    app.dependency_overrides.clear()


def client_for(app, service: SearchService) -> TestClient:
    app.dependency_overrides[get_search_service] = lambda: service
    return TestClient(app)


@pytest.mark.parametrize("params", [{}, {"q": ""}, {"q": "   "}])
def test_blank_query_returns_400_invalid_params(app, params):
    """
    Demonstrates: Scenario - a blank query never reaches the model.
    """
    service, model = search_service([text_response(json.dumps(ANSWER))])

    response = client_for(app, service).get("/search", params=params)

    assert response.status_code == 400
    assert response.json() == BLANK_ERROR
    assert model.calls == 0


def test_agentic_search_returns_extracted_answer(app):
    service, model = search_service([text_response("```json\n" + json.dumps(ANSWER) + "\n```")])

    response = client_for(app, service).get("/search", params={"q": "coffee in Brooklyn"})

    assert response.status_code == 200
    assert response.json() == ANSWER
    user_message = model.conversations[0].messages[1].parts[0].content
    assert user_message == "coffee in Brooklyn"


def test_location_hints_reach_the_system_prompt(app):
    service, model = search_service([text_response(json.dumps(ANSWER))])

    client_for(app, service).get("/search", params={"q": "coffee", "latitude": 40.7, "longitude": -74.0})

    system_prompt = model.conversations[0].messages[0].parts[0].content
    assert "latitude 40.7, longitude -74.0" in system_prompt


def test_failed_legacy_search_returns_empty_legacy_payload(app):
    """
    Demonstrates: Scenario - degraded mode plus a model failure, legacy flag set.

    The caller asked for the legacy shape, so the failure is masked and the
    fixed empty payload is served with 200.
    """
    service, _ = search_service([GenerativeServiceError("upstream unavailable")])

    response = client_for(app, service).get("/search", params={"q": "coffee", "legacy": "true"})

    assert response.status_code == 200
    assert response.json() == LEGACY_EMPTY_RESPONSE


def test_unparseable_legacy_reply_is_masked_as_empty_payload(app):
    reply = '{"object": "ai_search", "areas": [], "brands": [], "latitude": 1' + "0" * 5000 + "}"
    service, _ = search_service([text_response(reply)])

    response = client_for(app, service).get("/search", params={"q": "coffee", "legacy": "true"})

    assert response.status_code == 200
    assert response.json() == LEGACY_EMPTY_RESPONSE


def test_failed_agentic_search_returns_500_internal_error(app):
    service, _ = search_service([GenerativeServiceError("upstream unavailable")])

    response = client_for(app, service).get("/search", params={"q": "coffee"})

    assert response.status_code == 500
    assert response.json() == {"error": {"code": "internal_error", "message": "upstream unavailable"}}


def test_non_conforming_agentic_answer_returns_500(app):
    service, _ = search_service([text_response(json.dumps({"object": "ai_search", "query": "coffee"}))])

    response = client_for(app, service).get("/search", params={"q": "coffee"})

    assert response.status_code == 500
    assert response.json()["error"]["code"] == "internal_error"
    assert "$.message" in response.json()["error"]["message"]


def test_out_of_range_latitude_returns_400(app):
    service, model = search_service([text_response(json.dumps(ANSWER))])

    response = client_for(app, service).get("/search", params={"q": "coffee", "latitude": 123})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "invalid_params"
    assert model.calls == 0


def test_tools_endpoint_reports_degraded_mode(app):
    service, _ = search_service([])

    response = client_for(app, service).get("/search/tools")

    assert response.status_code == 200
    assert response.json() == {"mode": "degraded", "tools": []}


def test_tools_endpoint_lists_connected_tools(app):
    provider = StubToolProvider({"searchAreas": lambda args: "[]", "listBrands": lambda args: "[]"})
    connections = ConnectionManager("stub://tools", provider_factory=factory_for(provider))
    asyncio.run(connections.connect())
    service, _ = search_service([], connections)

    response = client_for(app, service).get("/search/tools")

    assert response.json() == {"mode": "connected", "tools": ["searchAreas", "listBrands"]}
