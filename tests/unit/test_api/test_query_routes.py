"""
Tests for the query orchestration API endpoints.

The orchestrator dependency is overridden with one built from scripted
collaborators, so no network or API keys are needed.
"""

import pytest
from fastapi.testclient import TestClient

from src.agents.query_orchestrator import build_orchestrator
from src.api.routes import query as query_routes
from src.api.main import app
from src.api.routes.query import get_orchestrator
from tests.fixtures.mocks.oracle import (
    FakeKnowledgeService,
    FakeWeatherClient,
    ScriptedOracle,
    decomposition_json,
    make_report,
)


@pytest.fixture
def oracle():
    return ScriptedOracle(
        default=decomposition_json([{"text": "12 * 8", "kind": "math_calculation", "confidence": 0.99}])
    )


@pytest.fixture
def client(oracle):
    orchestrator = build_orchestrator(
        oracle,
        knowledge_service=FakeKnowledgeService(
            answers={"machine_learning": "ML answer", "price_index_statistics": "PPI answer"}
        ),
        weather_client=FakeWeatherClient(reports={"Beijing": make_report()}),
    )
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


class TestProcessQuery:
    def test_answers_in_envelope(self, client):
        response = client.post("/api/v1/query", json={"query": "12 * 8"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert "timestamp" in body
        data = body["data"]
        assert data["response"] == "12 × 8 = 96"
        assert data["analysis"]["queryType"] == "single_intent"
        assert data["subResults"][0]["type"] == "math_calculation"
        assert data["executionSummary"] == {
            "totalSubQueries": 1,
            "successfulQueries": 1,
            "failedQueries": 0,
            "totalExecutionTime": data["subResults"][0]["executionTime"],
        }

    def test_query_is_stripped(self, client, oracle):
        client.post("/api/v1/query", json={"query": "   12 * 8  "})
        assert '"12 * 8"' in oracle.calls[0]["prompt"]

    @pytest.mark.parametrize("payload", [{}, {"query": ""}, {"query": "   "}, {"query": "x" * 4001}])
    def test_invalid_requests(self, client, payload):
        assert client.post("/api/v1/query", json=payload).status_code == 422


class TestCrossDomain:
    def test_all_domains(self, client):
        response = client.post("/api/v1/query/cross-domain", json={"query": "what changed?"})

        assert response.status_code == 200
        results = response.json()["data"]["results"]
        assert [r["domain"] for r in results] == ["machine_learning", "price_index_statistics"]
        assert results[1]["response"] == "PPI answer"
        assert results[1]["retrievalFailed"] is False

    def test_selected_domains(self, client):
        response = client.post(
            "/api/v1/query/cross-domain",
            json={"query": "what changed?", "domains": ["price_index_statistics", "unknown"]},
        )

        results = response.json()["data"]["results"]
        assert [r["domain"] for r in results] == ["price_index_statistics"]


class TestDomainsAndHealth:
    def test_list_domains(self, client):
        data = client.get("/api/v1/query/domains").json()["data"]

        assert data["total"] == 2
        assert data["domains"][0]["key"] == "machine_learning"

    def test_health(self, client):
        body = client.get("/health").json()
        assert body["status"] == "healthy"
        assert body["service"] == "query-orchestrator"


class TestLifespan:
    def test_shutdown_closes_shared_orchestrator(self, monkeypatch):
        knowledge_service = FakeKnowledgeService()
        orchestrator = build_orchestrator(
            ScriptedOracle(), knowledge_service=knowledge_service, weather_client=FakeWeatherClient()
        )
        monkeypatch.setattr(query_routes, "_orchestrator", orchestrator)

        with TestClient(app) as test_client:
            assert test_client.get("/api/v1/query/domains").status_code == 200
            assert knowledge_service.close_calls == 0

        assert knowledge_service.close_calls == 1
        assert query_routes._orchestrator is None

    def test_shutdown_without_orchestrator(self, monkeypatch):
        monkeypatch.setattr(query_routes, "_orchestrator", None)

        with TestClient(app):
            pass

        assert query_routes._orchestrator is None
