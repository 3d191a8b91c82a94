"""
Live integration tests for the query orchestrator.

Skipped automatically unless the corresponding external services are
configured (see tests/conftest.py).
"""

import pytest

from src.agents.query_orchestrator import build_orchestrator
from src.rag import HTTPKnowledgeService, KnowledgeServiceConfig
from src.tools import WeatherClient
from src.utils.llm_factory import get_oracle
from tests.fixtures.mocks.oracle import FakeKnowledgeService, FakeWeatherClient, make_report


@pytest.mark.requires_llm
@pytest.mark.asyncio
async def test_live_oracle_decomposes_mixed_request():
    orchestrator = build_orchestrator(
        get_oracle(),
        knowledge_service=FakeKnowledgeService(),
        weather_client=FakeWeatherClient(reports={"Beijing": make_report()}),
    )

    result = await orchestrator.process_query(
        "What is the PPI this month? Also compute 123*456, and what's the weather in Beijing?"
    )

    assert result.degraded is False
    assert result.summary.total >= 2
    assert "56088" in result.final_text.replace(",", "")


@pytest.mark.requires_knowledge_service
@pytest.mark.asyncio
async def test_live_knowledge_service_health():
    service = HTTPKnowledgeService(KnowledgeServiceConfig.from_env())
    try:
        health = await service.health_check()
    finally:
        await service.close()
    assert health["status"] == "healthy"


@pytest.mark.requires_weather
@pytest.mark.asyncio
async def test_live_weather_lookup():
    report = await WeatherClient().lookup("Beijing")
    assert report.city
