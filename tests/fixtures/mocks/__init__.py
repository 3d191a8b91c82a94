"""Fakes for external collaborators.

- Oracle fakes (scripted and phase-routed)
- Knowledge service and weather client fakes
"""

from tests.fixtures.mocks.oracle import (
    FailingOracle,
    FakeKnowledgeService,
    FakeWeatherClient,
    PhaseOracle,
    ScriptedOracle,
    aggregation_json,
    classification_json,
    decomposition_json,
    make_report,
)

__all__ = [
    "ScriptedOracle",
    "FailingOracle",
    "PhaseOracle",
    "FakeKnowledgeService",
    "FakeWeatherClient",
    "decomposition_json",
    "classification_json",
    "aggregation_json",
    "make_report",
]
