"""Shared fixtures for query orchestrator tests.

Structure:
- mocks/: Scripted oracles and fake collaborators (knowledge service,
  weather client)

Usage:
    from tests.fixtures.mocks.oracle import ScriptedOracle, FakeKnowledgeService
"""
