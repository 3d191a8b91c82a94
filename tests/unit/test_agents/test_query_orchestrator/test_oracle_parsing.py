"""Unit tests for the oracle call wrapper and strict JSON extraction."""

import asyncio

import pytest

from src.agents.query_orchestrator.exceptions import OracleUnavailable
from src.agents.query_orchestrator.oracle import (
    call_oracle,
    extract_json_object,
    optional_str,
    require_confidence,
    require_str,
)
from tests.fixtures.mocks.oracle import ScriptedOracle


class TestExtractJsonObject:
    def test_plain_object(self):
        assert extract_json_object('{"a": 1}') == {"a": 1}

    def test_object_surrounded_by_prose(self):
        assert extract_json_object('Sure! {"a": 1} Hope that helps.') == {"a": 1}

    def test_fenced_block(self):
        response = 'Here you go:\n```json\n{"category": "x"}\n```\n'
        assert extract_json_object(response) == {"category": "x"}

    @pytest.mark.parametrize(
        "response",
        ["", "   ", "no json here", "[1, 2, 3]", "{not valid json}", '"just a string"'],
    )
    def test_rejects_non_objects(self, response):
        with pytest.raises(OracleUnavailable):
            extract_json_object(response)

    def test_parsing_is_repeatable(self):
        response = '```json\n{"final_text": "done", "rationale": "r"}\n```'
        assert extract_json_object(response) == extract_json_object(response)


class TestFieldValidators:
    def test_require_str_rejects_missing_and_empty(self):
        with pytest.raises(OracleUnavailable):
            require_str({}, "text")
        with pytest.raises(OracleUnavailable):
            require_str({"text": "  "}, "text")
        with pytest.raises(OracleUnavailable):
            require_str({"text": 3}, "text")

    def test_optional_str_defaults_but_rejects_wrong_type(self):
        assert optional_str({}, "rationale", "none") == "none"
        with pytest.raises(OracleUnavailable):
            optional_str({"rationale": ["x"]}, "rationale")

    @pytest.mark.parametrize("value", [-0.1, 1.01, "0.5", True, None])
    def test_require_confidence_rejects(self, value):
        with pytest.raises(OracleUnavailable):
            require_confidence({"confidence": value})

    @pytest.mark.parametrize("value", [0, 0.0, 0.42, 1])
    def test_require_confidence_accepts(self, value):
        assert require_confidence({"confidence": value}) == float(value)


class TestCallOracle:
    @pytest.mark.asyncio
    async def test_returns_text(self):
        oracle = ScriptedOracle(["hello"])
        assert await call_oracle(oracle, "prompt", system="sys") == "hello"
        assert oracle.calls == [{"prompt": "prompt", "system": "sys"}]

    @pytest.mark.asyncio
    async def test_wraps_errors(self):
        oracle = ScriptedOracle([RuntimeError("rate limited")])
        with pytest.raises(OracleUnavailable, match="rate limited"):
            await call_oracle(oracle, "prompt")

    @pytest.mark.asyncio
    async def test_timeout_becomes_oracle_unavailable(self):
        oracle = ScriptedOracle(["late"], delay_seconds=0.5)
        with pytest.raises(OracleUnavailable, match="timed out"):
            await call_oracle(oracle, "prompt", timeout_seconds=0.01)

    @pytest.mark.asyncio
    async def test_rejects_non_text_response(self):
        class DictOracle:
            async def complete(self, prompt, *, system=None):
                return {"not": "text"}

        with pytest.raises(OracleUnavailable, match="expected text"):
            await call_oracle(DictOracle(), "prompt")

    @pytest.mark.asyncio
    async def test_cancellation_is_not_swallowed(self):
        oracle = ScriptedOracle([asyncio.CancelledError()])
        with pytest.raises(asyncio.CancelledError):
            await call_oracle(oracle, "prompt")
