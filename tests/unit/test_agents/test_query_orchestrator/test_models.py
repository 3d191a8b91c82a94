"""Unit tests for query orchestrator data models."""

import pytest
from pydantic import ValidationError

from src.agents.query_orchestrator.models import (
    AggregationOutcome,
    DecompositionOutcome,
    ExecutionSummary,
    OrchestrationResult,
    QueryAnalysis,
    SubRequest,
    SubRequestKind,
    SubResult,
)


def make_request(id="sub_1", text="12 * 8", kind=SubRequestKind.CALCULATION, priority=1, confidence=0.9):
    return SubRequest(id=id, text=text, kind=kind, priority=priority, confidence=confidence)


class TestSubRequest:
    def test_confidence_must_be_within_unit_interval(self):
        with pytest.raises(ValidationError):
            make_request(confidence=1.5)

    def test_generates_id_when_missing(self):
        request = SubRequest(text="hi", kind=SubRequestKind.KNOWLEDGE_QUERY, confidence=0.5)
        assert request.id.startswith("sub_")

    def test_is_immutable(self):
        request = make_request()
        with pytest.raises(ValidationError):
            request.text = "changed"


class TestDecompositionOutcome:
    def test_single_request_is_not_composite(self):
        outcome = DecompositionOutcome(original_text="12 * 8", sub_requests=[make_request()])
        assert outcome.is_composite is False

    def test_multiple_requests_are_composite(self):
        outcome = DecompositionOutcome(
            original_text="a and b",
            sub_requests=[make_request(id="a"), make_request(id="b")],
        )
        assert outcome.is_composite is True
        assert outcome.request_count == 2

    def test_mean_confidence(self):
        outcome = DecompositionOutcome(
            original_text="x",
            sub_requests=[make_request(id="a", confidence=0.4), make_request(id="b", confidence=0.8)],
        )
        assert outcome.mean_confidence() == pytest.approx(0.6)

    def test_mean_confidence_of_empty_outcome_is_zero(self):
        outcome = DecompositionOutcome(original_text="x", sub_requests=[])
        assert outcome.mean_confidence() == 0.0


class TestSubResult:
    def test_failure_requires_reason(self):
        with pytest.raises(ValidationError):
            SubResult(id="a", kind=SubRequestKind.CALCULATION, text="x", succeeded=False)

    def test_success_rejects_reason(self):
        with pytest.raises(ValidationError):
            SubResult(
                id="a",
                kind=SubRequestKind.CALCULATION,
                text="x",
                succeeded=True,
                failure_reason="boom",
            )

    def test_constructors_copy_request_identity(self):
        request = make_request(id="calc", text="3 + 4")
        ok = SubResult.success(request, "3 + 4 = 7", 5)
        failed = SubResult.failure(request, "InsufficientOperands: none", 2)

        assert (ok.id, ok.kind, ok.text, ok.output) == ("calc", SubRequestKind.CALCULATION, "3 + 4", "3 + 4 = 7")
        assert failed.succeeded is False
        assert failed.output == ""
        assert failed.duration_ms == 2


class TestExecutionSummary:
    @pytest.mark.parametrize(
        "outcomes",
        [[], [True], [False], [True, False, True], [False, False, False, True]],
    )
    def test_counts_add_up(self, outcomes):
        results = []
        for i, ok in enumerate(outcomes):
            request = make_request(id=f"r{i}")
            if ok:
                results.append(SubResult.success(request, "out", i * 10))
            else:
                results.append(SubResult.failure(request, "Timeout: slow", i * 10))

        summary = ExecutionSummary.from_results(results)

        assert summary.succeeded + summary.failed == summary.total == len(outcomes)
        assert summary.total_duration_ms == sum(r.duration_ms for r in results)

    def test_wire_shape(self):
        summary = ExecutionSummary(total=3, succeeded=2, failed=1, total_duration_ms=120)
        assert summary.to_wire() == {
            "totalSubQueries": 3,
            "successfulQueries": 2,
            "failedQueries": 1,
            "totalExecutionTime": 120,
        }


class TestOrchestrationResult:
    @pytest.fixture
    def result(self):
        requests = [
            make_request(id="k", text="What is the PPI?", kind=SubRequestKind.KNOWLEDGE_QUERY, confidence=0.8),
            make_request(id="c", text="123*456", confidence=0.6),
        ]
        decomposition = DecompositionOutcome(
            original_text="What is the PPI? Also 123*456", sub_requests=requests, rationale="two intents"
        )
        sub_results = [
            SubResult.success(requests[0], "PPI: N/A", 30),
            SubResult.failure(requests[1], "Timeout: sub-task exceeded 1s", 1000),
        ]
        summary = ExecutionSummary.from_results(sub_results)
        return OrchestrationResult(
            text=decomposition.original_text,
            final_text="PPI: N/A",
            decomposition=decomposition,
            sub_results=sub_results,
            aggregation=AggregationOutcome(
                final_text="PPI: N/A", rationale="merged", summary=summary, used_fallback=True
            ),
            summary=summary,
        )

    def test_analysis_reports_multi_intent_and_mean_confidence(self, result):
        analysis = result.analysis
        assert isinstance(analysis, QueryAnalysis)
        assert analysis.query_type == "multi_intent"
        assert analysis.confidence == pytest.approx(0.7)
        assert analysis.reasoning == "two intents"

    def test_to_response_uses_wire_names(self, result):
        response = result.to_response()

        assert response["response"] == "PPI: N/A"
        assert response["analysis"]["queryType"] == "multi_intent"
        assert response["decomposition"]["hasMultipleIntents"] is True
        assert [sq["type"] for sq in response["decomposition"]["subQueries"]] == [
            "knowledge_query",
            "math_calculation",
        ]
        assert response["subResults"][1] == {
            "id": "c",
            "query": "123*456",
            "type": "math_calculation",
            "response": "",
            "success": False,
            "error": "Timeout: sub-task exceeded 1s",
            "executionTime": 1000,
        }
        assert response["executionSummary"]["failedQueries"] == 1
        assert response["aggregation"]["usedFallback"] is True
