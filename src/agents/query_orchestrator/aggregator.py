"""
Query Orchestrator - Aggregator
Version: 1.0
Purpose: Merge SubResults into one final answer
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from .exceptions import OracleUnavailable
from .models.orchestration_models import AggregationOutcome, ExecutionSummary, SubResult
from .oracle import Oracle, call_oracle, extract_json_object, optional_str, require_str
from .prompts import AGGREGATION_PROMPT, AGGREGATION_SYSTEM_PROMPT

logger = logging.getLogger(__name__)

ALL_FAILED_MESSAGE = "Sorry, all sub-queries failed, so no answer could be produced."
NO_RESULTS_MESSAGE = "No sub-queries were executed, so no answer could be produced."
SINGLE_RESULT_RATIONALE = "single result, no synthesis needed"


class ResultAggregator:
    """
    Produces the final answer from a set of SubResults.

    - One result: passed through, no oracle call
    - Several results: oracle synthesis, deterministic join on failure
    The execution summary is always a pure reduction over the results.
    """

    def __init__(self, oracle: Oracle, timeout_seconds: Optional[float] = None):
        self.oracle = oracle
        self.timeout_seconds = timeout_seconds

    async def aggregate(self, original_text: str, sub_results: List[SubResult]) -> AggregationOutcome:
        summary = ExecutionSummary.from_results(sub_results)

        if not sub_results:
            return AggregationOutcome(
                final_text=NO_RESULTS_MESSAGE,
                rationale="no sub-results to aggregate",
                summary=summary,
                used_fallback=True,
            )

        if len(sub_results) == 1:
            result = sub_results[0]
            return AggregationOutcome(
                final_text=result.output if result.succeeded else format_failure(result),
                rationale=SINGLE_RESULT_RATIONALE,
                summary=summary,
            )

        logger.info(f"Synthesizing {len(sub_results)} sub-results")
        try:
            response = await call_oracle(
                self.oracle,
                self.build_prompt(original_text, sub_results),
                system=AGGREGATION_SYSTEM_PROMPT,
                timeout_seconds=self.timeout_seconds,
            )
            final_text, rationale = self.parse(response)
        except OracleUnavailable as e:
            logger.warning(f"Aggregation degraded to fallback join: {e}")
            return AggregationOutcome(
                final_text=fallback_join(sub_results),
                rationale=f"fallback join used: {e.message}",
                summary=summary,
                used_fallback=True,
            )

        return AggregationOutcome(final_text=final_text, rationale=rationale, summary=summary)

    def build_prompt(self, original_text: str, sub_results: List[SubResult]) -> str:
        successful = [r for r in sub_results if r.succeeded]
        failed = [r for r in sub_results if not r.succeeded]

        sections = []
        if successful:
            lines = [
                f"{i}. [{r.kind.value}] {r.text}\n   Result: {r.output}"
                for i, r in enumerate(successful, start=1)
            ]
            sections.append("SUCCESSFUL RESULTS:\n" + "\n\n".join(lines))
        if failed:
            lines = [
                f"{i}. [{r.kind.value}] {r.text}\n   Error: {r.failure_reason}"
                for i, r in enumerate(failed, start=1)
            ]
            sections.append("FAILED SUB-REQUESTS:\n" + "\n\n".join(lines))

        return AGGREGATION_PROMPT.format(query=original_text, results="\n\n".join(sections))

    def parse(self, response: str) -> Tuple[str, str]:
        """(final_text, rationale); final_text must be non-empty."""
        data = extract_json_object(response)
        final_text = require_str(data, "final_text")
        rationale = optional_str(data, "rationale", "synthesized by oracle")
        return final_text, rationale


def format_failure(result: SubResult) -> str:
    return f"Sorry, the request could not be completed: {result.failure_reason}"


def fallback_join(sub_results: List[SubResult]) -> str:
    """Deterministic merge used when synthesis is unavailable."""
    outputs = [r.output for r in sub_results if r.succeeded]
    failures = [r for r in sub_results if not r.succeeded]

    if not outputs:
        return ALL_FAILED_MESSAGE

    text = "\n\n".join(outputs)
    if failures:
        reasons = "; ".join(f"{r.text} ({r.failure_reason})" for r in failures)
        text += f"\n\n{len(failures)} sub-queries failed: {reasons}"
    return text
