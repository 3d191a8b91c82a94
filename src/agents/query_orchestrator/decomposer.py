"""
Query Orchestrator - Decomposer
Version: 1.0
Purpose: Split one request into typed, independently answerable sub-requests
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from .classifier import INTENT_KEYWORDS, HeuristicClassifier
from .exceptions import OracleUnavailable
from .models.orchestration_models import (
    DecompositionOutcome,
    SubRequest,
    SubRequestKind,
    new_sub_request_id,
)
from .oracle import Oracle, call_oracle, extract_json_object, optional_str, require_str
from .prompts import DECOMPOSITION_PROMPT, DECOMPOSITION_SYSTEM_PROMPT, format_kinds

logger = logging.getLogger(__name__)

_KIND_VALUES = {kind.value: kind for kind in SubRequestKind}


# ============================================================================
# DECOMPOSER CLASS
# ============================================================================


class QueryDecomposer:
    """
    Decomposes a composite request into SubRequests.

    decompose() never raises: oracle failures and contract violations
    degrade to a single KnowledgeQuery wrapping the original text.
    """

    def __init__(
        self,
        oracle: Oracle,
        intent_classifier: Optional[HeuristicClassifier] = None,
        max_sub_requests: int = 6,
        fallback_confidence: float = 0.5,
        timeout_seconds: Optional[float] = None,
    ):
        self.oracle = oracle
        self.intent_classifier = intent_classifier or HeuristicClassifier(
            INTENT_KEYWORDS, default_category=SubRequestKind.KNOWLEDGE_QUERY.value
        )
        self.max_sub_requests = max_sub_requests
        self.fallback_confidence = fallback_confidence
        self.timeout_seconds = timeout_seconds

    async def decompose(self, text: str) -> DecompositionOutcome:
        """
        Decompose a request into sub-requests.

        Args:
            text: The original user request

        Returns:
            DecompositionOutcome sorted by priority (stable)
        """
        logger.info(f"Decomposing request: {text[:100]}...")

        try:
            response = await call_oracle(
                self.oracle,
                self.build_prompt(text),
                system=DECOMPOSITION_SYSTEM_PROMPT,
                timeout_seconds=self.timeout_seconds,
            )
            outcome = self.parse(response, text)
        except OracleUnavailable as e:
            logger.warning(f"Decomposition degraded to single request: {e}")
            return self.fallback(text, str(e))

        logger.info(f"Decomposed into {outcome.request_count} sub-requests")
        return outcome

    def build_prompt(self, text: str) -> str:
        return DECOMPOSITION_PROMPT.format(query=text, kinds=format_kinds())

    def parse(self, response: str, original_text: str) -> DecompositionOutcome:
        """
        Validate the oracle's decomposition and build the outcome.

        Raises:
            OracleUnavailable: on any contract violation
        """
        data = extract_json_object(response)

        raw_requests = data.get("sub_requests")
        if not isinstance(raw_requests, list) or not raw_requests:
            raise OracleUnavailable(
                "Field 'sub_requests' missing or empty", raw_response=response
            )

        sub_requests = [self._build_sub_request(raw, i) for i, raw in enumerate(raw_requests)]

        seen: set = set()
        for position, sub_request in enumerate(sub_requests):
            if sub_request.id in seen:
                fresh_id = new_sub_request_id()
                logger.debug(f"Duplicate sub-request id {sub_request.id!r}, reassigned to {fresh_id}")
                sub_requests[position] = sub_request.model_copy(update={"id": fresh_id})
            seen.add(sub_requests[position].id)

        # sorted() is stable: equal priorities keep emission order
        sub_requests = sorted(sub_requests, key=lambda sr: sr.priority)

        if len(sub_requests) > self.max_sub_requests:
            logger.warning(
                f"Too many sub-requests ({len(sub_requests)}), "
                f"truncating to {self.max_sub_requests}"
            )
            sub_requests = sub_requests[: self.max_sub_requests]

        return DecompositionOutcome(
            original_text=original_text,
            sub_requests=sub_requests,
            rationale=optional_str(data, "rationale", "decomposition complete"),
        )

    def _build_sub_request(self, raw: Any, index: int) -> SubRequest:
        if not isinstance(raw, dict):
            raise OracleUnavailable(f"Sub-request {index + 1} is not an object")

        text = require_str(raw, "text")

        kind = self._resolve_kind(raw.get("kind"), text, index)

        priority = raw.get("priority", index + 1)
        if isinstance(priority, bool) or not isinstance(priority, int):
            raise OracleUnavailable(f"Sub-request {index + 1} has a non-integer priority")

        confidence = raw.get("confidence", 0.8)
        if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
            raise OracleUnavailable(f"Sub-request {index + 1} has a non-numeric confidence")

        raw_id = raw.get("id")
        sub_id = raw_id if isinstance(raw_id, str) and raw_id.strip() else new_sub_request_id()

        return SubRequest(
            id=sub_id,
            text=text,
            kind=kind,
            priority=priority,
            confidence=max(0.0, min(1.0, float(confidence))),
            rationale=optional_str(raw, "rationale", f"sub-request {index + 1}"),
        )

    def _resolve_kind(self, raw_kind: Any, text: str, index: int) -> SubRequestKind:
        if raw_kind is None:
            inferred = self.intent_classifier.best_match(text)
            logger.debug(
                f"Sub-request {index + 1} missing kind, inferred {inferred.category} "
                f"({inferred.rationale})"
            )
            return _KIND_VALUES.get(inferred.category, SubRequestKind.KNOWLEDGE_QUERY)

        if not isinstance(raw_kind, str) or raw_kind not in _KIND_VALUES:
            raise OracleUnavailable(f"Sub-request {index + 1} has unknown kind: {raw_kind!r}")
        return _KIND_VALUES[raw_kind]

    def fallback(self, text: str, cause: str) -> DecompositionOutcome:
        """Single KnowledgeQuery wrapping the whole request verbatim."""
        return DecompositionOutcome(
            original_text=text,
            sub_requests=[
                SubRequest(
                    id="fallback-1",
                    text=text,
                    kind=SubRequestKind.KNOWLEDGE_QUERY,
                    priority=1,
                    confidence=self.fallback_confidence,
                    rationale="decomposition failed, handled as a single knowledge query",
                )
            ],
            rationale=f"decomposition fallback: {cause}",
        )


def describe_outcome(outcome: DecompositionOutcome) -> Dict[str, Any]:
    """Compact view of a decomposition for log lines"""
    return {
        "is_composite": outcome.is_composite,
        "sub_requests": [(sr.id, sr.kind.value, sr.priority) for sr in outcome.sub_requests],
    }
