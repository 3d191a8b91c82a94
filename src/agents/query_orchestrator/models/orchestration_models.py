"""
Query Orchestrator - Data Models
Version: 1.0
Purpose: Pydantic models for decomposition, execution and aggregation
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

# ============================================================================
# ENUMS
# ============================================================================


class SubRequestKind(str, Enum):
    """Closed set of sub-request kinds, one handler per kind"""

    KNOWLEDGE_QUERY = "knowledge_query"
    CALCULATION = "math_calculation"
    WEATHER_LOOKUP = "weather_query"


class OrchestrationStage(str, Enum):
    """Lifecycle of a single request"""

    RECEIVED = "received"
    DECOMPOSING = "decomposing"
    EXECUTING = "executing"
    AGGREGATING = "aggregating"
    COMPLETED = "completed"


def new_sub_request_id() -> str:
    return f"sub_{uuid4().hex[:8]}"


# ============================================================================
# DECOMPOSITION MODELS
# ============================================================================


class SubRequest(BaseModel):
    """One atomic unit of work extracted from the original input"""

    id: str = Field(default_factory=new_sub_request_id)
    text: str = Field(..., description="Self-contained payload for this unit")
    kind: SubRequestKind
    priority: int = Field(default=1, description="Lower sorts first; never gates execution")
    confidence: float = Field(..., ge=0.0, le=1.0)
    rationale: str = ""

    model_config = ConfigDict(frozen=True)


class DecompositionOutcome(BaseModel):
    """Result of splitting one request into sub-requests"""

    original_text: str
    sub_requests: List[SubRequest]
    rationale: str = ""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(frozen=True)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_composite(self) -> bool:
        return len(self.sub_requests) > 1

    @property
    def request_count(self) -> int:
        return len(self.sub_requests)

    def mean_confidence(self) -> float:
        """Average sub-request confidence, 0 when there are none"""
        if not self.sub_requests:
            return 0.0
        return sum(sr.confidence for sr in self.sub_requests) / len(self.sub_requests)


# ============================================================================
# ROUTING MODELS
# ============================================================================


class DomainSelection(BaseModel):
    """Which knowledge domain a knowledge query goes to, and why"""

    domain: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    rationale: str


class RouteOutcome(BaseModel):
    """Router output for one knowledge query"""

    output: str
    domain: str
    rationale: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    retrieval_failed: bool = False


# ============================================================================
# EXECUTION MODELS
# ============================================================================


class SubResult(BaseModel):
    """Outcome of executing one SubRequest"""

    id: str
    kind: SubRequestKind
    text: str
    output: str = ""
    succeeded: bool
    failure_reason: Optional[str] = None
    duration_ms: int = Field(default=0, ge=0)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def check_failure_reason(self) -> "SubResult":
        if self.succeeded and self.failure_reason is not None:
            raise ValueError("failure_reason must be absent on a successful result")
        if not self.succeeded and not self.failure_reason:
            raise ValueError("failure_reason is required on a failed result")
        return self

    @classmethod
    def success(cls, request: SubRequest, output: str, duration_ms: int) -> "SubResult":
        return cls(
            id=request.id,
            kind=request.kind,
            text=request.text,
            output=output,
            succeeded=True,
            duration_ms=duration_ms,
        )

    @classmethod
    def failure(cls, request: SubRequest, reason: str, duration_ms: int) -> "SubResult":
        return cls(
            id=request.id,
            kind=request.kind,
            text=request.text,
            output="",
            succeeded=False,
            failure_reason=reason,
            duration_ms=duration_ms,
        )


class ExecutionSummary(BaseModel):
    """Counts and timings reduced from a SubResult set"""

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    total_duration_ms: int = 0

    @classmethod
    def from_results(cls, results: List[SubResult]) -> "ExecutionSummary":
        succeeded = sum(1 for r in results if r.succeeded)
        return cls(
            total=len(results),
            succeeded=succeeded,
            failed=len(results) - succeeded,
            total_duration_ms=sum(r.duration_ms for r in results),
        )

    def to_wire(self) -> Dict[str, int]:
        return {
            "totalSubQueries": self.total,
            "successfulQueries": self.succeeded,
            "failedQueries": self.failed,
            "totalExecutionTime": self.total_duration_ms,
        }


# ============================================================================
# AGGREGATION MODELS
# ============================================================================


class AggregationOutcome(BaseModel):
    """Final merged answer plus how it was produced"""

    final_text: str
    rationale: str
    summary: ExecutionSummary
    used_fallback: bool = False


# ============================================================================
# TOP-LEVEL RESULT
# ============================================================================


class QueryAnalysis(BaseModel):
    """Backwards-compatible analysis block of the wire response"""

    query_type: str
    confidence: float
    reasoning: str

    @classmethod
    def from_decomposition(cls, decomposition: DecompositionOutcome) -> "QueryAnalysis":
        return cls(
            query_type="multi_intent" if decomposition.is_composite else "single_intent",
            confidence=decomposition.mean_confidence(),
            reasoning=decomposition.rationale,
        )


class OrchestrationResult(BaseModel):
    """Complete outcome graph of one process_query call"""

    request_id: str = Field(default_factory=lambda: f"req_{uuid4().hex[:8]}")
    text: str
    final_text: str
    decomposition: DecompositionOutcome
    sub_results: List[SubResult] = Field(default_factory=list)
    aggregation: AggregationOutcome
    summary: ExecutionSummary
    stage: OrchestrationStage = OrchestrationStage.COMPLETED
    degraded: bool = False
    error: Optional[str] = None
    phase_durations: Dict[str, int] = Field(default_factory=dict)

    @property
    def analysis(self) -> QueryAnalysis:
        return QueryAnalysis.from_decomposition(self.decomposition)

    def to_response(self) -> Dict[str, Any]:
        """Convert to the camelCase shape consumed by the HTTP layer"""
        analysis = self.analysis
        return {
            "query": self.text,
            "response": self.final_text,
            "analysis": {
                "queryType": analysis.query_type,
                "confidence": analysis.confidence,
                "reasoning": analysis.reasoning,
            },
            "decomposition": {
                "originalQuery": self.decomposition.original_text,
                "hasMultipleIntents": self.decomposition.is_composite,
                "reasoning": self.decomposition.rationale,
                "subQueries": [
                    {
                        "id": sr.id,
                        "query": sr.text,
                        "type": sr.kind.value,
                        "priority": sr.priority,
                        "confidence": sr.confidence,
                        "reasoning": sr.rationale,
                    }
                    for sr in self.decomposition.sub_requests
                ],
            },
            "subResults": [
                {
                    "id": r.id,
                    "query": r.text,
                    "type": r.kind.value,
                    "response": r.output,
                    "success": r.succeeded,
                    "error": r.failure_reason,
                    "executionTime": r.duration_ms,
                }
                for r in self.sub_results
            ],
            "aggregation": {
                "reasoning": self.aggregation.rationale,
                "usedFallback": self.aggregation.used_fallback,
            },
            "executionSummary": self.summary.to_wire(),
        }
