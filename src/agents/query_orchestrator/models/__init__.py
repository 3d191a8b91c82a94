"""Query Orchestrator data models"""

from .orchestration_models import (
    AggregationOutcome,
    DecompositionOutcome,
    DomainSelection,
    ExecutionSummary,
    OrchestrationResult,
    OrchestrationStage,
    QueryAnalysis,
    RouteOutcome,
    SubRequest,
    SubRequestKind,
    SubResult,
    new_sub_request_id,
)

__all__ = [
    "SubRequestKind",
    "OrchestrationStage",
    "SubRequest",
    "DecompositionOutcome",
    "DomainSelection",
    "RouteOutcome",
    "SubResult",
    "ExecutionSummary",
    "AggregationOutcome",
    "QueryAnalysis",
    "OrchestrationResult",
    "new_sub_request_id",
]
