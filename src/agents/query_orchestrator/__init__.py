"""
Query Orchestrator

Answers free-form requests that may mix several intents (knowledge
questions, arithmetic, weather) in three stages:

    decompose -> execute (concurrent fan-out) -> aggregate

Every stage degrades to a typed fallback on its own failures, and
process_query never raises.

Example:
    from src.agents.query_orchestrator import build_orchestrator
    from src.utils.llm_factory import get_oracle

    orchestrator = build_orchestrator(oracle=get_oracle())
    result = await orchestrator.process_query("12 * 8")
    result.final_text  # "12 × 8 = 96"
"""

from .aggregator import ResultAggregator
from .classifier import Classification, HeuristicClassifier, OracleClassifier
from .config import OrchestratorConfig
from .decomposer import QueryDecomposer
from .domains import DEFAULT_DOMAINS, DomainRegistry, KnowledgeDomain
from .exceptions import (
    ConfigurationError,
    InsufficientOperands,
    InternalOrchestrationFailure,
    LookupFailed,
    OracleUnavailable,
    OrchestrationError,
    RetrievalFailed,
    SubTaskTimeout,
    UnknownSubRequestKind,
)
from .executor import SubTaskExecutor
from .handlers import KnowledgeHandler, WeatherHandler, build_handlers, handle_calculation
from .models import (
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
)
from .oracle import Oracle
from .orchestrator import QueryOrchestrator, build_orchestrator, process_query_sync
from .router import DomainRouter

__all__ = [
    # Pipeline
    "QueryOrchestrator",
    "build_orchestrator",
    "process_query_sync",
    "QueryDecomposer",
    "SubTaskExecutor",
    "ResultAggregator",
    "DomainRouter",
    # Classification
    "Classification",
    "HeuristicClassifier",
    "OracleClassifier",
    "Oracle",
    # Handlers
    "handle_calculation",
    "WeatherHandler",
    "KnowledgeHandler",
    "build_handlers",
    # Configuration
    "OrchestratorConfig",
    "DomainRegistry",
    "KnowledgeDomain",
    "DEFAULT_DOMAINS",
    # Models
    "SubRequest",
    "SubRequestKind",
    "DecompositionOutcome",
    "DomainSelection",
    "RouteOutcome",
    "SubResult",
    "ExecutionSummary",
    "AggregationOutcome",
    "QueryAnalysis",
    "OrchestrationResult",
    "OrchestrationStage",
    # Exceptions
    "OrchestrationError",
    "OracleUnavailable",
    "InsufficientOperands",
    "RetrievalFailed",
    "LookupFailed",
    "SubTaskTimeout",
    "UnknownSubRequestKind",
    "InternalOrchestrationFailure",
    "ConfigurationError",
]
