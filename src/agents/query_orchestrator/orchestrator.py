"""
Query Orchestrator - Main Pipeline
Version: 1.0
Purpose: Decompose -> execute -> aggregate, never failing outward

Pipeline:
    DECOMPOSE - Split the request into typed sub-requests
    EXECUTE   - Run every sub-request concurrently through its handler
    AGGREGATE - Merge sub-results into one final answer

Each stage degrades in place on its own failures. Anything unexpected is
caught here and turned into a well-formed degraded result.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence
from uuid import uuid4

from src.rag.config import KnowledgeServiceConfig
from src.rag.knowledge_service import HTTPKnowledgeService, KnowledgeService
from src.tools.weather import WeatherClient
from src.utils.logging_config import request_context, timed_operation

from .aggregator import ResultAggregator
from .classifier import OracleClassifier
from .config import OrchestratorConfig
from .decomposer import QueryDecomposer, describe_outcome
from .domains import DomainRegistry
from .exceptions import InternalOrchestrationFailure
from .executor import SubTaskExecutor
from .handlers import build_handlers
from .models.orchestration_models import (
    AggregationOutcome,
    DecompositionOutcome,
    ExecutionSummary,
    OrchestrationResult,
    OrchestrationStage,
    RouteOutcome,
)
from .oracle import Oracle
from .router import DomainRouter

logger = logging.getLogger(__name__)

INTERNAL_FAILURE_MESSAGE = "Sorry, an internal error occurred while processing your request."


# ============================================================================
# ORCHESTRATOR CLASS
# ============================================================================


class QueryOrchestrator:
    """
    Runs the three-stage pipeline for one request at a time.

    Components are constructed once and shared read-only across concurrent
    calls; all request state lives in locals of process_query.

    Usage:
        orchestrator = build_orchestrator(oracle=get_oracle())
        result = await orchestrator.process_query(
            "What is the PPI this month? Also compute 123*456"
        )
        print(result.final_text)
    """

    def __init__(
        self,
        decomposer: QueryDecomposer,
        executor: SubTaskExecutor,
        aggregator: ResultAggregator,
        router: Optional[DomainRouter] = None,
    ):
        self.decomposer = decomposer
        self.executor = executor
        self.aggregator = aggregator
        self.router = router

    async def process_query(self, text: str) -> OrchestrationResult:
        """
        Answer one request.

        Args:
            text: The user's request, possibly mixing several intents

        Returns:
            OrchestrationResult; always well-formed, never raises
        """
        request_id = f"req_{uuid4().hex[:8]}"
        phase_durations: Dict[str, int] = {}
        stage = OrchestrationStage.RECEIVED

        with request_context(request_id):
            logger.info(f"Processing query: {text[:100]}")
            try:
                stage = OrchestrationStage.DECOMPOSING
                with timed_operation("decompose", logger) as timer:
                    decomposition = await self.decomposer.decompose(text)
                phase_durations["decompose"] = int(timer.duration_ms)
                logger.debug(f"Decomposition: {describe_outcome(decomposition)}")

                stage = OrchestrationStage.EXECUTING
                with timed_operation("execute", logger) as timer:
                    sub_results = await self.executor.execute_all(decomposition.sub_requests)
                phase_durations["execute"] = int(timer.duration_ms)

                stage = OrchestrationStage.AGGREGATING
                with timed_operation("aggregate", logger) as timer:
                    aggregation = await self.aggregator.aggregate(text, sub_results)
                phase_durations["aggregate"] = int(timer.duration_ms)

            except Exception as e:
                logger.exception(f"Unexpected error while {stage.value}: {e}")
                error = InternalOrchestrationFailure(
                    f"{type(e).__name__}: {e}", stage=stage.value, original_error=e
                )
                return self._create_degraded_result(request_id, text, error, phase_durations)

            logger.info(
                f"Query complete: {aggregation.summary.succeeded}/{aggregation.summary.total} "
                f"sub-requests succeeded"
            )
            return OrchestrationResult(
                request_id=request_id,
                text=text,
                final_text=aggregation.final_text,
                decomposition=decomposition,
                sub_results=sub_results,
                aggregation=aggregation,
                summary=aggregation.summary,
                stage=OrchestrationStage.COMPLETED,
                phase_durations=phase_durations,
            )

    def _create_degraded_result(
        self,
        request_id: str,
        text: str,
        error: InternalOrchestrationFailure,
        phase_durations: Dict[str, int],
    ) -> OrchestrationResult:
        """Empty decomposition and sub-results, final text naming the failure"""
        reason = error.as_failure_reason()
        summary = ExecutionSummary()
        return OrchestrationResult(
            request_id=request_id,
            text=text,
            final_text=INTERNAL_FAILURE_MESSAGE,
            decomposition=DecompositionOutcome(
                original_text=text, sub_requests=[], rationale=reason
            ),
            sub_results=[],
            aggregation=AggregationOutcome(
                final_text=INTERNAL_FAILURE_MESSAGE,
                rationale=f"internal failure during {error.stage}",
                summary=summary,
                used_fallback=True,
            ),
            summary=summary,
            stage=OrchestrationStage.COMPLETED,
            degraded=True,
            error=reason,
            phase_durations=phase_durations,
        )

    # ========================================================================
    # DOMAIN OPERATIONS
    # ========================================================================

    def list_domains(self) -> List[Dict[str, Any]]:
        """Key, name and description of every registered knowledge domain"""
        if self.router is None:
            return []
        return [
            {"key": d.key, "name": d.name, "description": d.description}
            for d in self.router.registry
        ]

    async def cross_domain_query(
        self, text: str, domains: Optional[Sequence[str]] = None
    ) -> List[RouteOutcome]:
        """Ask the same question of several knowledge domains concurrently."""
        if self.router is None:
            raise InternalOrchestrationFailure("No domain router configured")
        with request_context(f"req_{uuid4().hex[:8]}"):
            return await self.router.cross_domain_query(text, domains)

    async def aclose(self) -> None:
        """Release pooled connections held by the knowledge service."""
        if self.router is None:
            return
        close = getattr(self.router.knowledge_service, "close", None)
        if close is not None:
            await close()
            logger.debug("Knowledge service connections closed")


# ============================================================================
# FACTORY
# ============================================================================


def build_orchestrator(
    oracle: Oracle,
    config: Optional[OrchestratorConfig] = None,
    knowledge_service: Optional[KnowledgeService] = None,
    weather_client: Optional[WeatherClient] = None,
    registry: Optional[DomainRegistry] = None,
    classifier_oracle: Optional[Oracle] = None,
) -> QueryOrchestrator:
    """
    Wire the pipeline components.

    Args:
        oracle: Language model for decomposition and aggregation
        config: Thresholds and timeouts (defaults when omitted)
        knowledge_service: Retrieval collaborator (HTTP client from env when omitted)
        weather_client: Weather lookup client (configured from env when omitted)
        registry: Knowledge domains (YAML at config.domains_config_path, else built-in)
        classifier_oracle: Language model for domain classification (oracle when omitted)
    """
    config = config or OrchestratorConfig()
    if registry is None:
        registry = (
            DomainRegistry.from_yaml(config.domains_config_path)
            if config.domains_config_path
            else DomainRegistry()
        )

    if knowledge_service is None:
        service_config = KnowledgeServiceConfig.from_env()
        service_config.collections = {d.key: d.collection for d in registry}
        knowledge_service = HTTPKnowledgeService(service_config)

    router = DomainRouter(
        registry=registry,
        knowledge_service=knowledge_service,
        oracle_classifier=OracleClassifier(
            classifier_oracle or oracle,
            categories={d.key: d.description for d in registry},
            timeout_seconds=config.oracle_timeout_seconds,
        ),
        config=config,
    )

    handlers = build_handlers(
        router,
        weather_client or WeatherClient(),
        fallback_city=config.fallback_city,
    )

    return QueryOrchestrator(
        decomposer=QueryDecomposer(
            oracle,
            max_sub_requests=config.max_sub_requests,
            fallback_confidence=config.fallback_confidence,
            timeout_seconds=config.oracle_timeout_seconds,
        ),
        executor=SubTaskExecutor(
            handlers,
            max_concurrency=config.max_concurrency,
            task_timeout_seconds=config.task_timeout_seconds,
        ),
        aggregator=ResultAggregator(oracle, timeout_seconds=config.oracle_timeout_seconds),
        router=router,
    )


# ============================================================================
# SYNC WRAPPER
# ============================================================================


def process_query_sync(orchestrator: QueryOrchestrator, text: str) -> OrchestrationResult:
    """Synchronous wrapper for scripts and notebooks."""
    return asyncio.run(orchestrator.process_query(text))
