"""
Query Orchestration API Endpoints
=================================

FastAPI endpoints for intelligent, multi-intent query answering.

Provides:
- Composite query answering (decompose, fan out, aggregate)
- Cross-domain knowledge queries
- Knowledge domain listing

Integration Points:
- QueryOrchestrator (src/agents/query_orchestrator/orchestrator.py)
- DomainRouter (src/agents/query_orchestrator/router.py)

Version: 1.0.0
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, field_validator

from src.agents.query_orchestrator import (
    OrchestratorConfig,
    QueryOrchestrator,
    build_orchestrator,
)
from src.utils.llm_factory import get_oracle

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/query", tags=["Query Orchestration"])


# =============================================================================
# REQUEST/RESPONSE MODELS
# =============================================================================


class QueryRequest(BaseModel):
    """Free-form request, possibly mixing several intents."""

    query: str = Field(..., min_length=1, max_length=4000, description="Natural language request")

    @field_validator("query")
    @classmethod
    def query_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("query must not be blank")
        return value.strip()

    model_config = {
        "json_schema_extra": {
            "example": {
                "query": "What is the PPI this month? Also compute 123*456, and what's the weather in Beijing?"
            }
        }
    }


class CrossDomainRequest(QueryRequest):
    """Knowledge question asked of several domains."""

    domains: Optional[List[str]] = Field(
        None, description="Domain keys to query; all registered domains when omitted"
    )


class CrossDomainResult(BaseModel):
    domain: str
    response: str
    confidence: float
    reasoning: str
    retrievalFailed: bool = False


class ApiEnvelope(BaseModel):
    """Uniform success envelope."""

    success: bool = True
    data: Any
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# =============================================================================
# DEPENDENCIES
# =============================================================================

_orchestrator: Optional[QueryOrchestrator] = None


def get_orchestrator() -> QueryOrchestrator:
    """Dependency injection for the shared orchestrator."""
    global _orchestrator
    if _orchestrator is None:
        config = OrchestratorConfig.from_env()
        _orchestrator = build_orchestrator(
            oracle=get_oracle(model_tier="standard"),
            classifier_oracle=get_oracle(model_tier="fast"),
            config=config,
        )
        logger.info("Query orchestrator initialized")
    return _orchestrator


async def shutdown_orchestrator() -> None:
    """Close the shared orchestrator, if one was built. Called on app shutdown."""
    global _orchestrator
    if _orchestrator is not None:
        await _orchestrator.aclose()
        _orchestrator = None


# =============================================================================
# ENDPOINTS
# =============================================================================


@router.post(
    "",
    response_model=ApiEnvelope,
    summary="Answer a composite query",
    description="""
    Decompose the request into sub-requests (knowledge questions, arithmetic,
    weather lookups), execute them concurrently and merge the results.

    Always answers: partial and total failures are explained in the
    response text and in `subResults[].error`.
    """,
)
async def process_query(
    request: QueryRequest,
    orchestrator: QueryOrchestrator = Depends(get_orchestrator),
) -> ApiEnvelope:
    result = await orchestrator.process_query(request.query)
    return ApiEnvelope(data=result.to_response())


@router.post(
    "/cross-domain",
    response_model=ApiEnvelope,
    summary="Ask one question across knowledge domains",
)
async def cross_domain_query(
    request: CrossDomainRequest,
    orchestrator: QueryOrchestrator = Depends(get_orchestrator),
) -> ApiEnvelope:
    outcomes = await orchestrator.cross_domain_query(request.query, request.domains)
    results = [
        CrossDomainResult(
            domain=o.domain,
            response=o.output,
            confidence=o.confidence,
            reasoning=o.rationale,
            retrievalFailed=o.retrieval_failed,
        )
        for o in outcomes
    ]
    return ApiEnvelope(data={"query": request.query, "results": results})


@router.get(
    "/domains",
    response_model=ApiEnvelope,
    summary="List knowledge domains",
)
async def list_domains(
    orchestrator: QueryOrchestrator = Depends(get_orchestrator),
) -> ApiEnvelope:
    domains: List[Dict[str, Any]] = orchestrator.list_domains()
    return ApiEnvelope(data={"domains": domains, "total": len(domains)})
