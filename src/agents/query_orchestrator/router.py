"""
Query Orchestrator - Domain Router
Version: 1.0
Purpose: Pick a knowledge domain for a knowledge query and retrieve the answer

Decision ladder (first success wins):
1. Caller-supplied domain hint, if registered
2. Heuristic keyword argmax, if its score exceeds the threshold
3. Oracle-backed classifier restricted to the registered domains
4. Configured default domain
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Sequence

from src.rag.knowledge_service import KnowledgeService

from .classifier import HeuristicClassifier, OracleClassifier
from .config import OrchestratorConfig
from .domains import DomainRegistry
from .exceptions import ConfigurationError, OracleUnavailable, RetrievalFailed
from .models.orchestration_models import DomainSelection, RouteOutcome, SubRequest

logger = logging.getLogger(__name__)


class DomainRouter:
    """
    Routes knowledge queries to one registered domain.

    Holds only read-only state (registry, classifiers, config); one
    instance serves every concurrent request.
    """

    def __init__(
        self,
        registry: DomainRegistry,
        knowledge_service: KnowledgeService,
        oracle_classifier: Optional[OracleClassifier] = None,
        config: Optional[OrchestratorConfig] = None,
    ):
        self.registry = registry
        self.knowledge_service = knowledge_service
        self.oracle_classifier = oracle_classifier
        self.config = config or OrchestratorConfig()

        if self.config.default_domain not in registry:
            raise ConfigurationError(
                f"Default domain '{self.config.default_domain}' is not registered"
            )

        self.heuristic = HeuristicClassifier(
            registry.keyword_table(), default_category=self.config.default_domain
        )

    # ========================================================================
    # DOMAIN SELECTION
    # ========================================================================

    async def select_domain(self, text: str, domain_hint: Optional[str] = None) -> DomainSelection:
        """Run the decision ladder for one piece of text."""
        if domain_hint is not None:
            if domain_hint in self.registry:
                return DomainSelection(
                    domain=domain_hint,
                    confidence=self.config.hint_confidence,
                    rationale="hint accepted",
                )
            logger.debug(f"Ignoring unregistered domain hint: {domain_hint}")

        heuristic = self.heuristic.best_match(text)
        if heuristic.confidence > self.config.domain_confidence_threshold:
            return DomainSelection(
                domain=heuristic.category,
                confidence=min(heuristic.confidence, self.config.heuristic_confidence_cap),
                rationale=heuristic.rationale,
            )

        if self.oracle_classifier is None:
            return self._default_selection("no oracle classifier configured")

        try:
            result = await self.oracle_classifier.classify(text)
        except OracleUnavailable as e:
            logger.warning(f"Domain classification degraded to default: {e}")
            return self._default_selection(f"oracle classification failed: {e.message}")

        return DomainSelection(
            domain=result.category,
            confidence=result.confidence,
            rationale=result.rationale,
        )

    def _default_selection(self, cause: str) -> DomainSelection:
        return DomainSelection(
            domain=self.config.default_domain,
            confidence=self.config.default_domain_confidence,
            rationale=f"default domain used, {cause}",
        )

    # ========================================================================
    # RETRIEVAL
    # ========================================================================

    async def route(
        self, sub_request: SubRequest, domain_hint: Optional[str] = None
    ) -> RouteOutcome:
        """
        Select a domain and query it.

        Retrieval errors are reported inside output text, never raised.
        """
        selection = await self.select_domain(sub_request.text, domain_hint)
        logger.info(
            f"Routing {sub_request.id} to {selection.domain} "
            f"(confidence {selection.confidence:.2f}): {selection.rationale}"
        )
        return await self._retrieve(sub_request.text, selection)

    async def _retrieve(self, text: str, selection: DomainSelection) -> RouteOutcome:
        try:
            output = await self._query(text, selection.domain)
        except RetrievalFailed as e:
            logger.warning(f"Retrieval from {selection.domain} failed: {e.message}")
            return RouteOutcome(
                output=format_retrieval_failure(selection.domain, e),
                domain=selection.domain,
                rationale=selection.rationale,
                confidence=selection.confidence,
                retrieval_failed=True,
            )

        return RouteOutcome(
            output=output,
            domain=selection.domain,
            rationale=selection.rationale,
            confidence=selection.confidence,
        )

    async def _query(self, text: str, domain: str) -> str:
        try:
            return await self.knowledge_service.query(text, domain)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise RetrievalFailed(str(e) or type(e).__name__, domain=domain, original_error=e) from e

    async def cross_domain_query(
        self, text: str, domains: Optional[Sequence[str]] = None
    ) -> List[RouteOutcome]:
        """
        Query several domains concurrently.

        Args:
            text: The knowledge question
            domains: Domain keys to query, all registered domains when omitted

        Returns:
            One RouteOutcome per known domain, in the requested order
        """
        requested = list(domains) if domains is not None else self.registry.keys()
        targets = []
        for key in requested:
            if key in self.registry:
                targets.append(key)
            else:
                logger.warning(f"Skipping unknown domain in cross-domain query: {key}")

        logger.info(f"Cross-domain query over {len(targets)} domains")

        selections = [
            DomainSelection(
                domain=key,
                confidence=self.config.cross_domain_confidence,
                rationale=f"cross-domain query: {key}",
            )
            for key in targets
        ]
        return list(await asyncio.gather(*(self._retrieve(text, s) for s in selections)))


def format_retrieval_failure(domain: str, error: RetrievalFailed) -> str:
    return f"Knowledge retrieval from '{domain}' failed: {error.message}"
