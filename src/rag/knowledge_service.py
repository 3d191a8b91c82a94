"""Knowledge retrieval service client.

The knowledge service hosts one vector index per domain and answers a
natural-language query against a chosen domain. This module defines the
narrow contract the orchestrator depends on and an HTTP implementation.

Usage:
------
    from src.rag import HTTPKnowledgeService, KnowledgeServiceConfig

    service = HTTPKnowledgeService(KnowledgeServiceConfig.from_env())
    await service.initialize()
    try:
        answer = await service.query("What was the CPI in April?", "price_index_statistics")
    finally:
        await service.close()
"""

import logging
import time
from typing import Any, Dict, Optional, Protocol, runtime_checkable

import httpx
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.rag.config import KnowledgeServiceConfig
from src.rag.exceptions import RetrieverError

logger = logging.getLogger(__name__)


@runtime_checkable
class KnowledgeService(Protocol):
    """query(text, domain) -> answer text; raises on retrieval failure."""

    async def query(self, text: str, domain: str) -> str:
        ...


class _RetryableStatus(Exception):
    """Internal marker for 5xx responses worth retrying."""

    def __init__(self, response: httpx.Response):
        super().__init__(f"HTTP {response.status_code}")
        self.response = response


class HTTPKnowledgeService:
    """HTTP implementation of the KnowledgeService contract.

    Stateless per call apart from the pooled httpx client, so a single
    instance is safe to share across concurrent sub-tasks.

    Endpoint contract:
        POST {base_url}/query
        {"query": str, "collection": str, "similarity_top_k": int}
        -> {"response": str, ...}
    """

    def __init__(
        self,
        config: Optional[KnowledgeServiceConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or KnowledgeServiceConfig.from_env()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def initialize(self) -> httpx.AsyncClient:
        """Create the pooled HTTP client, or return the existing one."""
        if self._client is not None:
            return self._client

        self.config.validate()
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"

        self._client = httpx.AsyncClient(
            base_url=self.config.base_url or "",
            timeout=httpx.Timeout(self.config.timeout_seconds),
            limits=httpx.Limits(
                max_connections=self.config.max_connections,
                max_keepalive_connections=max(1, self.config.max_connections // 2),
            ),
            headers=headers,
            transport=self._transport,
        )
        logger.debug(f"HTTPKnowledgeService initialized for {self.config.base_url}")
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.debug("HTTPKnowledgeService closed")

    async def query(self, text: str, domain: str) -> str:
        """Answer text from one domain's index.

        Raises:
            RetrieverError: service unreachable, non-2xx, or malformed body
        """
        client = await self.initialize()

        payload = {
            "query": text,
            "collection": self.config.collection_for(domain),
            "similarity_top_k": self.config.similarity_top_k,
        }
        start_time = time.perf_counter()

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.config.max_retries + 1),
                wait=wait_exponential(multiplier=self.config.retry_backoff_seconds, max=5),
                retry=retry_if_exception_type((httpx.RequestError, _RetryableStatus)),
                reraise=False,
            ):
                with attempt:
                    response = await client.post("/query", json=payload)
                    if response.status_code >= 500:
                        raise _RetryableStatus(response)
        except RetryError as e:
            cause = e.last_attempt.exception()
            raise RetrieverError(
                f"Knowledge service unavailable: {cause}",
                domain=domain,
                query=text,
                original_error=cause if isinstance(cause, Exception) else None,
            ) from e

        if response.status_code >= 400:
            raise RetrieverError(
                f"Knowledge service returned HTTP {response.status_code}",
                domain=domain,
                query=text,
                status_code=response.status_code,
            )

        try:
            body: Dict[str, Any] = response.json()
        except ValueError as e:
            raise RetrieverError(
                "Knowledge service returned invalid JSON", domain=domain, query=text, original_error=e
            ) from e

        answer = body.get("response") if isinstance(body, dict) else None
        if not isinstance(answer, str):
            raise RetrieverError(
                "Knowledge service response has no 'response' text", domain=domain, query=text
            )

        latency_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(f"Queried domain {domain} in {latency_ms:.0f}ms ({len(answer)} chars)")
        return answer

    async def health_check(self) -> Dict[str, Any]:
        """Report reachability of the knowledge service."""
        client = await self.initialize()

        try:
            response = await client.get("/health", timeout=5.0)
            response.raise_for_status()
            return {"status": "healthy", "endpoint": self.config.base_url}
        except httpx.HTTPError as e:
            return {"status": "unhealthy", "endpoint": self.config.base_url, "error": str(e)}
