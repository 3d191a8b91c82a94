"""
Knowledge Retrieval - Configuration Models

- KnowledgeServiceConfig: connection and retrieval parameters for the
  knowledge (vector index) service
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from src.rag.exceptions import ConfigurationError


@dataclass
class KnowledgeServiceConfig:
    """
    Configuration for the HTTP knowledge service.

    The service owns index build, health and connection pooling; this side
    only needs where to send queries and how patiently.
    """

    base_url: Optional[str] = None
    api_key: Optional[str] = None

    # Retrieval
    similarity_top_k: int = 5

    # Resilience
    timeout_seconds: float = 20.0
    max_retries: int = 2
    retry_backoff_seconds: float = 0.5
    max_connections: int = 10

    # Domain key -> collection name overrides
    collections: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        """Load from environment if not provided."""
        if not self.base_url:
            self.base_url = os.getenv("KNOWLEDGE_SERVICE_URL")
        if not self.api_key:
            self.api_key = os.getenv("KNOWLEDGE_SERVICE_API_KEY")

    def validate(self) -> None:
        """Validate configuration."""
        if not self.base_url:
            raise ConfigurationError("KNOWLEDGE_SERVICE_URL must be set")
        if self.similarity_top_k <= 0:
            raise ConfigurationError("similarity_top_k must be positive")
        if self.timeout_seconds <= 0:
            raise ConfigurationError("timeout_seconds must be positive")
        if self.max_retries < 0:
            raise ConfigurationError("max_retries must be >= 0")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KnowledgeServiceConfig":
        """Create from dictionary."""
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})

    @classmethod
    def from_env(cls) -> "KnowledgeServiceConfig":
        """Create from environment variables."""
        return cls(
            base_url=os.getenv("KNOWLEDGE_SERVICE_URL"),
            api_key=os.getenv("KNOWLEDGE_SERVICE_API_KEY"),
            similarity_top_k=int(os.getenv("RETRIEVAL_TOP_K", "5")),
            timeout_seconds=float(os.getenv("KNOWLEDGE_SERVICE_TIMEOUT", "20")),
            max_retries=int(os.getenv("KNOWLEDGE_SERVICE_MAX_RETRIES", "2")),
        )

    def collection_for(self, domain: str) -> str:
        return self.collections.get(domain, domain)
