"""
Knowledge retrieval collaborator.

The orchestrator reaches the knowledge base through one call,
query(text, domain) -> text. Index build, embeddings and vector storage
live behind the knowledge service and are not part of this package.

Key Components:
- KnowledgeService: Protocol the domain router depends on
- HTTPKnowledgeService: httpx client with tenacity retries
- KnowledgeServiceConfig: Connection and retrieval settings
"""

from src.rag.config import KnowledgeServiceConfig
from src.rag.exceptions import ConfigurationError, RAGError, RetrieverError
from src.rag.knowledge_service import HTTPKnowledgeService, KnowledgeService

__all__ = [
    "KnowledgeService",
    "HTTPKnowledgeService",
    "KnowledgeServiceConfig",
    "RAGError",
    "RetrieverError",
    "ConfigurationError",
]
