"""
Query Orchestrator - Knowledge Domain Registry
Version: 1.0
Purpose: Knowledge domains as data, shared by the heuristic scorer and the
         oracle prompt builder
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

import yaml

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KnowledgeDomain:
    """One named partition of the knowledge base"""

    key: str
    name: str
    description: str
    keywords: Tuple[str, ...] = field(default_factory=tuple)
    collection_name: Optional[str] = None

    @property
    def collection(self) -> str:
        return self.collection_name or self.key

    def to_dict(self) -> Dict[str, object]:
        return {
            "key": self.key,
            "name": self.name,
            "description": self.description,
            "keywords": list(self.keywords),
            "collection_name": self.collection,
        }


# ============================================================================
# BUILT-IN DOMAINS
# ============================================================================

DEFAULT_DOMAINS: Tuple[KnowledgeDomain, ...] = (
    KnowledgeDomain(
        key="machine_learning",
        name="Machine learning course content",
        description=(
            "Machine learning course transcripts covering algorithms, model "
            "training, data processing, feature engineering and evaluation. "
            "Use for questions about ML algorithms, dataset splits, metrics "
            "and hyperparameter tuning."
        ),
        keywords=(
            "machine learning",
            "deep learning",
            "neural network",
            "logistic regression",
            "linear regression",
            "gradient descent",
            "overfitting",
            "regularization",
            "hyperparameter",
            "cross validation",
            "training set",
            "test set",
            "feature",
            "model",
            "algorithm",
            "classifier",
            "loss",
            "机器学习",
            "深度学习",
            "神经网络",
            "梯度下降",
            "过拟合",
            "训练集",
            "测试集",
            "模型",
            "算法",
        ),
        collection_name="machine_learning_documents",
    ),
    KnowledgeDomain(
        key="price_index_statistics",
        name="Price index statistics",
        description=(
            "Price index statistics including CPI, PPI and other macroeconomic "
            "indicators with historical values. Use for questions about price "
            "changes, inflation, economic indicators and price trends."
        ),
        keywords=(
            "consumer price index",
            "producer price index",
            "price index",
            "inflation",
            "deflation",
            "year-on-year",
            "month-on-month",
            "cpi",
            "ppi",
            "price",
            "economy",
            "居民消费价格指数",
            "工业生产者出厂价格指数",
            "价格指数",
            "通胀",
            "同比",
            "环比",
            "价格",
        ),
        collection_name="price_index_statistics",
    ),
)


# ============================================================================
# REGISTRY
# ============================================================================


class DomainRegistry:
    """
    Read-only collection of knowledge domains.

    Adding a domain is a data change: the heuristic scorer and the oracle
    prompt both enumerate whatever is registered here.
    """

    def __init__(self, domains: Sequence[KnowledgeDomain] = DEFAULT_DOMAINS):
        if not domains:
            raise ConfigurationError("At least one knowledge domain must be registered")

        self._domains: Dict[str, KnowledgeDomain] = {}
        for domain in domains:
            if domain.key in self._domains:
                raise ConfigurationError(f"Duplicate domain key: {domain.key}")
            self._domains[domain.key] = domain

    def __contains__(self, key: object) -> bool:
        return key in self._domains

    def __iter__(self) -> Iterator[KnowledgeDomain]:
        return iter(self._domains.values())

    def __len__(self) -> int:
        return len(self._domains)

    def get(self, key: str) -> Optional[KnowledgeDomain]:
        return self._domains.get(key)

    def keys(self) -> List[str]:
        return list(self._domains.keys())

    def keyword_table(self) -> Dict[str, Tuple[str, ...]]:
        """Domain key -> keywords, the input of the heuristic classifier"""
        return {key: domain.keywords for key, domain in self._domains.items()}

    def describe(self) -> List[Dict[str, object]]:
        return [domain.to_dict() for domain in self._domains.values()]

    @classmethod
    def from_yaml(cls, path: str) -> "DomainRegistry":
        """Load domains from a YAML file.

        Expected shape:
            domains:
              - key: machine_learning
                name: ...
                description: ...
                keywords: [...]
                collection_name: ...

        Falls back to the built-in domains when the file does not exist.
        """
        config_path = Path(path)
        if not config_path.exists():
            logger.warning(f"Domain config not found: {path}, using built-in domains")
            return cls()

        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        raw_domains = data.get("domains", [])
        if not isinstance(raw_domains, list):
            raise ConfigurationError(f"'domains' must be a list in {path}")

        domains = []
        for entry in raw_domains:
            try:
                domains.append(
                    KnowledgeDomain(
                        key=entry["key"],
                        name=entry.get("name", entry["key"]),
                        description=entry.get("description", ""),
                        keywords=tuple(str(k).lower() for k in entry.get("keywords", [])),
                        collection_name=entry.get("collection_name"),
                    )
                )
            except (KeyError, TypeError, AttributeError) as e:
                raise ConfigurationError(
                    f"Invalid domain entry in {path}: {entry!r}", original_error=e
                ) from e

        logger.info(f"Loaded {len(domains)} domains from {path}")
        return cls(domains)
