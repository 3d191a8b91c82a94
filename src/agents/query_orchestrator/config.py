"""
Query Orchestrator - Configuration

Thresholds and timeouts are configurable parameters rather than constants:
their values are product decisions, not part of the routing algorithm.
"""

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .exceptions import ConfigurationError


def _optional_env(name: str) -> Optional[str]:
    value = os.getenv(name)
    return value or None


@dataclass
class OrchestratorConfig:
    """
    Configuration for the orchestration pipeline.

    Controls routing thresholds, degraded-path confidences, fan-out limits
    and per-call timeouts.
    """

    # Domain routing
    domain_confidence_threshold: float = 0.6
    heuristic_confidence_cap: float = 0.95
    hint_confidence: float = 0.9
    default_domain: str = "price_index_statistics"
    default_domain_confidence: float = 0.4
    cross_domain_confidence: float = 0.8

    # Decomposition
    fallback_confidence: float = 0.5
    max_sub_requests: int = 6

    # Weather
    fallback_city: str = "Beijing"

    # Fan-out
    max_concurrency: int = 8
    task_timeout_seconds: float = 30.0

    # Oracle calls (decompose / classify / aggregate)
    oracle_timeout_seconds: float = 30.0

    # Optional YAML domain registry
    domains_config_path: Optional[str] = None

    def __post_init__(self):
        """Validate on initialization."""
        self.validate()

    def validate(self) -> None:
        """Validate configuration values."""
        for name in (
            "domain_confidence_threshold",
            "heuristic_confidence_cap",
            "hint_confidence",
            "default_domain_confidence",
            "cross_domain_confidence",
            "fallback_confidence",
        ):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(f"{name} must be within [0, 1], got {value}")

        if self.max_sub_requests <= 0:
            raise ConfigurationError("max_sub_requests must be positive")
        if self.max_concurrency <= 0:
            raise ConfigurationError("max_concurrency must be positive")
        if self.task_timeout_seconds <= 0 or self.oracle_timeout_seconds <= 0:
            raise ConfigurationError("timeouts must be positive")
        if not self.default_domain:
            raise ConfigurationError("default_domain must be set")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OrchestratorConfig":
        """Create from dictionary."""
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})

    @classmethod
    def from_env(cls) -> "OrchestratorConfig":
        """Create from environment variables."""
        return cls(
            domain_confidence_threshold=float(os.getenv("ROUTER_CONFIDENCE_THRESHOLD", "0.6")),
            heuristic_confidence_cap=float(os.getenv("ROUTER_HEURISTIC_CAP", "0.95")),
            default_domain=os.getenv("DEFAULT_DOMAIN", "price_index_statistics"),
            fallback_city=os.getenv("WEATHER_DEFAULT_CITY", "Beijing"),
            max_sub_requests=int(os.getenv("DECOMPOSER_MAX_SUB_REQUESTS", "6")),
            max_concurrency=int(os.getenv("SUBTASK_MAX_CONCURRENCY", "8")),
            task_timeout_seconds=float(os.getenv("SUBTASK_TIMEOUT_SECONDS", "30")),
            oracle_timeout_seconds=float(os.getenv("ORACLE_TIMEOUT_SECONDS", "30")),
            domains_config_path=_optional_env("DOMAINS_CONFIG_PATH"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {name: getattr(self, name) for name in self.__dataclass_fields__}
