"""
Shared utilities.

- LLM factory for oracle adapters (Anthropic / OpenAI)
- Structured logging configuration with request context
"""

from src.utils.llm_factory import (
    AnthropicOracle,
    OpenAIOracle,
    get_llm_provider,
    get_oracle,
)
from src.utils.logging_config import (
    ColoredFormatter,
    ContextFilter,
    JSONFormatter,
    LoggingConfig,
    clear_request_context,
    configure_logging,
    get_request_context,
    operation_var,
    request_context,
    request_id_var,
    set_request_context,
    timed_operation,
)

__all__ = [
    # LLM factory
    "get_oracle",
    "get_llm_provider",
    "AnthropicOracle",
    "OpenAIOracle",
    # Logging
    "configure_logging",
    "LoggingConfig",
    "JSONFormatter",
    "ColoredFormatter",
    "ContextFilter",
    "request_id_var",
    "operation_var",
    "set_request_context",
    "clear_request_context",
    "get_request_context",
    "request_context",
    "timed_operation",
]
