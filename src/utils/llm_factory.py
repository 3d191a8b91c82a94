"""
LLM Factory for Oracle Adapters
===============================

Builds the language-model adapters used by the query orchestrator. Each
adapter satisfies the Oracle protocol: one async prompt -> text call.
Provider selection follows the LLM_PROVIDER environment variable.

Usage:
    from src.utils.llm_factory import get_oracle

    # Provider from LLM_PROVIDER, standard tier
    oracle = get_oracle()

    # Fast tier for classification
    classifier_oracle = get_oracle(model_tier="fast")

    text = await oracle.complete("Return {} as JSON", system="Return JSON only.")

Environment Variables:
    LLM_PROVIDER: "anthropic" (default) or "openai"
    ANTHROPIC_API_KEY: Required if using Anthropic
    OPENAI_API_KEY: Required if using OpenAI
    ORACLE_MODEL: Optional model name overriding the tier mapping
    ORACLE_MAX_RETRIES: Adapter-level retries on transient API errors (default 0)

Model Mappings:
    Fast (classification):
        - Anthropic: claude-haiku-4-5
        - OpenAI: gpt-4o-mini

    Standard (decomposition, aggregation):
        - Anthropic: claude-sonnet-4-5
        - OpenAI: gpt-4o
"""

import logging
import os
from typing import Literal, Optional

import anthropic
import openai
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

logger = logging.getLogger(__name__)

LLMProvider = Literal["anthropic", "openai"]
ModelTier = Literal["fast", "standard", "reasoning"]

MODEL_MAPPINGS = {
    "anthropic": {
        "fast": "claude-haiku-4-5",
        "standard": "claude-sonnet-4-5",
        "reasoning": "claude-sonnet-4-5",
    },
    "openai": {
        "fast": "gpt-4o-mini",
        "standard": "gpt-4o",
        "reasoning": "gpt-4o",
    },
}


def get_llm_provider() -> LLMProvider:
    """
    Get the configured LLM provider from environment.

    Returns:
        LLMProvider: "anthropic" or "openai"
    """
    provider = os.environ.get("LLM_PROVIDER", "anthropic").lower()
    if provider not in ("anthropic", "openai"):
        logger.warning(f"Unknown LLM_PROVIDER '{provider}', defaulting to 'anthropic'")
        return "anthropic"
    return provider  # type: ignore


# =============================================================================
# Adapters
# =============================================================================


class AnthropicOracle:
    """Oracle backed by the Anthropic Messages API."""

    TRANSIENT_ERRORS = (
        anthropic.APIConnectionError,
        anthropic.RateLimitError,
        anthropic.InternalServerError,
    )

    def __init__(
        self,
        model: str,
        max_tokens: int = 1024,
        temperature: float = 0.0,
        max_retries: int = 0,
        client: Optional[anthropic.AsyncAnthropic] = None,
    ):
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.max_retries = max_retries
        self._client = client

    @property
    def client(self) -> anthropic.AsyncAnthropic:
        """Lazy-load Anthropic async client."""
        if self._client is None:
            api_key = os.environ.get("ANTHROPIC_API_KEY")
            if not api_key:
                raise ValueError("ANTHROPIC_API_KEY environment variable is not set")
            # SDK-level retries disabled; retry policy lives in complete()
            self._client = anthropic.AsyncAnthropic(api_key=api_key, max_retries=0)
        return self._client

    async def complete(self, prompt: str, *, system: Optional[str] = None) -> str:
        retrying = _retrying(self.max_retries, self.TRANSIENT_ERRORS)
        return await retrying(self._generate, prompt, system)

    async def _generate(self, prompt: str, system: Optional[str]) -> str:
        kwargs = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            kwargs["system"] = system

        message = await self.client.messages.create(**kwargs)

        response_text = ""
        for block in message.content:
            if hasattr(block, "text"):
                response_text += block.text

        logger.debug(f"{self.model} returned {message.usage.output_tokens} tokens")
        return response_text


class OpenAIOracle:
    """Oracle backed by the OpenAI Chat Completions API."""

    TRANSIENT_ERRORS = (
        openai.APIConnectionError,
        openai.RateLimitError,
        openai.InternalServerError,
    )

    def __init__(
        self,
        model: str,
        max_tokens: int = 1024,
        temperature: float = 0.0,
        max_retries: int = 0,
        client: Optional[openai.AsyncOpenAI] = None,
    ):
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.max_retries = max_retries
        self._client = client

    @property
    def client(self) -> openai.AsyncOpenAI:
        """Lazy-load OpenAI async client."""
        if self._client is None:
            api_key = os.environ.get("OPENAI_API_KEY")
            if not api_key:
                raise ValueError("OPENAI_API_KEY environment variable is not set")
            self._client = openai.AsyncOpenAI(api_key=api_key, max_retries=0)
        return self._client

    async def complete(self, prompt: str, *, system: Optional[str] = None) -> str:
        retrying = _retrying(self.max_retries, self.TRANSIENT_ERRORS)
        return await retrying(self._generate, prompt, system)

    async def _generate(self, prompt: str, system: Optional[str]) -> str:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        completion = await self.client.chat.completions.create(
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            messages=messages,
        )
        return completion.choices[0].message.content or ""


def _retrying(max_retries: int, errors: tuple) -> AsyncRetrying:
    return AsyncRetrying(
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(errors),
        reraise=True,
    )


# =============================================================================
# Factory
# =============================================================================


def get_oracle(
    provider: Optional[LLMProvider] = None,
    model_tier: ModelTier = "standard",
    max_tokens: int = 1024,
    temperature: float = 0.0,
    max_retries: Optional[int] = None,
):
    """
    Get an Oracle adapter.

    Args:
        provider: Override the default provider from environment
        model_tier: "fast" for classification, "standard" for general use
        max_tokens: Maximum tokens in response
        temperature: Sampling temperature (0.0 for structured output)
        max_retries: Retries on transient API errors, ORACLE_MAX_RETRIES when None

    Returns:
        AnthropicOracle or OpenAIOracle instance
    """
    if provider is None:
        provider = get_llm_provider()
    if max_retries is None:
        max_retries = int(os.environ.get("ORACLE_MAX_RETRIES", "0"))

    model_name = os.environ.get("ORACLE_MODEL") or MODEL_MAPPINGS[provider][model_tier]
    logger.debug(f"Creating {provider} oracle: {model_name} (tier={model_tier})")

    if provider == "openai":
        return OpenAIOracle(model_name, max_tokens, temperature, max_retries)
    return AnthropicOracle(model_name, max_tokens, temperature, max_retries)
