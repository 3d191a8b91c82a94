"""
Query Orchestrator - Oracle Contract
Version: 1.0
Purpose: Narrow interface to the language model plus strict parsing of its
         structured output
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from .exceptions import OracleUnavailable

logger = logging.getLogger(__name__)

_FENCED_JSON = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)


@runtime_checkable
class Oracle(Protocol):
    """A language model reached through one prompt -> text call."""

    async def complete(self, prompt: str, *, system: Optional[str] = None) -> str:
        ...


async def call_oracle(
    oracle: Oracle,
    prompt: str,
    *,
    system: Optional[str] = None,
    timeout_seconds: Optional[float] = None,
) -> str:
    """
    Single attempt at an oracle call, bounded by timeout_seconds.

    Every failure (SDK error, timeout, non-text response) surfaces as
    OracleUnavailable so callers handle exactly one error type.
    """
    try:
        if timeout_seconds is not None:
            response = await asyncio.wait_for(
                oracle.complete(prompt, system=system), timeout=timeout_seconds
            )
        else:
            response = await oracle.complete(prompt, system=system)
    except asyncio.TimeoutError as e:
        raise OracleUnavailable(
            f"Oracle call timed out after {timeout_seconds}s", original_error=e
        ) from e
    except OracleUnavailable:
        raise
    except Exception as e:
        raise OracleUnavailable(f"Oracle call failed: {e}", original_error=e) from e

    if not isinstance(response, str):
        raise OracleUnavailable(
            f"Oracle returned {type(response).__name__}, expected text"
        )
    return response


def extract_json_object(response: str) -> Dict[str, Any]:
    """
    Parse exactly one JSON object out of an oracle response.

    Accepts a fenced ```json block or the outermost {...} span of the text.
    Anything else (no braces, invalid JSON, a list or scalar) is rejected.
    Pure function: the same input always yields the same result.
    """
    if not response or not response.strip():
        raise OracleUnavailable("Empty oracle response", raw_response=response)

    candidate = response
    fenced = _FENCED_JSON.search(response)
    if fenced:
        candidate = fenced.group(1)

    start = candidate.find("{")
    end = candidate.rfind("}")
    if start == -1 or end <= start:
        raise OracleUnavailable("No JSON object found in oracle response", raw_response=response)

    try:
        parsed = json.loads(candidate[start : end + 1])
    except json.JSONDecodeError as e:
        logger.debug(f"Failed to parse JSON: {response[:200]}...")
        raise OracleUnavailable(
            f"Invalid JSON in oracle response: {e}", raw_response=response, original_error=e
        ) from e

    if not isinstance(parsed, dict):
        raise OracleUnavailable("Oracle response is not a JSON object", raw_response=response)
    return parsed


# ============================================================================
# FIELD VALIDATORS
# ============================================================================


def require_str(data: Dict[str, Any], key: str, *, allow_empty: bool = False) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise OracleUnavailable(f"Field '{key}' missing or not a string")
    if not allow_empty and not value.strip():
        raise OracleUnavailable(f"Field '{key}' is empty")
    return value


def optional_str(data: Dict[str, Any], key: str, default: str = "") -> str:
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise OracleUnavailable(f"Field '{key}' is not a string")
    return value


def require_confidence(data: Dict[str, Any], key: str = "confidence") -> float:
    """Confidence must be a number within [0, 1]; no coercion."""
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise OracleUnavailable(f"Field '{key}' missing or not a number")
    if not 0.0 <= float(value) <= 1.0:
        raise OracleUnavailable(f"Field '{key}' out of range [0, 1]: {value}")
    return float(value)
