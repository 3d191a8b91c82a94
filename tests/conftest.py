"""Root conftest.py - Global pytest fixtures and service availability management.

This module provides:
1. Service availability detection at session start
2. Auto-skip of tests marked requires_* when the external service is missing
3. Safe async helpers with built-in timeouts
4. Environment isolation between tests

Usage:
    @pytest.mark.requires_llm
    @pytest.mark.asyncio
    async def test_live_decomposition():
        ...

External services:
    - knowledge_service: HTTP health probe of KNOWLEDGE_SERVICE_URL
    - llm: ANTHROPIC_API_KEY or OPENAI_API_KEY configured (no network call)
    - weather: WEATHER_API_KEY configured (no network call)
"""

from __future__ import annotations

import asyncio
import os
import time
from typing import Dict

import httpx
import pytest
from dotenv import load_dotenv

# =============================================================================
# LOAD ENVIRONMENT VARIABLES from .env file IMMEDIATELY
# =============================================================================
load_dotenv()

KNOWLEDGE_SERVICE_URL = os.getenv("KNOWLEDGE_SERVICE_URL", "")

# Connection timeout for service checks (seconds)
SERVICE_CHECK_TIMEOUT = 3.0

# Global service availability cache (populated at session start)
SERVICES_AVAILABLE: Dict[str, bool] = {
    "knowledge_service": False,
    "llm": False,
    "weather": False,
}


# =============================================================================
# SERVICE AVAILABILITY CHECKING
# =============================================================================


def _check_knowledge_service(url: str, timeout: float = SERVICE_CHECK_TIMEOUT) -> bool:
    """True if the knowledge service answers GET /health with 2xx."""
    if not url:
        return False
    try:
        response = httpx.get(f"{url.rstrip('/')}/health", timeout=timeout)
        return response.is_success
    except httpx.HTTPError:
        return False


def _check_llm_credentials() -> bool:
    """Credentials only; a live call would add latency and cost to every run."""
    provider = os.getenv("LLM_PROVIDER", "anthropic").lower()
    key_name = "OPENAI_API_KEY" if provider == "openai" else "ANTHROPIC_API_KEY"
    return bool(os.getenv(key_name))


def _run_service_checks() -> Dict[str, bool]:
    return {
        "knowledge_service": _check_knowledge_service(KNOWLEDGE_SERVICE_URL),
        "llm": _check_llm_credentials(),
        "weather": bool(os.getenv("WEATHER_API_KEY")),
    }


# =============================================================================
# PYTEST HOOKS
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Check which external services are available and report them."""
    global SERVICES_AVAILABLE

    start_time = time.time()
    SERVICES_AVAILABLE = _run_service_checks()
    check_duration = time.time() - start_time

    config._service_availability = SERVICES_AVAILABLE

    quiet = getattr(config.option, "quiet", 0)
    if not quiet:
        print("\n" + "=" * 60)
        print("SERVICE AVAILABILITY CHECK")
        print("=" * 60)
        for service, available in SERVICES_AVAILABLE.items():
            status = "AVAILABLE" if available else "UNAVAILABLE"
            icon = "✓" if available else "✗"
            print(f"  {icon} {service.upper()}: {status}")
        print(f"  (checked in {check_duration:.2f}s)")
        print("=" * 60 + "\n")


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip tests marked requires_* when the service is not available."""
    services = getattr(config, "_service_availability", SERVICES_AVAILABLE)

    skip_markers = {
        "requires_knowledge_service": ("knowledge_service", "Knowledge service not reachable"),
        "requires_llm": ("llm", "LLM API key not configured"),
        "requires_weather": ("weather", "WEATHER_API_KEY not configured"),
    }

    for item in items:
        marker_names = {m.name for m in item.iter_markers()}
        for marker_name, (service, reason) in skip_markers.items():
            if marker_name in marker_names and not services.get(service, False):
                item.add_marker(pytest.mark.skip(reason=reason))


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture(scope="session")
def service_availability() -> Dict[str, bool]:
    return SERVICES_AVAILABLE.copy()


@pytest.fixture
def async_timeout():
    """Wrap a coroutine with asyncio.wait_for.

    Usage:
        async def test_something(async_timeout):
            result = await async_timeout(some_async_func(), timeout=5.0)
    """

    async def _timeout_wrapper(coro, timeout: float = 5.0):
        return await asyncio.wait_for(coro, timeout=timeout)

    return _timeout_wrapper


@pytest.fixture(autouse=True)
def reset_environment():
    """Restore os.environ after each test."""
    original_env = os.environ.copy()

    yield

    os.environ.clear()
    os.environ.update(original_env)
