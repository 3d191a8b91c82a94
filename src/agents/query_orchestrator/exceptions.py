"""
Query Orchestrator - Exceptions

All orchestration errors inherit from OrchestrationError. Each pipeline stage
catches its own category and degrades to a typed fallback value; only
unexpected errors reach the orchestrator boundary.
"""

from typing import Any, Dict, Optional


class OrchestrationError(Exception):
    """
    Base exception for all orchestration errors.

    The class name doubles as a stable error code used in
    SubResult.failure_reason.
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    @property
    def code(self) -> str:
        return self.__class__.__name__

    def as_failure_reason(self) -> str:
        return f"{self.code}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/API responses."""
        result = {
            "error_type": self.code,
            "message": self.message,
            "details": self.details,
        }
        if self.original_error:
            result["original_error"] = str(self.original_error)
        return result


class OracleUnavailable(OrchestrationError):
    """
    Raised when a language-model call fails or its output breaks the contract.

    Examples:
    - SDK/network error or timeout
    - No JSON object in the response
    - Missing field, unknown category, confidence outside [0, 1]
    """

    def __init__(
        self,
        message: str,
        raw_response: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message, details, original_error)
        self.raw_response = raw_response
        if raw_response is not None:
            self.details["raw_response"] = raw_response[:200]


class InsufficientOperands(OrchestrationError):
    """Raised when a calculation sub-task has fewer than two numbers."""

    pass


class RetrievalFailed(OrchestrationError):
    """Raised when a knowledge domain query errors."""

    def __init__(
        self,
        message: str,
        domain: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message, details, original_error)
        self.domain = domain
        if domain:
            self.details["domain"] = domain


class LookupFailed(OrchestrationError):
    """
    Raised when the weather service errors.

    reason is "unavailable" (unreachable, misconfigured, bad key) or
    "unknown_city" (the service did not recognize the city).
    """

    UNAVAILABLE = "unavailable"
    UNKNOWN_CITY = "unknown_city"

    def __init__(
        self,
        message: str,
        reason: str = UNAVAILABLE,
        city: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message, details, original_error)
        self.reason = reason
        self.city = city
        self.details["reason"] = reason
        if city:
            self.details["city"] = city


class UnknownSubRequestKind(OrchestrationError):
    """Raised when no handler is registered for a sub-request kind."""

    pass


class SubTaskTimeout(OrchestrationError):
    """Raised when a sub-task outlives its deadline and is cancelled."""

    @property
    def code(self) -> str:
        return "Timeout"


class InternalOrchestrationFailure(OrchestrationError):
    """Catch-all raised or recorded at the orchestrator boundary."""

    def __init__(
        self,
        message: str,
        stage: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message, details, original_error)
        self.stage = stage
        if stage:
            self.details["stage"] = stage


class ConfigurationError(OrchestrationError):
    """
    Raised when orchestrator configuration is invalid.

    Examples:
    - Threshold outside [0, 1]
    - Default domain not registered
    - Non-positive timeout
    """

    pass
