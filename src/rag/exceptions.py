"""
Knowledge Retrieval - Custom Exceptions

RAGError is the root; the domain router catches it and turns it into an
answer text, so none of these escape an orchestration call.
"""

from typing import Any, Dict, Optional


class RAGError(Exception):
    """Base exception for knowledge retrieval."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = dict(details or {})
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        """Serializable form for logs."""
        payload: Dict[str, Any] = {
            "error_type": type(self).__name__,
            "message": self.message,
            "details": self.details,
        }
        if self.original_error is not None:
            payload["original_error"] = repr(self.original_error)
        return payload


class ConfigurationError(RAGError):
    """Knowledge service settings are unusable (no base URL, non-positive limits)."""


class RetrieverError(RAGError):
    """
    A knowledge query did not produce answer text.

    status_code is set when the service answered with a 4xx; it is None for
    transport failures, exhausted retries and malformed bodies.
    """

    # Queries are truncated in details so a long prompt does not flood logs
    MAX_QUERY_IN_DETAILS = 100

    def __init__(
        self,
        message: str,
        domain: Optional[str] = None,
        query: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message, details, original_error)
        self.domain = domain
        self.query = query
        self.status_code = status_code
        context = {
            "domain": domain,
            "query": query[: self.MAX_QUERY_IN_DETAILS] if query else None,
            "status_code": status_code,
        }
        self.details.update({k: v for k, v in context.items() if v is not None})
