"""
Structured Logging Configuration.

- JSON lines for production (LOG_FORMAT=json)
- Colored, human-readable lines for development (LOG_FORMAT=text)
- Request context (request_id, operation) carried through contextvars, so
  every log line of one orchestration call can be correlated, including
  lines emitted from concurrent sub-tasks

Version: 1.0.0
"""

import json
import logging
import os
import socket
import sys
import threading
import time
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

# =============================================================================
# Context Variables for Request Tracking
# =============================================================================

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
operation_var: ContextVar[Optional[str]] = ContextVar("operation", default=None)

_CONTEXT_VARS = {"request_id": request_id_var, "operation": operation_var}


def set_request_context(
    request_id: Optional[str] = None,
    operation: Optional[str] = None,
) -> None:
    """
    Set request context for logging.

    Args:
        request_id: Orchestration request identifier
        operation: Current pipeline stage (decompose, execute, aggregate)
    """
    if request_id is not None:
        request_id_var.set(request_id)
    if operation is not None:
        operation_var.set(operation)


def clear_request_context() -> None:
    for var in _CONTEXT_VARS.values():
        var.set(None)


def get_request_context() -> Dict[str, Optional[str]]:
    return {name: var.get() for name, var in _CONTEXT_VARS.items()}


@contextmanager
def request_context(request_id: str) -> Iterator[None]:
    """Bind request_id for the duration of a block, restoring the outer value.

    The operation is cleared on entry so a nested request never inherits the
    stage of its caller.
    """
    tokens = [(request_id_var, request_id_var.set(request_id)), (operation_var, operation_var.set(None))]
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


# =============================================================================
# JSON Formatter
# =============================================================================

# Attributes every LogRecord carries; anything else was passed via extra=
_RECORD_ATTRIBUTES = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "taskName", *_CONTEXT_VARS}


def _record_extras(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _RECORD_ATTRIBUTES and not key.startswith("_")
    }


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line.

    {"timestamp": ..., "level": "INFO", "logger": "src.agents...",
     "message": ..., "request_id": "req_1a2b3c4d", "operation": "execute"}

    Warnings and above also carry a "source" block; values passed through
    ``extra=`` are grouped under "extra".
    """

    def __init__(
        self,
        include_hostname: bool = True,
        extra_fields: Optional[Dict[str, Any]] = None,
    ):
        super().__init__()
        self.static_fields: Dict[str, Any] = {}
        if include_hostname:
            self.static_fields["hostname"] = socket.gethostname()
        self.static_fields.update(extra_fields or {})

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update({k: v for k, v in get_request_context().items() if v})
        entry.update(self.static_fields)

        if record.levelno >= logging.WARNING:
            entry["source"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }
        if record.exc_info:
            entry["exception"] = self._describe_exception(record)

        extras = _record_extras(record)
        if extras:
            entry["extra"] = extras

        return json.dumps(entry, default=str, ensure_ascii=False)

    def _describe_exception(self, record: logging.LogRecord) -> Dict[str, Optional[str]]:
        exc_type, exc_value, _ = record.exc_info
        return {
            "type": exc_type.__name__ if exc_type else None,
            "message": str(exc_value) if exc_value else None,
            "traceback": self.formatException(record.exc_info),
        }


# =============================================================================
# Human-Readable Formatter for Development
# =============================================================================

_ANSI = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
    "context": "\033[90m",
}
_ANSI_RESET = "\033[0m"

_MAX_LOGGER_NAME = 40


def _shorten(name: str) -> str:
    if len(name) <= _MAX_LOGGER_NAME:
        return name
    return "..." + name[-(_MAX_LOGGER_NAME - 3):]


class ColoredFormatter(logging.Formatter):
    """
    2026-01-22 12:00:00 [INFO    ] ...query_orchestrator.executor - Message [req:req_1a2b op:execute]
    """

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors and sys.stdout.isatty()

    def _paint(self, text: str, key: str) -> str:
        if not self.use_colors or key not in _ANSI:
            return text
        return f"{_ANSI[key]}{text}{_ANSI_RESET}"

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")
        level = self._paint(f"[{record.levelname:8s}]", record.levelname)
        output = f"{timestamp} {level} {_shorten(record.name)} - {record.getMessage()}"

        context = self._context_tags()
        if context:
            output += " " + self._paint(f"[{' '.join(context)}]", "context")

        if record.exc_info:
            output += "\n" + self.formatException(record.exc_info)
        return output

    @staticmethod
    def _context_tags() -> List[str]:
        tags = []
        request_id = request_id_var.get()
        if request_id:
            tags.append(f"req:{request_id[:12]}")
        operation = operation_var.get()
        if operation:
            tags.append(f"op:{operation}")
        return tags


class ContextFilter(logging.Filter):
    """Expose context as %(request_id)s / %(operation)s in format strings."""

    def filter(self, record: logging.LogRecord) -> bool:
        for name, value in get_request_context().items():
            setattr(record, name, value or "-")
        return True


# =============================================================================
# Logging Configuration
# =============================================================================

# Client libraries that log every request at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "anthropic", "openai", "asyncio", "uvicorn.access")


def _level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)


def parse_module_levels(raw: str) -> Dict[str, str]:
    """Parse LOG_LEVELS, e.g. "src.rag=DEBUG,src.tools=WARNING"."""
    levels = {}
    for pair in raw.split(","):
        module, sep, level = pair.partition("=")
        if sep and module.strip():
            levels[module.strip()] = level.strip().upper()
    return levels


class LoggingConfig:
    """
    Process-wide logging setup, read from the environment once.

    LOG_LEVEL, LOG_FORMAT (json|text), SERVICE_NAME, ENVIRONMENT, NO_COLOR
    and LOG_LEVELS (module=level,module2=level2).
    """

    _instance: Optional["LoggingConfig"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "LoggingConfig":
        with cls._lock:
            if cls._instance is None:
                instance = super().__new__(cls)
                instance._load_env()
                cls._instance = instance
        return cls._instance

    def _load_env(self) -> None:
        self.log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
        self.log_format = os.environ.get("LOG_FORMAT", "text").lower()
        self.service_name = os.environ.get("SERVICE_NAME", "query-orchestrator")
        self.environment = os.environ.get("ENVIRONMENT", "development")
        self.use_colors = os.environ.get("NO_COLOR", "").lower() not in ("1", "true", "yes")
        self.module_levels = parse_module_levels(os.environ.get("LOG_LEVELS", ""))

    def build_handler(self) -> logging.Handler:
        handler = logging.StreamHandler(sys.stdout)
        if self.log_format == "json":
            formatter: logging.Formatter = JSONFormatter(
                extra_fields={"service": self.service_name, "environment": self.environment}
            )
        else:
            formatter = ColoredFormatter(use_colors=self.use_colors)
        handler.setFormatter(formatter)
        handler.setLevel(_level(self.log_level))
        handler.addFilter(ContextFilter())
        return handler

    def configure(self) -> None:
        root_logger = logging.getLogger()
        root_logger.setLevel(logging.DEBUG)
        root_logger.handlers.clear()
        root_logger.addHandler(self.build_handler())

        for module, level in self.module_levels.items():
            logging.getLogger(module).setLevel(_level(level))
        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

        logging.getLogger(__name__).info(
            f"Logging configured: format={self.log_format}, level={self.log_level}, "
            f"service={self.service_name}, environment={self.environment}"
        )


def configure_logging() -> None:
    """Configure application logging (call once at startup)."""
    LoggingConfig().configure()


# =============================================================================
# Stage Timing
# =============================================================================


class timed_operation:
    """
    Mark a pipeline stage as the current operation and log how long it took.

    Usage:
        with timed_operation("decompose", logger) as timer:
            outcome = await decomposer.decompose(text)
        timer.duration_ms

    The duration is logged even when the block raises; the exception still
    propagates. Stages slower than warn_threshold_ms are logged at WARNING.
    """

    def __init__(
        self,
        operation_name: str,
        logger: Optional[logging.Logger] = None,
        level: int = logging.DEBUG,
        warn_threshold_ms: Optional[float] = None,
    ):
        self.operation_name = operation_name
        self.logger = logger or logging.getLogger(__name__)
        self.level = level
        self.warn_threshold_ms = warn_threshold_ms
        self.duration_ms: float = 0.0
        self._started = 0.0
        self._token = None

    def __enter__(self) -> "timed_operation":
        self._token = operation_var.set(self.operation_name)
        self._started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.duration_ms = (time.perf_counter() - self._started) * 1000
        slow = self.warn_threshold_ms is not None and self.duration_ms > self.warn_threshold_ms
        outcome = "failed after" if exc_type else "completed in"
        self.logger.log(
            logging.WARNING if slow else self.level,
            f"{self.operation_name} {outcome} {self.duration_ms:.2f}ms",
            extra={"stage_ms": round(self.duration_ms, 2)},
        )
        operation_var.reset(self._token)
        return False
