"""
Structured Logging for the Deta client.

Every client handle owns a ``StructuredLogger`` bound to its project and
filtered at the handle's configured level. The handles only emit records
on the ``deta_client`` stdlib logger; where those records go is up to the
application. ``configure_logging`` is the single place that attaches a
handler or changes the ``deta_client`` logger's level.
"""

from __future__ import annotations

import json
import logging
import sys
import time
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime, timezone
from typing import IO, Any

LOGGER_NAME = "deta_client"

_SECRET_FIELDS = frozenset({"api_key", "project_key", "X-API-Key"})


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _compact(record: Any) -> dict[str, Any]:
    return {k: v for k, v in asdict(record).items() if v is not None}


# =============================================================================
# Log Record Types
# =============================================================================


@dataclass(frozen=True)
class LogContext:
    """Fields stamped on every record a bound logger emits."""

    request_id: str | None = None
    project_id: str | None = None
    base: str | None = None
    operation: str | None = None
    key: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        fields = {k: v for k, v in asdict(self).items() if v is not None and k != "extra"}
        return {**fields, **self.extra}

    def with_update(self, **kwargs) -> LogContext:
        """Copy with the given fields replaced; ``extra`` is merged."""
        extra = {**self.extra, **kwargs.pop("extra", {})}
        return replace(self, extra=extra, **kwargs)


@dataclass
class RequestLog:
    """An outgoing request."""

    request_id: str
    method: str
    url: str
    operation: str
    base: str | None = None
    item_count: int | None = None
    timestamp: str = field(default_factory=_now)

    def to_dict(self) -> dict[str, Any]:
        return _compact(self)


@dataclass
class ResponseLog:
    """A finished exchange. ``processed``/``failed`` are set for batch writes."""

    request_id: str
    operation: str
    success: bool = True
    status_code: int | None = None
    error: str | None = None
    duration_ms: float | None = None
    processed: int | None = None
    failed: int | None = None
    timestamp: str = field(default_factory=_now)

    def to_dict(self) -> dict[str, Any]:
        return _compact(self)


# =============================================================================
# Structured Logger
# =============================================================================


class StructuredLogger:
    """
    Per-handle view onto the ``deta_client`` logger.

    ``level`` filters records of this logger only; it never touches the
    shared stdlib logger, so handles with different settings do not affect
    each other. Records are passed in whole, which keeps the logger free of
    per-request state.

    Example:
        ```python
        log = StructuredLogger(level="DEBUG").bind(project_id="a0abcyxz")
        log.log_request(RequestLog(request_id=rid, method="GET", url=url, operation="get"))
        ```
    """

    def __init__(
        self,
        name: str = LOGGER_NAME,
        level: str = "INFO",
        json_output: bool = False,
        redact_keys: bool = True,
        context: LogContext | None = None,
    ):
        self.name = name
        self.level = logging.getLevelName(level.upper())
        self.json_output = json_output
        self.redact_keys = redact_keys
        self.context = context or LogContext()
        self._logger = logging.getLogger(name)

    def bind(self, **kwargs) -> StructuredLogger:
        """A logger with the same settings and an extended context."""
        return StructuredLogger(
            self.name,
            level=logging.getLevelName(self.level),
            json_output=self.json_output,
            redact_keys=self.redact_keys,
            context=self.context.with_update(**kwargs),
        )

    def _emit(self, level: int, message: str, event_type: str | None, data: dict[str, Any]) -> None:
        if level < self.level or not self._logger.isEnabledFor(level):
            return

        payload: dict[str, Any] = {"message": message, **self.context.to_dict()}
        if event_type:
            payload["event_type"] = event_type
        payload.update(data)

        if self.redact_keys:
            for name in _SECRET_FIELDS.intersection(payload):
                payload[name] = redact_api_key(payload[name])

        if self.json_output:
            self._logger.log(level, json.dumps(payload, default=str))
        else:
            fields = " ".join(f"{k}={v}" for k, v in payload.items() if k != "message")
            self._logger.log(level, f"{message} {fields}")

    def debug(self, message: str, **kwargs) -> None:
        self._emit(logging.DEBUG, message, None, kwargs)

    def info(self, message: str, **kwargs) -> None:
        self._emit(logging.INFO, message, None, kwargs)

    def warning(self, message: str, **kwargs) -> None:
        self._emit(logging.WARNING, message, None, kwargs)

    def error(self, message: str, **kwargs) -> None:
        self._emit(logging.ERROR, message, None, kwargs)

    def log_request(self, request: RequestLog) -> None:
        self._emit(logging.DEBUG, f"{request.method} {request.url}", "request", request.to_dict())

    def log_response(self, response: ResponseLog) -> None:
        """Record an exchange at DEBUG whatever its outcome; errors go to the caller."""
        message = f"{response.operation} -> {response.status_code}"
        if response.duration_ms is not None:
            message += f" ({response.duration_ms:.0f}ms)"
        self._emit(logging.DEBUG, message, "response", response.to_dict())


# =============================================================================
# Formatters
# =============================================================================


class JSONFormatter(logging.Formatter):
    """One JSON object per line; JSON messages are merged into it."""

    def format(self, record: logging.LogRecord) -> str:
        out: dict[str, Any] = {"timestamp": _now(), "level": record.levelname, "logger": record.name}
        message = record.getMessage()
        try:
            parsed = json.loads(message)
        except (json.JSONDecodeError, TypeError):
            parsed = None
        if isinstance(parsed, dict):
            out.update(parsed)
        else:
            out["message"] = message
        if record.exc_info:
            out["exception"] = self.formatException(record.exc_info)
        return json.dumps(out, default=str)


class TextFormatter(logging.Formatter):
    """``HH:MM:SS.mmm LEVEL logger: message``"""

    def format(self, record: logging.LogRecord) -> str:
        clock = datetime.now(timezone.utc).strftime("%H:%M:%S.%f")[:-3]
        return f"{clock} {record.levelname:8} {record.name}: {record.getMessage()}"


# =============================================================================
# Utilities
# =============================================================================


def generate_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:12]}"


def redact_api_key(key: str | None) -> str:
    """Show only the ends of a secret."""
    if not key:
        return "<not set>"
    if len(key) <= 8:
        return "***"
    return f"{key[:4]}...{key[-4:]}"


def truncate_for_log(text: str, max_length: int = 200) -> str:
    if len(text) <= max_length:
        return text
    return f"{text[:max_length]}... ({len(text)} chars total)"


@dataclass
class Timer:
    """Wall-clock stopwatch in milliseconds."""

    start_time: float = field(default_factory=time.perf_counter)
    end_time: float | None = None

    def stop(self) -> float:
        self.end_time = time.perf_counter()
        return self.elapsed_ms

    @property
    def elapsed_ms(self) -> float:
        end = time.perf_counter() if self.end_time is None else self.end_time
        return (end - self.start_time) * 1000


@contextmanager
def timed() -> Iterator[Timer]:
    timer = Timer()
    try:
        yield timer
    finally:
        timer.stop()


# =============================================================================
# Output Configuration
# =============================================================================

_handler: logging.Handler | None = None


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    stream: IO[str] | None = None,
) -> logging.Logger:
    """
    Send ``deta_client`` records to ``stream`` (stderr by default).

    Calling it again replaces the handler installed by the previous call;
    handlers added by the application are left alone.
    """
    global _handler
    logger = logging.getLogger(LOGGER_NAME)
    if _handler is not None:
        logger.removeHandler(_handler)

    _handler = logging.StreamHandler(stream or sys.stderr)
    _handler.setFormatter(JSONFormatter() if json_output else TextFormatter())
    logger.addHandler(_handler)
    logger.setLevel(level.upper())
    return logger


def reset_logging() -> None:
    """Undo ``configure_logging``."""
    global _handler
    logger = logging.getLogger(LOGGER_NAME)
    if _handler is not None:
        logger.removeHandler(_handler)
        _handler = None
    logger.setLevel(logging.NOTSET)


__all__ = [
    "LOGGER_NAME",
    # Records
    "LogContext",
    "RequestLog",
    "ResponseLog",
    # Logger
    "StructuredLogger",
    # Formatters
    "JSONFormatter",
    "TextFormatter",
    # Utilities
    "Timer",
    "timed",
    "generate_request_id",
    "redact_api_key",
    "truncate_for_log",
    # Output
    "configure_logging",
    "reset_logging",
]
