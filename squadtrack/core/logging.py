"""
Structured logging with JSON output and per-request log context.

This module provides:
- JSON log formatting for shipping logs to an aggregator
- A coloured console formatter for local development
- Correlation / team / user ids carried in context variables so every
  log line emitted while serving a request can be traced back to it
"""
import logging
import json
import sys
from datetime import datetime
from typing import Any, Optional
from contextvars import ContextVar

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")
team_id_var: ContextVar[str] = ContextVar("team_id", default="")
user_id_var: ContextVar[str] = ContextVar("user_id", default="")

# Attributes every LogRecord has; anything else came in through `extra=`
_RESERVED_RECORD_KEYS = frozenset({
    "name", "msg", "args", "levelname", "levelno", "pathname", "filename",
    "module", "exc_info", "exc_text", "stack_info", "lineno", "funcName",
    "created", "msecs", "relativeCreated", "thread", "threadName",
    "processName", "process", "message", "asctime", "taskName",
})


def _request_fields() -> dict[str, str]:
    fields = {"correlation_id": correlation_id_var.get()}
    if team_id_var.get():
        fields["team_id"] = team_id_var.get()
    if user_id_var.get():
        fields["user_id"] = user_id_var.get()
    return fields


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter.

    Each record becomes one JSON object with timestamp, level, logger,
    message, the request context fields, exception text (if any) and an
    "extra" object holding whatever the caller passed via ``extra=``.
    Values that are not JSON-native (dates, UUIDs) are rendered with str().
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_request_fields(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra = {k: v for k, v in record.__dict__.items() if k not in _RESERVED_RECORD_KEYS}
        if extra:
            log_data["extra"] = extra

        return json.dumps(log_data, default=str)


class ColoredFormatter(logging.Formatter):
    """Human-readable coloured console output for development."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        level_color = self.COLORS.get(record.levelname, "")
        base_msg = f"{level_color}[{record.levelname}]{self.RESET} {record.name}: {record.getMessage()}"

        context = " ".join(f"{k}={v}" for k, v in _request_fields().items() if v)
        if context:
            base_msg += f" | {context}"

        if record.exc_info:
            base_msg += "\n" + self.formatException(record.exc_info)

        return base_msg


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
    handler: Optional[logging.Handler] = None,
) -> None:
    """
    Configure root logging for the application.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: JSON formatter when True, coloured console formatter otherwise
        handler: Optional custom handler; defaults to a stdout StreamHandler
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    log_level = getattr(logging, level.upper(), logging.INFO)
    root_logger.setLevel(log_level)

    if handler is None:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(log_level)

    handler.setFormatter(JSONFormatter() if json_output else ColoredFormatter())
    root_logger.addHandler(handler)

    # Reduce noise from third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return the logger for ``name`` (typically the caller's __name__)."""
    return logging.getLogger(name)


def bind_request_context(correlation_id: str, team_id: str = "", user_id: str = "") -> tuple:
    """
    Bind the ids of the request being served to the logging context.

    Returns:
        Tokens to hand back to :func:`unbind_request_context`
    """
    return (
        correlation_id_var.set(correlation_id),
        team_id_var.set(team_id),
        user_id_var.set(user_id),
    )


def unbind_request_context(tokens: tuple) -> None:
    """Restore the logging context captured by :func:`bind_request_context`."""
    correlation_token, team_token, user_token = tokens
    correlation_id_var.reset(correlation_token)
    team_id_var.reset(team_token)
    user_id_var.reset(user_token)


def get_correlation_id() -> str:
    """Current correlation id, or an empty string outside a request."""
    return correlation_id_var.get()
