"""
Structured logging utilities with JSON formatting and context injection.

This module provides structured logging capabilities with:
- JSON formatted log output for machine-readable logs
- Workflow command output (``::error::``, ``::group::``) for Actions runners
- Context injection (pr_number, pipeline_id, phase) via LoggerAdapter
- Integration with Python's standard logging module
"""

import json
import logging
import sys
import traceback
from contextlib import contextmanager
from datetime import datetime, timezone
from logging import LogRecord
from typing import Any, Dict, Iterator, MutableMapping, Optional

# Fields promoted to the top level of JSON log lines
CONTEXT_FIELDS = ("pr_number", "pipeline_id", "phase", "app_id", "review_app_id")

# Whether to emit ::group:: sections; off for JSON output
_workflow_commands = True

_RESERVED_ATTRS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName", "relativeCreated",
    "thread", "threadName", "exc_info", "exc_text", "stack_info", "taskName",
}


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs log records as JSON with standard fields:
    - timestamp: ISO 8601 formatted timestamp
    - level: Log level (INFO, WARNING, ERROR, etc.)
    - logger: Logger name
    - message: Log message
    - pr_number, pipeline_id, phase, app_id: run context when present
    - context: Any other extra fields
    - error: Error details (when exc_info is set)
    """

    def format(self, record: LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in CONTEXT_FIELDS:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS and key not in CONTEXT_FIELDS
        }
        if extra_fields:
            log_data["context"] = extra_fields

        if record.exc_info:
            log_data["error"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "stack_trace": "".join(traceback.format_exception(*record.exc_info))
            }

        log_data["source"] = {
            "file": record.pathname,
            "line": record.lineno,
            "function": record.funcName
        }

        return json.dumps(log_data, default=str)


class ActionsFormatter(logging.Formatter):
    """
    Formatter emitting GitHub Actions workflow commands.

    DEBUG records become ``::debug::`` lines (only shown when step debug
    logging is enabled), WARNING and ERROR records become annotations and
    everything else is printed as plain text.
    """

    PREFIXES = {
        logging.DEBUG: "::debug::",
        logging.WARNING: "::warning::",
        logging.ERROR: "::error::",
        logging.CRITICAL: "::error::",
    }

    def format(self, record: LogRecord) -> str:
        message = record.getMessage()
        if record.exc_info and record.levelno >= logging.ERROR:
            message = f"{message}\n{''.join(traceback.format_exception(*record.exc_info))}"
        prefix = self.PREFIXES.get(record.levelno, "")
        if prefix:
            # Workflow commands are single line; newlines must be escaped
            message = message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")
        return f"{prefix}{message}"


class ContextLoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that injects context fields into all log records.

    This adapter allows setting context fields (pr_number, pipeline_id,
    phase) that will be automatically included in all log entries.
    """

    def __init__(self, logger: logging.Logger, extra: Optional[Dict[str, Any]] = None):
        super().__init__(logger, extra or {})

    def process(self, msg: str, kwargs: MutableMapping[str, Any]) -> tuple[str, MutableMapping[str, Any]]:
        extra = kwargs.get("extra", {})
        extra.update(self.extra)
        kwargs["extra"] = extra
        return msg, kwargs

    def with_context(self, **context: Any) -> "ContextLoggerAdapter":
        """
        Create a new logger adapter with additional context.

        Args:
            **context: Additional context fields

        Returns:
            New logger adapter with merged context
        """
        new_extra = self.extra.copy()
        new_extra.update(context)
        return ContextLoggerAdapter(self.logger, new_extra)


def setup_logging(log_level: str = "INFO", log_format: str = "actions") -> None:
    """
    Configure logging for the process.

    Args:
        log_level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: ``actions`` for workflow commands, ``json`` for JSON lines
    """
    global _workflow_commands
    _workflow_commands = log_format != "json"
    formatter = JSONFormatter() if log_format == "json" else ActionsFormatter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level.upper())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level.upper())
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)

    # Reduce noise from third-party libraries
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str, **context: Any) -> ContextLoggerAdapter:
    """
    Get a context-aware logger for a module.

    Example:
        logger = get_logger(__name__, pr_number=42)
        logger.info("Locating review app")  # Will include pr_number
    """
    base_logger = logging.getLogger(name)
    return ContextLoggerAdapter(base_logger, context)


@contextmanager
def log_group(title: str, stream=None) -> Iterator[None]:
    """Wrap output in a collapsible ``::group::`` section of the job log."""
    if not _workflow_commands:
        yield
        return
    stream = stream or sys.stdout
    stream.write(f"::group::{title}\n")
    stream.flush()
    try:
        yield
    finally:
        stream.write("::endgroup::\n")
        stream.flush()


def log_pr_event(logger: logging.LoggerAdapter, pr_number: int, pipeline_id: str, action: str) -> None:
    """Log the pull request event a run is handling."""
    logger.info(
        f"PR event received: {action} for PR #{pr_number}",
        extra={
            "pr_number": pr_number,
            "pipeline_id": pipeline_id,
            "action": action,
        }
    )


def log_phase_transition(
    logger: logging.LoggerAdapter,
    pr_number: int,
    phase: str,
    status: str,
    duration_ms: Optional[int] = None,
) -> None:
    """
    Log lifecycle phase transition (start or completion).

    Args:
        logger: Logger to use
        pr_number: Pull request number
        phase: Phase name (e.g., 'destroying', 'creating', 'waiting_build')
        status: Status ('started', 'completed' or 'failed')
        duration_ms: Phase duration, for completed or failed phases
    """
    extra: Dict[str, Any] = {
        "pr_number": pr_number,
        "phase": phase,
        "status": status,
    }
    if duration_ms is not None:
        extra["duration_ms"] = duration_ms
    logger.info(f"Phase {status}: {phase}", extra=extra)


def log_api_call(
    logger: logging.LoggerAdapter,
    service: str,
    endpoint: str,
    method: str,
    status_code: Optional[int] = None,
    duration_ms: Optional[float] = None,
    error: Optional[str] = None
) -> None:
    """
    Log a remote API call with request/response details.

    Args:
        logger: Logger to use
        service: Service name ('heroku' or 'github')
        endpoint: API endpoint
        method: HTTP method
        status_code: Response status code (if available)
        duration_ms: Request duration in milliseconds (if available)
        error: Error message (if request failed)
    """
    extra = {
        "service": service,
        "endpoint": endpoint,
        "method": method,
    }

    if status_code is not None:
        extra["status_code"] = status_code
    if duration_ms is not None:
        extra["duration_ms"] = round(duration_ms, 2)
    if error is not None:
        extra["error"] = error

    if error:
        logger.error(f"API call failed: {method} {endpoint}", extra=extra)
    else:
        logger.debug(f"API call: {method} {endpoint} -> {status_code}", extra=extra)


def log_error_with_context(
    logger: logging.LoggerAdapter,
    message: str,
    error: Exception,
    **context: Any
) -> None:
    """Log error with full stack trace and context."""
    logger.error(
        message,
        extra={"error_type": type(error).__name__, **context},
        exc_info=error
    )
