"""Logging configuration for ora2pg-admin using structlog.

Console output is rendered through Rich so log lines do not tear the
progress bar; file output is JSON for machine parsing.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any

import structlog
from rich.console import Console
from rich.logging import RichHandler
from structlog.typing import EventDict, WrappedLogger

from ora2pg_admin import __version__

_ANSI_PATTERN = re.compile(r"\x1b\[[0-9;]*m")

SENSITIVE_FIELDS = ("password", "passwd", "pwd", "secret", "token")


def add_app_context(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add application context to log entries.

    Args:
        logger: The wrapped logger instance
        method_name: The name of the logger method called
        event_dict: The event dictionary to be logged

    Returns:
        EventDict: Modified event dictionary with app context
    """
    event_dict["app"] = "ora2pg-admin"
    event_dict["version"] = __version__
    return event_dict


class JSONFileFormatter(logging.Formatter):
    """Formatter that writes one JSON object per log record.

    structlog has already rendered the event for the console; ANSI escape
    codes are stripped before the message is embedded.
    """

    def format(self, record: logging.LogRecord) -> str:
        message = _ANSI_PATTERN.sub("", record.getMessage())

        log_entry = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "event": message,
            "app": "ora2pg-admin",
            "version": __version__,
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, ensure_ascii=False)


def configure_logging(
    level: str = "WARNING",
    log_format: str = "json",
    log_file: str | None = None,
    file_level: str | None = None,
) -> None:
    """Configure structured logging for the application.

    Args:
        level: Console log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: File output format ('json' or 'console')
        log_file: Optional path to log file
        file_level: File log level (defaults to DEBUG)

    Note:
        Console output is always human-readable. Important ora2pg output
        lines are logged at INFO, so ``--log-level INFO`` streams them to
        the terminal while the default only keeps them in the log file.
    """
    console_level = getattr(logging, level.upper(), logging.WARNING)
    file_log_level = getattr(logging, (file_level or "DEBUG").upper(), logging.DEBUG)

    console = Console(stderr=True)
    rich_handler = RichHandler(
        console=console,
        show_time=False,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    rich_handler.setLevel(console_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    root_logger.addHandler(rich_handler)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        add_app_context,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        structlog.dev.ConsoleRenderer(colors=False),
    ]

    min_level = min(console_level, file_log_level) if log_file else console_level

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(min_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(file_log_level)
        if log_format == "json":
            file_handler.setFormatter(JSONFileFormatter())
        else:
            file_handler.setFormatter(logging.Formatter("%(message)s"))

        root_logger.addHandler(file_handler)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a configured logger instance.

    Args:
        name: Optional logger name (typically __name__)

    Returns:
        structlog.stdlib.BoundLogger: Configured logger instance
    """
    return structlog.get_logger(name)


def log_error(
    logger: structlog.stdlib.BoundLogger,
    error: Exception,
    context: str,
    **extra: Any,
) -> None:
    """Log an error with its type and context."""
    logger.error(
        "error_occurred",
        error_type=type(error).__name__,
        error_message=str(error),
        context=context,
        **extra,
    )


def redact_secrets(payload: Any, max_depth: int = 10) -> Any:
    """Return a copy of ``payload`` with secret values replaced.

    Recursively walks dicts and lists; any key containing one of
    SENSITIVE_FIELDS (case-insensitive) has its value replaced with
    ``"[REDACTED]"``. Placeholders such as ``${ORACLE_PASSWORD}`` are kept
    since they are not secrets themselves.
    """
    if max_depth <= 0:
        return "[MAX_DEPTH_EXCEEDED]"

    if isinstance(payload, dict):
        redacted = {}
        for key, value in payload.items():
            if any(field in str(key).lower() for field in SENSITIVE_FIELDS):
                is_placeholder = isinstance(value, str) and value.startswith("${")
                redacted[key] = value if is_placeholder or not value else "[REDACTED]"
            elif isinstance(value, (dict, list)):
                redacted[key] = redact_secrets(value, max_depth - 1)
            else:
                redacted[key] = value
        return redacted

    if isinstance(payload, list):
        return [redact_secrets(item, max_depth - 1) for item in payload]

    return payload
