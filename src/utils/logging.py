"""Structured logging setup using structlog.

Implements a **dual-renderer pattern**: the same shared processor chain
(context vars, log level, timestamps, stack info) feeds into either a
coloured ConsoleRenderer for local development or a JSONRenderer for
production.  The renderer is selected automatically based on the ``APP_ENV``
environment variable (default ``"development"``), or forced via the
``json_output`` flag.

Two additions on top of the plain structlog setup:

- Every WARN-or-worse event is copied into a bounded in-memory ring buffer
  (:class:`RecentLogBuffer`) so the admin health endpoint can show what went
  wrong recently without shipping logs anywhere.
- Request correlation ids are bound with :func:`bind_correlation_id` and
  merged into every event emitted while the request is being handled,
  including events from background tasks spawned during that request.
"""

from __future__ import annotations

import logging
import os
import sys
from collections import deque
from datetime import datetime, timezone
from typing import Any

import structlog

_CAPTURED_LEVELS = frozenset({"warning", "error", "critical", "exception"})


class RecentLogBuffer:
    """FIFO buffer of the most recent WARN+ log events.

    Used as a structlog processor: it never modifies the event dict, it only
    keeps a shallow copy of warnings and errors.
    """

    def __init__(self, max_size: int = 100) -> None:
        self._entries: deque[dict[str, Any]] = deque(maxlen=max_size)

    def __call__(
        self,
        logger: Any,
        method_name: str,
        event_dict: structlog.types.EventDict,
    ) -> structlog.types.EventDict:
        if method_name in _CAPTURED_LEVELS:
            entry = {
                key: value
                for key, value in event_dict.items()
                if key not in ("exc_info", "stack_info")
            }
            entry.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
            entry["level"] = "warn" if method_name == "warning" else method_name
            self._entries.append(entry)
        return event_dict

    def get_logs(self) -> list[dict[str, Any]]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()


recent_logs = RecentLogBuffer()


def configure_logging(log_level: str = "INFO", json_output: bool = False) -> structlog.BoundLogger:
    """Configure structlog with environment-appropriate rendering.

    Args:
        log_level: Logging level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_output: Force JSON output. When False, uses console rendering in
                     development and JSON in production (detected via APP_ENV).

    Returns:
        A configured structlog BoundLogger.
    """
    app_env = os.environ.get("APP_ENV", "development")
    use_json = json_output or app_env == "production"

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if use_json:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[
            *shared_processors,
            recent_logs,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(log_level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Route stdlib logging (pymongo, httpx, uvicorn) through the same renderer.
    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *shared_processors,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level.upper())

    return structlog.get_logger()


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a named structlog logger.

    If structlog has not been configured yet, calls configure_logging() with defaults.
    """
    if not structlog.is_configured():
        configure_logging()

    return structlog.get_logger(logger_name=name)


def bind_correlation_id(correlation_id: str) -> None:
    """Attach *correlation_id* to every log event in the current context."""
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id)


def clear_correlation_id() -> None:
    structlog.contextvars.unbind_contextvars("correlation_id")


def get_recent_logs() -> list[dict[str, Any]]:
    """Return the buffered WARN+ events, oldest first."""
    return recent_logs.get_logs()
