"""structlog configuration and per-stream logging context.

Provides session ID generation, a context manager that binds stream
metadata to every log entry emitted while a response is in flight, and
structured log configuration for console and JSON output with optional
file logging.
"""

from __future__ import annotations

import logging
import sys
import uuid
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

# ---------------------------------------------------------------------------
# Session ID
# ---------------------------------------------------------------------------


def generate_session_id() -> str:
    """Generate a unique session identifier.

    Returns:
        A UUID4 string for the current chat session.
    """
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# structlog configuration
# ---------------------------------------------------------------------------


_VALID_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def configure_logging(
    level: str = "INFO",
    fmt: str = "console",
    log_file: str | Path | None = None,
    session_id: str | None = None,
) -> None:
    """Configure structlog for the application.

    Sets up structlog with shared processors and a format-specific
    renderer. Configures the stdlib logging root to respect the given
    level and optionally adds a file handler.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        fmt: Output format: ``"console"`` for human-readable or
            ``"json"`` for machine-parseable.
        log_file: Optional file path for log output (in addition to stderr).
        session_id: Optional session ID to bind to all log entries.

    Raises:
        ValueError: If ``level`` is not a recognized log level.
    """
    level_upper = level.upper()
    if level_upper not in _VALID_LEVELS:
        msg = f"Invalid log level: {level!r}. Must be one of {sorted(_VALID_LEVELS)}"
        raise ValueError(msg)

    numeric_level = getattr(logging, level_upper)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    renderer: structlog.types.Processor
    if fmt == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(numeric_level)
    root_logger.addHandler(stderr_handler)

    if log_file:
        file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
        file_handler.setLevel(numeric_level)
        root_logger.addHandler(file_handler)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )
    for handler in root_logger.handlers:
        handler.setFormatter(formatter)

    if session_id:
        structlog.contextvars.bind_contextvars(session_id=session_id)


# ---------------------------------------------------------------------------
# Stream logging context manager
# ---------------------------------------------------------------------------


@contextmanager
def stream_logging_context(
    composite_id: str,
    target_index: int,
    **extra: Any,
) -> Iterator[structlog.stdlib.BoundLogger]:
    """Bind per-stream metadata to structlog for the duration of a response.

    Args:
        composite_id: Comma-joined ids of the videos in the context.
        target_index: Conversation log index of the assistant message.
        **extra: Additional key-value pairs to bind.

    Yields:
        A bound structlog logger with stream context.

    Example::

        with stream_logging_context("abc,def", target_index=2) as log:
            log.info("stream_started")
    """
    structlog.contextvars.bind_contextvars(
        composite_id=composite_id,
        target_index=target_index,
        **extra,
    )

    log: structlog.stdlib.BoundLogger = structlog.get_logger("stream")
    try:
        yield log
    finally:
        structlog.contextvars.unbind_contextvars(
            "composite_id", "target_index", *extra.keys()
        )
