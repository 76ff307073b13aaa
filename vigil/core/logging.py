"""Structured logging setup using structlog."""

from __future__ import annotations

import logging
import sys
from collections import deque
from collections.abc import Callable
from datetime import datetime, timedelta

import structlog

from vigil.core.config import get_settings
from vigil.core.types import ErrorStats, utc_now

_MAX_TRACKED_ERRORS = 10_000


class ErrorRateTracker(logging.Handler):
    """Counts ERROR-and-above records so the host has an error-stats provider.

    Attach via ``setup_logging(error_tracker=...)`` and pass
    ``tracker.stats`` wherever an ``ErrorStatsFn`` is expected.
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now) -> None:
        super().__init__(level=logging.ERROR)
        self._clock = clock
        self._total = 0
        self._recent: deque[tuple[datetime, str]] = deque(maxlen=_MAX_TRACKED_ERRORS)

    def emit(self, record: logging.LogRecord) -> None:
        if record.levelno < self.level:
            return
        # structlog hands the event dict through as record.msg
        if isinstance(record.msg, dict):
            key = str(record.msg.get("event", record.name))
        else:
            key = record.getMessage()
        self._total += 1
        self._recent.append((self._clock(), key))

    def stats(self) -> ErrorStats:
        now = self._clock()
        hour_ago = now - timedelta(hours=1)
        with self.lock:
            recent = [(ts, key) for ts, key in self._recent if ts >= hour_ago]
            total = self._total
        return ErrorStats(
            error_rate_per_minute=len(recent) / 60.0,
            total_errors=total,
            recent_errors_1h=len(recent),
            unique_errors=len({key for _, key in recent}),
        )

    def reset(self) -> None:
        with self.lock:
            self._total = 0
            self._recent.clear()


def setup_logging(
    level: str | None = None,
    fmt: str | None = None,
    error_tracker: ErrorRateTracker | None = None,
) -> None:
    """Configure structlog with JSON or console renderer.

    Every log line carries the configured environment tag.

    Args:
        level: Log level override (e.g. "DEBUG"). Uses config if None.
        fmt: Renderer format override ("json" or "console"). Uses config if None.
        error_tracker: Optional handler that counts error records.
    """
    settings = get_settings()
    log_level = getattr(logging, (level or settings.logging.level).upper(), logging.INFO)
    log_format = fmt or settings.logging.format

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    if error_tracker is not None:
        root_logger.addHandler(error_tracker)
    root_logger.setLevel(log_level)

    structlog.contextvars.bind_contextvars(environment=settings.environment)
