"""Structured logging with an explicit, immutable trace.

structlog is configured once at application start. Code never reaches
for a process-wide logger: an ``AppLogger`` value is passed down each
call chain, and every component derives its own child by appending one
trace segment. Records carry the full trace, e.g.
``["request", "5f0c…", "linkDiscordAccount", "exchange_code", "discord_fetch"]``.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

import structlog


def configure_logging(level: str = "INFO", *, json_output: bool = False) -> None:
    """Configure structlog processors and the stdlib root level.

    Args:
        level: Minimum log level name (e.g., "INFO", "DEBUG").
        json_output: Render JSON lines instead of the console renderer.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    renderer: Any = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(level=numeric_level, format="%(message)s")


def _default_backend() -> Any:
    return structlog.get_logger("guildlink")


@dataclass(frozen=True)
class AppLogger:
    """Logger value carrying an ordered trace of segments.

    Attributes:
        trace: Trace segments from the root to this logger.
    """

    trace: tuple[str, ...] = ()
    _backend: Any = field(default_factory=_default_backend, repr=False, compare=False)

    @classmethod
    def root(cls) -> "AppLogger":
        """Return a logger with an empty trace."""
        return cls()

    def child(self, segment: str) -> "AppLogger":
        """Return a new logger with ``segment`` appended to the trace."""
        return AppLogger(trace=(*self.trace, segment), _backend=self._backend)

    def debug(self, event: str, **fields: Any) -> None:
        self._backend.debug(event, trace=list(self.trace), **fields)

    def info(self, event: str, **fields: Any) -> None:
        self._backend.info(event, trace=list(self.trace), **fields)

    def warning(self, event: str, **fields: Any) -> None:
        self._backend.warning(event, trace=list(self.trace), **fields)

    def error(self, event: str, **fields: Any) -> None:
        self._backend.error(event, trace=list(self.trace), **fields)

    def exception(self, event: str, **fields: Any) -> None:
        """Log at error level with the active exception's traceback."""
        self._backend.exception(event, trace=list(self.trace), **fields)
