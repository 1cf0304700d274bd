"""Structured logging for the RPG rules engine.

Engine modules log key/value events through structlog. Output is
rendered for humans during development and as JSON lines in production;
the mode and level come from Settings unless overridden by the caller.

Values bound with ``log_context`` are merged into every event logged
inside the block, including events logged by tasks started there. The
dispatcher uses this to tag handler logs with the request they serve.

Example:
    >>> from rpg_engine.core.logging import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Turn advanced", participant="goblin-1", round=2)
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import Processor

from rpg_engine.core.config import Settings, get_settings
from rpg_engine.core.exceptions import ConfigurationError


if TYPE_CHECKING:
    from structlog.types import EventDict, WrappedLogger


APP_NAME = "rpg_engine"

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

_STDLIB_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def add_app_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Tag every event with the engine name, unless already tagged."""
    event_dict.setdefault("app", APP_NAME)
    return event_dict


def _resolve_level(level: str) -> int:
    try:
        return _LEVELS[level.upper()]
    except KeyError:
        raise ConfigurationError(f"Unknown log level: {level}", config_key="log_level") from None


def _processors(json_format: bool) -> list[Processor]:
    shared: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_app_context,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if json_format:
        return [*shared, structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [
        *shared,
        structlog.dev.ConsoleRenderer(colors=True, exception_formatter=structlog.dev.plain_traceback),
    ]


def configure_logging(
    settings: Settings | None = None,
    *,
    level: str | None = None,
    json_format: bool | None = None,
    log_file: str | None = None,
) -> None:
    """Configure structlog and the stdlib root logger.

    Explicit arguments win over ``settings``. Without either, the cached
    engine settings (``RPG_ENGINE_LOG_LEVEL``, ``RPG_ENGINE_JSON_LOGS``)
    are used.

    Args:
        settings: Settings to read the level and output mode from.
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: Render JSON lines instead of console output.
        log_file: Optional file that also receives stdlib log records.

    Raises:
        ConfigurationError: If the level name is unknown.

    Example:
        >>> configure_logging(level="DEBUG", json_format=False)
    """
    if level is None or json_format is None:
        settings = settings or get_settings()
        level = level or settings.log_level
        json_format = settings.json_logs if json_format is None else json_format
    numeric_level = _resolve_level(level)

    structlog.configure(
        processors=_processors(json_format),
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(format=_STDLIB_FORMAT, level=numeric_level, handlers=handlers, force=True)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a structlog logger, typically with ``__name__``."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind values to every subsequent log event of the current context.

    Example:
        >>> bind_context(session_id="abc123")
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


@contextmanager
def log_context(**values: Any) -> Iterator[None]:
    """Bind values for the duration of a block.

    The previous values are restored on exit. Tasks created inside the
    block copy the context and keep the values for their whole run.
    """
    with structlog.contextvars.bound_contextvars(**values):
        yield


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    "log_context",
]
