"""Structured logging for tidyframe using structlog.

Events are routed through the stdlib ``tidyframe`` logger, which carries only a
``NullHandler`` until the application opts in. Importing tidyframe never touches
the global structlog configuration: loggers are wrapped with tidyframe's own
processor chain, so the host's ``structlog.configure`` settings stay intact.

Call ``configure_logging()`` to attach a stream handler and pick the level and
renderer from ``tidyframe.config`` (``TIDYFRAME_LOG_LEVEL``, ``TIDYFRAME_LOG_FORMAT``).

Usage:
    >>> from tidyframe.utils.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG")
    >>> logger = get_logger(__name__)
    >>> logger.debug("operation_applied", operation="Filter", rows_in=344, rows_out=152)
"""

import logging
from typing import Any, Optional

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from ..config import get_settings

ROOT_LOGGER_NAME = "tidyframe"

logging.getLogger(ROOT_LOGGER_NAME).addHandler(logging.NullHandler())

_handler: Optional[logging.Handler] = None
_renderer: Processor = structlog.dev.ConsoleRenderer(colors=False)


def _make_renderer(fmt: str) -> Processor:
    if fmt == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=False)


def _render(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> Any:
    return _renderer(logger, method_name, event_dict)


_PROCESSORS: list[Processor] = [
    structlog.stdlib.filter_by_level,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    _render,
]


def configure_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> None:
    """Send tidyframe events to stderr at the configured level.

    Only the ``tidyframe`` stdlib logger and tidyframe's own renderer are changed.

    Args:
        level: Log level name; defaults to the ``LOG_LEVEL`` setting
        fmt: ``console`` or ``json``; defaults to the ``LOG_FORMAT`` setting
    """
    global _handler, _renderer

    settings = get_settings()
    level_name = (level or settings.LOG_LEVEL).upper()

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(getattr(logging, level_name, logging.WARNING))
    if _handler is None:
        _handler = logging.StreamHandler()
        _handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(_handler)

    _renderer = _make_renderer(fmt or settings.LOG_FORMAT)


def reset_logging() -> None:
    """Undo ``configure_logging``: drop the stream handler and restore defaults."""
    global _handler, _renderer

    root = logging.getLogger(ROOT_LOGGER_NAME)
    if _handler is not None:
        root.removeHandler(_handler)
        _handler = None
    root.setLevel(logging.NOTSET)
    _renderer = _make_renderer("console")


def get_logger(name: str) -> Any:
    """Get a structlog logger under the ``tidyframe`` hierarchy.

    The logger is bound to tidyframe's processor chain rather than the global
    structlog configuration.

    Args:
        name: Logger name (typically ``__name__`` of the calling module)
    """
    return structlog.wrap_logger(
        logging.getLogger(name),
        processors=_PROCESSORS,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
    )
