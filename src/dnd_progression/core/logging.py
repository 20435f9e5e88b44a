"""Structured logging for the progression engine.

Engine modules log key-value events through structlog. Events are routed
through the standard library root logger, so the console and the optional
log file share one level filter. The file always receives JSON lines; the
console renders JSON or colored text depending on the settings.

Example:
    >>> from dnd_progression.core.logging import get_logger, log_context
    >>> logger = get_logger(__name__)
    >>> with log_context(character_id="c-42"):
    ...     logger.info("Pool spent", pool_id="rage", current=1)
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import Processor

from dnd_progression.core.config import Settings, get_settings


if TYPE_CHECKING:
    from structlog.types import EventDict, WrappedLogger


APP_NAME = "dnd_progression"

# Marks root handlers installed by configure_logging so a reconfigure replaces only those
_HANDLER_MARK = "_dnd_progression_handler"


# =============================================================================
# Processors
# =============================================================================


class AppContext:
    """Processor tagging every event with the application name.

    ``configure_logging`` installs one built from ``Settings.app_name``.
    """

    def __init__(self, app_name: str = APP_NAME) -> None:
        self.app_name = app_name

    def __call__(
        self,
        logger: WrappedLogger,
        method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        event_dict["app"] = self.app_name
        return event_dict


add_app_context = AppContext()


def render_enum_values(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Replace enum members, alone or in lists, with their values.

    Engine events carry ``RestKind``, ``ProgressionStep`` and
    ``ViolationCode`` members; the console renderer would otherwise print
    their repr.

    Args:
        logger: The wrapped logger instance.
        method_name: Name of the logging method called.
        event_dict: The event dictionary to modify.

    Returns:
        The event dictionary with plain values.
    """
    for key, value in event_dict.items():
        if isinstance(value, Enum):
            event_dict[key] = value.value
        elif isinstance(value, list | tuple) and any(isinstance(v, Enum) for v in value):
            event_dict[key] = [v.value if isinstance(v, Enum) else v for v in value]
    return event_dict


def _shared_processors(app_name: str = APP_NAME) -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        AppContext(app_name),
        render_enum_values,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _formatter(json_format: bool, shared: list[Processor]) -> structlog.stdlib.ProcessorFormatter:
    if json_format:
        renderer: list[Processor] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderer = [
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.plain_traceback,
            ),
        ]
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *renderer],
    )


# =============================================================================
# Configuration
# =============================================================================


def configure_logging(
    settings: Settings | None = None,
    *,
    level: str | None = None,
    json_format: bool | None = None,
    log_file: str | Path | None = None,
) -> None:
    """Configure application-wide logging.

    Explicit arguments override the matching settings (``log_level``,
    ``json_logs``, ``log_file``). Events carry ``settings.app_name`` as
    ``app``. Calling it again replaces the handlers a previous call
    installed.

    Args:
        settings: Settings to read defaults from; ``get_settings()`` if None.
        level: The logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: Render console output as JSON.
        log_file: File that additionally receives JSON lines.

    Example:
        >>> configure_logging(level="DEBUG", json_format=False)
    """
    settings = settings or get_settings()
    level = (level or settings.log_level).upper()
    json_format = settings.json_logs if json_format is None else json_format
    log_file = settings.log_file if log_file is None else log_file
    numeric_level = getattr(logging, level, logging.INFO)

    shared = _shared_processors(settings.app_name)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    root = logging.getLogger()
    for handler in [h for h in root.handlers if getattr(h, _HANDLER_MARK, False)]:
        root.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(_formatter(json_format, shared))
    handlers: list[logging.Handler] = [console]

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(_formatter(True, shared))
        handlers.append(file_handler)

    for handler in handlers:
        setattr(handler, _HANDLER_MARK, True)
        root.addHandler(handler)
    root.setLevel(numeric_level)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a logger, typically with ``__name__``."""
    return structlog.get_logger(name)


@contextmanager
def log_context(**kwargs: Any) -> Iterator[None]:
    """Bind context variables for the duration of a block.

    Values bound before the block are restored afterwards, so nested
    contexts (a rest inside a service call) do not clear each other.

    Example:
        >>> with log_context(character_id="c-42"):
        ...     logger.info("Rest taken")  # includes character_id
    """
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield


__all__ = [
    "APP_NAME",
    "AppContext",
    "add_app_context",
    "render_enum_values",
    "configure_logging",
    "get_logger",
    "log_context",
]
