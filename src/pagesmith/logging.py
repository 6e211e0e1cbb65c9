"""Logging for pagesmith operations.

Records go through stdlib `logging` handlers (stderr, plus an optional file)
and are rendered by structlog, as JSON lines by default or for the console.
Call sites pass structured fields as ``extra={...}``; they are lifted to the
top level of the record so one JSON line carries the operation and its
counts side by side.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any

import structlog

from pagesmith.settings import Settings, get_settings

if TYPE_CHECKING:
    from structlog.typing import EventDict, Processor

_configured = False


def _message_key(_logger: Any, _method_name: str, event_dict: EventDict) -> EventDict:
    """Store the log message under ``message`` instead of structlog's ``event``."""
    if "event" in event_dict:
        event_dict["message"] = event_dict.pop("event")
    return event_dict


def _lift_extra(_logger: Any, _method_name: str, event_dict: EventDict) -> EventDict:
    """Merge ``extra`` fields into the record without overwriting existing keys."""
    extra = event_dict.pop("extra", None)
    if isinstance(extra, dict):
        for key, value in extra.items():
            event_dict.setdefault(key, value)
    elif extra is not None:
        event_dict["extra"] = extra
    return event_dict


def _build_handlers(settings: Settings) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if settings.log_file:
        handlers.append(logging.FileHandler(settings.log_file, encoding="utf-8"))
    return handlers


def _build_processors(settings: Settings) -> list[Processor]:
    renderer: Processor = (
        structlog.processors.JSONRenderer() if settings.log_json else structlog.dev.ConsoleRenderer()
    )
    return [
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.stdlib.add_logger_name,
        _lift_extra,
        _message_key,
        structlog.processors.format_exc_info,
        renderer,
    ]


def configure_logging(*, settings: Settings | None = None, force: bool = False) -> None:
    """Set up stdlib handlers and structlog rendering.

    Only the first call has an effect unless `force` is set, which replaces
    the handlers and processors of the previous configuration.

    Args:
        settings (Settings | None): Settings to apply. Defaults to `get_settings()`.
        force (bool): Reconfigure even if logging was already configured.
    """
    global _configured  # noqa: PLW0603

    if _configured and not force:
        return

    config = settings or get_settings()
    level = logging.getLevelName(config.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(level=level, format="%(message)s", handlers=_build_handlers(config), force=force)
    structlog.configure(
        processors=_build_processors(config),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True


def get_logger(name: str = "pagesmith") -> structlog.BoundLogger:
    """Return a structlog logger, configuring logging on first use."""
    if not _configured:
        configure_logging()
    return structlog.get_logger(name)
