"""
Structlog setup for OpsTrack.

Console rendering in development, one JSON object per line elsewhere.
Every event carries the app name, version, environment and storage
backend of the settings it was configured with.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import Processor

from opstrack.config.settings import Settings, get_settings

# Chatty third-party loggers, capped at WARNING
QUIET_LOGGERS = ("aiosqlite",)


class AppContext:
    """Processor stamping fixed application fields onto each event."""

    def __init__(self, settings: Settings):
        self.fields = {
            "app": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
            "backend": settings.storage.backend,
        }

    def __call__(
        self, logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        for key, value in self.fields.items():
            event_dict.setdefault(key, value)
        return event_dict


def build_processors(settings: Settings) -> list[Processor]:
    """Processor chain for the given settings."""
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        AppContext(settings),
    ]
    if settings.environment == "development":
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))
    else:
        processors += [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    return processors


def configure_logging(settings: Settings | None = None) -> None:
    """Configure structlog and the stdlib root logger from settings."""
    settings = settings or get_settings()
    level = getattr(logging, settings.log_level)

    structlog.configure(
        processors=build_processors(settings),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stdout)
    logging.getLogger().setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
