"""Logging configuration helpers for structured output.

Library code logs through ``logging.getLogger(__name__)``; the host calls
:func:`configure_logging` once at startup. Job execution binds ``job_id`` and
``module`` into structlog context variables so every record emitted while a
job runs carries them.
"""

from __future__ import annotations

import logging
import logging.config
from pathlib import Path
from typing import Any, Dict

import structlog

from .config import LoggingSettings

_configured = False


def _handlers(settings: LoggingSettings, level: str) -> Dict[str, Any]:
    handlers: Dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "structured",
            "level": level,
        },
    }
    if settings.log_dir:
        log_dir = Path(settings.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": str(log_dir / "file_converter.log"),
            "formatter": "plain",
            "maxBytes": settings.max_log_file_size_mb * 1024 * 1024,
            "backupCount": settings.backup_count,
            "encoding": "utf-8",
            "level": level,
        }
    return handlers


def configure_logging(settings: LoggingSettings, *, force: bool = False) -> None:
    """Route stdlib and structlog records through shared handlers.

    Idempotent unless ``force`` is set.
    """

    global _configured
    if _configured and not force:
        return

    level = settings.level.upper()
    level_value = getattr(logging, level, logging.INFO)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    handlers = _handlers(settings, level)
    logging_config: Dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "plain": {
                "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
            },
            "structured": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processor": structlog.dev.ConsoleRenderer(colors=False),
                "foreign_pre_chain": shared_processors,
            },
        },
        "handlers": handlers,
        "root": {
            "handlers": list(handlers),
            "level": level,
        },
    }

    logging.config.dictConfig(logging_config)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(level_value),
        cache_logger_on_first_use=True,
    )
    _configured = True


def job_log_context(job_id: str, module: str):
    """Context manager binding job identifiers to every log record inside it."""

    return structlog.contextvars.bound_contextvars(job_id=job_id, module=module)


__all__ = ["configure_logging", "job_log_context"]
