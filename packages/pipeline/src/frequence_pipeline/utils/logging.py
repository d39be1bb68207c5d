"""
utils/logging.py — structlog configuration for the workers.

Console or JSON rendering is chosen by settings.log_format. The CLI and
the API call configure_logging() once at startup.

Usage:
    from frequence_pipeline.utils.logging import configure_logging, get_logger

    configure_logging()
    log = get_logger(__name__, log_id=log_id)
    log.info("marche_collect_start", marche_id=marche.id, types=types)
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from frequence_shared.config import settings

_configured = False


def configure_logging(
    log_level: str | None = None,
    log_format: str | None = None,
    *,
    force: bool = False,
) -> None:
    """
    Configure structlog for the process. Calls after the first are no-ops
    unless force=True.

    Args:
        log_level:  Override settings.log_level ("DEBUG", "INFO", ...).
        log_format: Override settings.log_format ("json" | "console").
    """
    global _configured
    if _configured and not force:
        return

    level_name = (log_level or settings.log_level).upper()
    level = getattr(logging, level_name, logging.INFO)
    fmt = log_format or settings.log_format

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    if fmt == "json":
        renderer: Any = structlog.processors.JSONRenderer(ensure_ascii=False)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True


def get_logger(name: str, **initial_values: Any) -> structlog.BoundLogger:
    """Return a structlog logger, optionally bound to initial context."""
    logger = structlog.get_logger(name)
    if initial_values:
        logger = logger.bind(**initial_values)
    return logger  # type: ignore[return-value]
