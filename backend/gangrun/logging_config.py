"""
Structured logging setup

stdlib loggers are routed through structlog's ProcessorFormatter so that
``logger.info("...", extra={...})`` calls render their extras as fields.

Usage:
    from gangrun.logging_config import get_logger
    logger = get_logger(__name__)
"""
import logging
import sys
from typing import Any, List

import structlog

from gangrun.core.settings import settings

_CONFIGURED = False


def _select_renderer() -> Any:
    if settings.LOG_FORMAT.lower() == "json":
        return structlog.processors.JSONRenderer(default=str)
    return structlog.dev.ConsoleRenderer(colors=False)


def setup_logging() -> None:
    """Configure the root logger once; later calls are no-ops."""
    global _CONFIGURED
    if _CONFIGURED:
        return
    _CONFIGURED = True

    shared_processors: List[Any] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.ExtraAdder(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            _select_renderer(),
        ],
    )

    root = logging.getLogger()
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root.addHandler(handler)

    if settings.LOG_FILE:
        file_handler = logging.FileHandler(settings.LOG_FILE)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    root.setLevel(settings.LOG_LEVEL.upper())

    # SQL echo is controlled by the engine, not the root level
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return a stdlib logger; output goes through the structlog formatter."""
    return logging.getLogger(name)
