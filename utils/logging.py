# utils/logging.py

"""Logging helpers for the actor-materials pipeline."""

from __future__ import annotations

import logging
import logging.handlers
import os

import structlog
from rich.logging import RichHandler

from config import settings

logger = structlog.get_logger(__name__)


__all__ = ["setup_logging"]

_NOISY_LOGGERS = ("httpx", "httpcore", "urllib3")


def setup_logging(log_level: str | None = None) -> None:
    """Configure structlog over standard logging.

    Bound fields (``character``, ``phase``, ``scene_count`` and so on) are
    rendered into the message so they survive into both the rotating file
    log and the console.
    """
    level = (log_level or settings.LOG_LEVEL_STR).upper()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)

    if settings.LOG_FILE:
        try:
            file_path = (
                settings.LOG_FILE
                if os.path.isabs(settings.LOG_FILE)
                else os.path.join(settings.BASE_OUTPUT_DIR, settings.LOG_FILE)
            )
            log_dir = os.path.dirname(file_path)
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                file_path,
                maxBytes=10 * 1024 * 1024,
                backupCount=5,
                mode="a",
                encoding="utf-8",
            )
            file_handler.setFormatter(
                logging.Formatter(settings.LOG_FORMAT, datefmt=settings.LOG_DATE_FORMAT)
            )
            root_logger.addHandler(file_handler)
        except OSError as e:  # pragma: no cover - path issues
            logger.error("Error setting up file logger: %s", e)

    if settings.ENABLE_RICH_PROGRESS:
        console_handler: logging.Handler = RichHandler(
            level=level,
            rich_tracebacks=True,
            show_path=False,
            markup=False,
            show_time=True,
            show_level=True,
        )
    else:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(
            logging.Formatter(settings.LOG_FORMAT, datefmt=settings.LOG_DATE_FORMAT)
        )
    root_logger.addHandler(console_handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.get_logger().info(
        "Logging setup complete.", log_level=logging.getLevelName(root_logger.level)
    )
