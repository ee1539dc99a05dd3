"""Logging setup for the backend service.

Configures the ``rdfscout`` logger from ``LOG_LEVEL`` and, when
``LOG_FILE`` is set, adds two daily-rotated files: the application log
and an ERROR-only ``<LOG_FILE>.error`` log.
"""

from __future__ import annotations

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
BACKUP_DAYS = 14


def _rotating(path: Path, level: int) -> TimedRotatingFileHandler:
    handler = TimedRotatingFileHandler(
        path, when="midnight", backupCount=BACKUP_DAYS, encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    return handler


def configure_logging(level: str = "INFO", log_file: str = "") -> logging.Logger:
    """Configure and return the package logger.

    Calling it again replaces the handlers added by a previous call.
    """
    logger = logging.getLogger("rdfscout")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in list(logger.handlers):
        if getattr(handler, "_rdfscout", False):
            logger.removeHandler(handler)
            handler.close()

    handlers: list[logging.Handler] = []
    if not logging.getLogger().handlers:
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        handlers.append(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(_rotating(path, logging.NOTSET))
        handlers.append(_rotating(path.with_name(path.name + ".error"), logging.ERROR))

    for handler in handlers:
        handler._rdfscout = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger
