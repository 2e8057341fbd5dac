"""Logging setup for the cmsindex command line."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from cmsindex.config.models import LoggingSettings

_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_HANDLER_MARK = "_cmsindex_handler"


def configure_logging(
    settings: LoggingSettings,
    *,
    level: Optional[str] = None,
    console: Optional[Console] = None,
) -> logging.Logger:
    """Install console and optional rotating file handlers on the package logger.

    Args:
        settings: Logging configuration.
        level: Level overriding ``settings.level``.
        console: Console the rich handler writes to; stderr when omitted.

    Returns:
        logging.Logger: The configured ``cmsindex`` logger.
    """

    logger = logging.getLogger("cmsindex")
    resolved = logging.getLevelName((level or settings.level).upper())
    if not isinstance(resolved, int):
        resolved = logging.WARNING
    logger.setLevel(resolved)

    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_MARK, False):
            logger.removeHandler(handler)
            handler.close()

    rich_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    setattr(rich_handler, _HANDLER_MARK, True)
    logger.addHandler(rich_handler)

    if settings.file:
        path = Path(settings.file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max(1, settings.max_size_mb) * 1024 * 1024,
            backupCount=max(0, settings.backup_count),
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        setattr(file_handler, _HANDLER_MARK, True)
        logger.addHandler(file_handler)

    return logger


__all__ = ["configure_logging"]
