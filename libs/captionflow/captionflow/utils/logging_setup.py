"""Logging for the captionflow library, the API service and the scripts."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from captionflow.config import Settings

LOGGER_NAME = "captionflow"

# httpx logs every request at INFO; one line per caption update is noise.
_CHATTY_LOGGERS = ("httpx", "httpcore")

_CONFIGURED_FLAG = "_captionflow_configured"


def _log_file(settings: Settings) -> Path | None:
    raw = str(settings.logging.file or "").strip()
    if not raw:
        return None
    path = Path(raw)
    return path if path.is_absolute() else Path(settings.log_dir) / path


def _build_handlers(settings: Settings, level: int) -> list[logging.Handler]:
    formatter = logging.Formatter(fmt=settings.logging.format, datefmt=settings.logging.datefmt)
    handlers: list[logging.Handler] = []
    if settings.logging.console:
        handlers.append(logging.StreamHandler())

    path = _log_file(settings)
    if path is not None:
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                path,
                maxBytes=settings.logging.max_bytes,
                backupCount=settings.logging.backup_count,
                encoding="utf-8",
            )
        )

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    return handlers


def setup_logging(settings: Settings, *, force: bool = False) -> logging.Logger:
    """Attach console/file handlers to the ``captionflow`` logger tree.

    Other loggers (uvicorn, the root logger) are left alone. Calling again is
    a no-op unless ``force`` is set, in which case the previous handlers are
    closed and replaced.
    """
    logger = logging.getLogger(LOGGER_NAME)
    if getattr(logger, _CONFIGURED_FLAG, False) and not force:
        return logger

    level = logging.getLevelName(str(settings.logging.level or "INFO").upper())
    if not isinstance(level, int):
        level = logging.INFO

    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()
    for handler in _build_handlers(settings, level):
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False

    if level > logging.DEBUG:
        for name in _CHATTY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    setattr(logger, _CONFIGURED_FLAG, True)
    logger.debug("logging configured (level=%s, file=%s)", logging.getLevelName(level), _log_file(settings))
    return logger
