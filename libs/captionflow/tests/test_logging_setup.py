from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from captionflow.config import LoggingSettings, Settings
from captionflow.utils.logging_setup import LOGGER_NAME, setup_logging


@pytest.fixture(autouse=True)
def _restore_captionflow_logger() -> Iterator[None]:
    logger = logging.getLogger(LOGGER_NAME)
    saved = (list(logger.handlers), logger.level, logger.propagate, getattr(logger, "_captionflow_configured", False))
    yield
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    handlers, level, propagate, configured = saved
    for handler in handlers:
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = propagate
    setattr(logger, "_captionflow_configured", configured)


def _with_logging(settings: Settings, **overrides) -> Settings:
    values = {"console": False, "file": "captionflow.log", "level": "INFO"}
    values.update(overrides)
    return settings.model_copy(update={"logging": LoggingSettings(**values)})


def test_file_handler_writes_under_log_dir(settings: Settings) -> None:
    settings = _with_logging(settings)
    logger = setup_logging(settings, force=True)

    logging.getLogger("captionflow.segmentation.tracker").info("utterance opened (speaker_id=%s)", "ann")
    for handler in logger.handlers:
        handler.flush()

    log_file = Path(settings.log_dir) / "captionflow.log"
    assert "utterance opened (speaker_id=ann)" in log_file.read_text(encoding="utf-8")
    assert logger.propagate is False
    assert logging.getLogger("httpx").level == logging.WARNING


def test_second_call_keeps_handlers_unless_forced(settings: Settings) -> None:
    logger = setup_logging(_with_logging(settings), force=True)
    handlers = list(logger.handlers)

    assert setup_logging(_with_logging(settings, level="DEBUG")).handlers == handlers
    assert logger.level == logging.INFO

    setup_logging(_with_logging(settings, level="DEBUG", file=None), force=True)
    assert logger.handlers == []
    assert logger.level == logging.DEBUG


def test_unknown_level_falls_back_to_info(settings: Settings) -> None:
    logger = setup_logging(_with_logging(settings, level="chatty", file=None), force=True)
    assert logger.level == logging.INFO
