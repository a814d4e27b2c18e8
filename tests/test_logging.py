"""Tests for publish logging setup."""

from __future__ import annotations

import logging
from pathlib import Path

from jspublisher.logging import configure_logging, get_logger


def test_stage_loggers_live_under_the_package_logger() -> None:
    assert get_logger("optimizer").name == "jspublisher.optimizer"
    assert get_logger().name == "jspublisher"


def test_configure_logging_writes_stage_messages_to_file(tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "publish.log"

    logger = configure_logging(verbose=True, log_file=log_file)
    get_logger("orchestrator").debug("Publishing App: init")
    for handler in logger.handlers:
        handler.flush()

    assert logger.level == logging.DEBUG
    assert "jspublisher.orchestrator: Publishing App: init" in log_file.read_text(encoding="utf-8")

    configure_logging()
    assert len(logger.handlers) == 1
    assert logger.level == logging.INFO
