"""Logger hierarchy for publish runs.

Every stage logs under ``jspublisher.<stage>`` so a single handler on the
package logger sees the whole run, from runtime staging to the optimizer.
"""

from __future__ import annotations

import logging
from pathlib import Path

_LOGGER_NAME = "jspublisher"
_CONSOLE_FORMAT = "[jspublish] %(levelname)s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the logger for a publish stage, e.g. ``get_logger("optimizer")``."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Send publish progress to stderr and, optionally, a log file.

    Verbose mode adds per-file staging detail, optimizer output and
    tracebacks for failed stages.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # The service and repeated CLI invocations call this more than once per process.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(file_handler)

    return logger


__all__ = ["configure_logging", "get_logger"]
