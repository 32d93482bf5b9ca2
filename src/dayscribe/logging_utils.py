"""Logging helpers."""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler

LOG_FILE_NAME = "dayscribe.log"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def _has_handler(logger: logging.Logger, handler_type: type) -> bool:
    # RotatingFileHandler is itself a StreamHandler, so match the exact type
    return any(type(h) is handler_type for h in logger.handlers)


def setup_logging(
    log_dir: str = "logs",
    level: int = logging.INFO,
    console: bool = False,
) -> tuple[logging.Logger, str]:
    """Attach the rotating journal log, and optionally stderr, to ``dayscribe``.

    Safe to call repeatedly: handlers are added once and only the level changes.
    """
    os.makedirs(log_dir, exist_ok=True)
    log_path = os.path.join(log_dir, LOG_FILE_NAME)

    logger = logging.getLogger("dayscribe")
    logger.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    if not _has_handler(logger, RotatingFileHandler):
        file_handler = RotatingFileHandler(
            log_path, maxBytes=2_000_000, backupCount=3, encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if console and not _has_handler(logger, logging.StreamHandler):
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        logger.addHandler(stream_handler)

    return logger, log_path
