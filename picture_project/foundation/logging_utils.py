"""Logging setup shared by the CLI and library callers."""

from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"


def setup_logger(
    name: str = "picture_project",
    *,
    log_path: str | None = None,
    level: int = logging.INFO,
) -> logging.Logger:
    """Configure a named logger (stderr, plus an optional UTF-8 log file)."""

    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if log_path:
        out_dir = os.path.dirname(os.path.abspath(log_path))
        os.makedirs(out_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False
    logger.debug("Logging initialized (name=%s, file=%s)", name, log_path or "-")
    return logger
