"""
Logging setup for the frame motion monitor.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Chatty third-party loggers capped at WARNING unless running at DEBUG.
NOISY_LOGGERS = ("ultralytics", "uvicorn.access", "PIL")


def setup_logging(log_path: Optional[str], log_level: str = "INFO") -> logging.Logger:
    """
    Configure the root logger with a stream handler and, when `log_path`
    is set, a file handler. Creates the log directory if needed.
    """
    level = getattr(logging, str(log_level).upper(), None)
    if not isinstance(level, int):
        raise ValueError(f"Invalid log level: {log_level}")

    handlers = [logging.StreamHandler()]
    if log_path:
        log_dir = os.path.dirname(log_path)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)
        handlers.append(logging.FileHandler(log_path))

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )

    if level > logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    return logging.getLogger()
