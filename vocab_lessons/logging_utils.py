"""Logging setup shared by the web server and the command line tools.

Handlers installed here are tagged so that calling :func:`configure_logging`
again (for example once per CLI invocation in the same process) replaces them
instead of stacking duplicates on the root logger.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional


DEFAULT_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_FILE_NAME = "vocab_lessons.log"

_HANDLER_TAG = "_vocab_lessons_handler"


def get_log_file_path(data_root: Path) -> Path:
    """Return the log file kept next to the lesson data."""

    return data_root / LOG_FILE_NAME


def build_handlers(data_root: Optional[Path] = None) -> List[logging.Handler]:
    """Return a stream handler plus, when *data_root* is given, a file handler."""

    formatter = logging.Formatter(DEFAULT_LOG_FORMAT)
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if data_root is not None:
        handlers.append(logging.FileHandler(get_log_file_path(data_root), encoding="utf-8"))
    for handler in handlers:
        handler.setFormatter(formatter)
        setattr(handler, _HANDLER_TAG, True)
    return handlers


def _remove_installed_handlers(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_TAG, False):
            logger.removeHandler(handler)
            handler.close()


def configure_logging(
    data_root: Optional[Path] = None,
    *,
    level: int = logging.INFO,
) -> logging.Logger:
    """Route application logs to stderr and to ``<data_root>/vocab_lessons.log``.

    uvicorn's own loggers propagate to the root logger so that access and
    error lines land in the same file.
    """

    logger = logging.getLogger()
    logger.setLevel(level)
    _remove_installed_handlers(logger)
    for handler in build_handlers(data_root):
        logger.addHandler(handler)

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers.clear()
        uvicorn_logger.propagate = True

    return logger


__all__ = [
    "DEFAULT_LOG_FORMAT",
    "LOG_FILE_NAME",
    "build_handlers",
    "configure_logging",
    "get_log_file_path",
]
