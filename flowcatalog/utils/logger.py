# flowcatalog/utils/logger.py
"""
Project logging.

All loggers hang off the `flowcatalog` root so one init_logger() call
configures the library and the CLI together. Records go to stderr because
stdout is reserved for JSON payloads.
"""
from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

ROOT_LOGGER = "flowcatalog"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# aiohttp is chatty at INFO about connection reuse
NOISY_LOGGERS = ("aiohttp.client", "aiohttp.internal", "asyncio")

_ANSI = (
    (logging.ERROR, "\033[91m"),    # red
    (logging.WARNING, "\033[93m"),  # yellow
    (logging.INFO, "\033[92m"),     # green
)


def level_from_name(name: Optional[str], default: int = logging.INFO) -> int:
    """'debug' -> logging.DEBUG; unknown or empty names give `default`."""
    if not name:
        return default
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else default


class _ColorFormatter(logging.Formatter):
    def __init__(self, color: bool):
        super().__init__(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        if not self.color:
            return text
        for threshold, code in _ANSI:
            if record.levelno >= threshold:
                return f"{code}{text}\033[0m"
        return text


def init_logger(
    level: Optional[int] = None,
    log_dir: Union[str, Path, None] = None,
    file_name: str = "flowcatalog.log",
    file_max_mb: int = 5,
    file_backup: int = 3,
) -> logging.Logger:
    """
    Configure the `flowcatalog` logger: a stderr handler (colored on a TTY)
    and, when `log_dir` is given, a rotating file handler. Safe to call
    again; handlers are replaced, not stacked. `level` defaults to LOG_LEVEL.
    """
    if level is None:
        level = level_from_name(os.getenv("LOG_LEVEL"))

    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = False
    logger.setLevel(level)

    stream = logging.StreamHandler(sys.stderr)
    stream.setFormatter(_ColorFormatter(color=sys.stderr.isatty()))
    logger.addHandler(stream)

    if log_dir:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)
        fh = RotatingFileHandler(
            filename=str(path / file_name),
            maxBytes=file_max_mb * 1024 * 1024,
            backupCount=file_backup,
            encoding="utf-8",
        )
        fh.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(fh)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    return logger


def get_logger(child: str) -> logging.Logger:
    """Child of the project logger, e.g. get_logger('catalog.builder')."""
    return logging.getLogger(ROOT_LOGGER).getChild(child)
