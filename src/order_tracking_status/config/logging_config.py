from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union
import os
import sys

ROOT_LOGGER_NAME = "order_tracking_status"

_DEFAULT_FMT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
_DEFAULT_DATEFMT = "%Y-%m-%d %H:%M:%S"


def coerce_level(level: Optional[Union[int, str]]) -> int:
    """int or name ('debug', 'WARN'...); falls back to LOG_LEVEL, then INFO."""
    if level is None:
        level = os.getenv("LOG_LEVEL") or logging.INFO

    if isinstance(level, int):
        return level

    name = str(level).strip().upper()
    if name == "WARN":
        name = "WARNING"
    value = logging.getLevelName(name)
    return value if isinstance(value, int) else logging.INFO


def _console_handlers(logger: logging.Logger) -> list[logging.Handler]:
    return [
        h for h in logger.handlers
        if isinstance(h, logging.StreamHandler)
        and not isinstance(h, logging.FileHandler)
        and getattr(h, "stream", None) in (sys.stderr, sys.stdout)
    ]


def _file_handler_for(logger: logging.Logger, path: Path) -> Optional[logging.Handler]:
    target = path.resolve()
    for h in logger.handlers:
        if isinstance(h, RotatingFileHandler) and Path(h.baseFilename).resolve() == target:
            return h
    return None


def get_logger(
    name: Optional[str] = ROOT_LOGGER_NAME,
    *,
    level: Optional[Union[int, str]] = None,
    log_file: Optional[Union[str, Path]] = None,
    console: bool = True,
    propagate: bool = False,
    fmt: str = _DEFAULT_FMT,
    datefmt: str = _DEFAULT_DATEFMT,
    max_bytes: int = 5_000_000,
    backup_count: int = 5,
) -> logging.Logger:
    """
    Configure and return a logger. Repeated calls never stack handlers; a
    later call may add a file target the first one did not have.

    Module loggers under `order_tracking_status.*` propagate here, so
    configuring the package root once is enough for the CLI and the API.
    """
    logger = logging.getLogger(name)
    resolved = coerce_level(level)
    logger.setLevel(resolved)
    logger.propagate = propagate

    formatter = logging.Formatter(fmt=fmt, datefmt=datefmt)

    if console and not _console_handlers(logger):
        sh = logging.StreamHandler(stream=sys.stderr)
        sh.setFormatter(formatter)
        logger.addHandler(sh)

    if log_file is not None:
        log_path = Path(log_file)
        if _file_handler_for(logger, log_path) is None:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            fh = RotatingFileHandler(
                filename=str(log_path),
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
                delay=True,
            )
            fh.setFormatter(formatter)
            logger.addHandler(fh)

    for h in logger.handlers:
        h.setLevel(resolved)
    return logger
