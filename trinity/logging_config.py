"""Unified logging configuration for the Trinity engine and CLI.

The engine modules only ever call ``logging.getLogger(__name__)``; hosts (the
CLI, a server, a test harness) decide where the records go by calling
:func:`setup_logging` once.

Usage:
    from trinity.logging_config import setup_logging

    logger = setup_logging("trinity", level="DEBUG", format_style="compact")
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable

__all__ = [
    "COMPACT_FORMAT",
    "DEFAULT_FORMAT",
    "DETAILED_FORMAT",
    "STRUCTURED_FORMAT",
    "LogContext",
    "configure_third_party_loggers",
    "get_logger",
    "setup_logging",
]

DEFAULT_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
COMPACT_FORMAT = "%(levelname).1s %(name)s: %(message)s"
DETAILED_FORMAT = (
    "%(asctime)s [%(name)s] %(levelname)s %(filename)s:%(lineno)d: %(message)s"
)
STRUCTURED_FORMAT = (
    '{"time": "%(asctime)s", "logger": "%(name)s", '
    '"level": "%(levelname)s", "message": "%(message)s"}'
)

_FORMATS = {
    "default": DEFAULT_FORMAT,
    "compact": COMPACT_FORMAT,
    "detailed": DETAILED_FORMAT,
    "structured": STRUCTURED_FORMAT,
}

NOISY_PACKAGES = ("urllib3", "asyncio", "hypothesis", "prometheus_client")

# Marker so repeated setup_logging calls don't stack handlers.
_CONFIGURED_ATTR = "_trinity_configured"


def _resolve_level(level: int | str) -> int:
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        return resolved if isinstance(resolved, int) else logging.INFO
    return level


def setup_logging(
    name: str = "trinity",
    level: int | str | None = None,
    format_style: str = "default",
    log_file: str | Path | None = None,
    log_dir: str | Path | None = None,
    console: bool = True,
    propagate: bool = False,
) -> logging.Logger:
    """Configure and return the logger ``name``.

    ``level`` defaults to ``TRINITY_LOG_LEVEL`` or INFO. When ``log_dir`` is
    given without ``log_file`` the file is ``<log_dir>/<name>.log``. Calling
    again for the same logger only updates its level.
    """
    if level is None:
        level = os.getenv("TRINITY_LOG_LEVEL", "INFO")
    logger = logging.getLogger(name)
    logger.setLevel(_resolve_level(level))
    logger.propagate = propagate

    if getattr(logger, _CONFIGURED_ATTR, False):
        return logger

    formatter = logging.Formatter(_FORMATS.get(format_style, DEFAULT_FORMAT))

    if console:
        handler = logging.StreamHandler()
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    if log_file is None and log_dir is not None:
        log_file = Path(log_dir) / f"{name.replace('.', '_')}.log"
    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    setattr(logger, _CONFIGURED_ATTR, True)
    return logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def configure_third_party_loggers(
    quiet: bool = True, verbose_packages: Iterable[str] | None = None
) -> None:
    """Raise noisy dependency loggers to WARNING unless listed as verbose."""
    if not quiet:
        return
    keep = set(verbose_packages or ())
    for package in NOISY_PACKAGES:
        if package not in keep:
            logging.getLogger(package).setLevel(logging.WARNING)


class LogContext:
    """Temporarily change a logger's level.

    Example:
        with LogContext(logging.getLogger("trinity.rules"), logging.DEBUG):
            detector.detect(board, x, y, tile, owner)
    """

    def __init__(self, logger: logging.Logger, level: int | str):
        self.logger = logger
        self.level = _resolve_level(level)
        self._previous: int | None = None

    def __enter__(self) -> logging.Logger:
        self._previous = self.logger.level
        self.logger.setLevel(self.level)
        return self.logger

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._previous is not None:
            self.logger.setLevel(self._previous)
