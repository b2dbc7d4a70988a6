"""Process-wide logging setup for Mindweave modules."""

from __future__ import annotations

import logging
import os
from typing import Final

_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that are chatty at INFO
_NOISY_LOGGERS: Final[tuple[str, ...]] = ("httpx", "httpcore", "urllib3", "google.auth")

_configured: bool = False


def _level_from_env() -> int:
    name = os.getenv("MINDWEAVE_LOG_LEVEL") or os.getenv("LOG_LEVEL", "INFO")
    return getattr(logging, name.upper(), logging.INFO)


def _configure_root(level: int) -> None:
    global _configured

    root = logging.getLogger()
    root.setLevel(level)
    if _configured:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT))
    root.addHandler(handler)
    for noisy in _NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(max(level, logging.WARNING))
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a named logger, attaching the shared stream handler on first use."""
    level = _level_from_env()
    _configure_root(level)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    return logger
