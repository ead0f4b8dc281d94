# overlaysdk/log.py
"""Logging setup.

Every module logs through loguru (``from loguru import logger``). Applications
call :func:`setup_logging` once at startup to pick the console level and an
optional rotating file sink. Library code never configures sinks itself.
"""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

_LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)

_LOG_FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
    "{level: <8} | "
    "{name}:{function}:{line} | "
    "{message}"
)


def setup_logging(level: str = "INFO", log_file: str | Path | None = None,
                  max_size_mb: int = 20, retention_days: int = 14) -> None:
    """Replace loguru's default handler with a console sink and optional file sink."""
    logger.remove()
    logger.add(sys.stderr, format=_LOG_FORMAT, level=level, colorize=True)

    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(path),
            format=_LOG_FILE_FORMAT,
            level="DEBUG",
            rotation=f"{max_size_mb} MB",
            retention=f"{retention_days} days",
            encoding="utf-8",
            enqueue=True,
        )
        logger.info(f"Log file: {path}")

    logger.info(f"Logging initialized (console={level})")
