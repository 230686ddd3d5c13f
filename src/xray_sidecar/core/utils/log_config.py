"""Logging configuration for the sidecar.

This module provides centralized logging configuration using Loguru.
It sets up logging to both stderr and a rotating log file. Call
``configure_logging`` once at startup; library modules only import
``logger`` from loguru.
"""

import sys
from pathlib import Path

from loguru import logger

LOG_DIR = Path.home() / ".xray-sidecar" / "logs"

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def configure_logging(*, debug: bool = False, log_dir: Path | None = LOG_DIR) -> None:
    """Replace the default Loguru handler with console and file sinks.

    Args:
        debug: Log DEBUG and above to the console instead of INFO
        log_dir: Directory for the rotating log file, ``None`` disables it
    """
    logger.remove()  # Remove default handler

    logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT,
        level="DEBUG" if debug else "INFO",
        backtrace=True,
        diagnose=debug,
    )

    if log_dir is None:
        return

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.warning(f"Cannot create log directory {log_dir}: {e}")
        return

    logger.add(
        log_dir / "sidecar.log",
        rotation="10 MB",
        retention="1 week",
        compression="zip",
        format=FILE_FORMAT,
        level="DEBUG",
        backtrace=True,
        diagnose=False,
    )


__all__ = ["configure_logging", "logger", "LOG_DIR"]
