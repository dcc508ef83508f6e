"""
Logging configuration for docker-monitor.

Log lines go to standard error so they never mix with the stats table
written to standard output.
"""

import logging
import sys
from pathlib import Path

LOGGER_NAME = "docker_monitor"


def setup_logging(
    level: int = logging.INFO,
    log_file: Path | None = None,
    console: bool = True,
) -> logging.Logger:
    """
    Configure and return the package logger.

    Args:
        level: Logging level (default: INFO).
        log_file: Optional file path for detailed log output.
        console: Whether to log to standard error. The full-screen dashboard
            turns this off since it owns the terminal.

    Returns:
        The configured ``docker_monitor`` logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    # The log file records DEBUG whatever the console level; handlers filter their own
    logger.setLevel(min(level, logging.DEBUG) if log_file else level)

    # Remove existing handlers to avoid duplicates
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter(fmt="[%(levelname)s] %(message)s"))
        logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    # Prevent propagation to root logger
    logger.propagate = False

    return logger
