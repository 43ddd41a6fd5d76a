"""Logging configuration for LifeSync.

Library modules only call ``logger``; the CLI calls ``configure_logging`` once
per invocation to decide where records go.
"""

import sys
from pathlib import Path

from loguru import logger

CONSOLE_FORMAT = "<level>{level: <8}</level> | {message}"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function} - {message}"


def _stderr_sink(message: str) -> None:
    # Looked up per record so a replaced sys.stderr (test runners) is honored
    sys.stderr.write(message)


def configure_logging(
    level: str = "WARNING",
    log_file: Path | None = None,
    file_level: str = "INFO",
) -> None:
    """Route log records to stderr and, optionally, a file.

    Args:
        level: Minimum level shown on the console
        log_file: Optional file that receives records at file_level and above
        file_level: Minimum level written to log_file
    """
    logger.remove()  # Remove default handler
    logger.add(_stderr_sink, level=level, format=CONSOLE_FORMAT, colorize=False)

    if log_file is not None:
        logger.add(
            sink=log_file,
            level=file_level,
            format=FILE_FORMAT,
            rotation="10 MB",
            retention=5,
        )

    logger.debug("Logging configured: console={}, file={}", level, log_file)
