"""
Logger configuration for collection runs
"""
import sys
from typing import Optional

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> | <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{line} | {message}"


def setup_logger(level: str = "INFO", log_file: Optional[str] = None):
    """
    Route loguru output to stderr, and to a rotating file when one is given

    Scheduled runs (cron, CI) usually lose stderr, so LOG_FILE keeps a history
    of past runs next to the summary printed on stdout.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional path for a plain-text log file
    """
    logger.remove()
    logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT,
        level=level,
        colorize=True,
        backtrace=True,
        diagnose=False,
    )
    if log_file:
        logger.add(
            log_file,
            format=FILE_FORMAT,
            level=level,
            rotation="10 MB",
            retention=5,
            encoding="utf-8",
        )
    return logger
