import sys

from loguru import logger

from hetmanet.utils.types import LogLevel, LoguruLogger


def setup_logger(level: LogLevel = "INFO") -> LoguruLogger:
    """Route loguru output to stderr at the given level."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper())
    return logger
