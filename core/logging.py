"""
Logging configuration
"""

from typing import Optional
import logging
import sys
from core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Libraries whose INFO output drowns out the ETL progress lines
NOISY_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool", "httpx", "httpcore", "apscheduler")


def setup_logging(level: Optional[str] = None) -> int:
    """
    Configure the root logger once per process entry point.

    Args:
        level: Level name overriding LOG_LEVEL (scripts pass DEBUG with -v)

    Returns:
        The numeric level applied
    """
    level_name = (level or settings.LOG_LEVEL).upper()
    log_level = getattr(logging, level_name, logging.INFO)

    # force=True so a script run after the API module import still applies its level
    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    logging.getLogger(__name__).info(f"Logging configured at {logging.getLevelName(log_level)} level")
    return log_level
