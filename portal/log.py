"""
Loguru sink configuration.
"""

import sys

from loguru import logger


def setup_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """Replace loguru's default sink with one at the configured level."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        serialize=json_logs,
        backtrace=False,
        diagnose=False,
    )
