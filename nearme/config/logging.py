"""
Logging setup.

Configures loguru sinks with file rotation and retention.
"""

import sys

from loguru import logger

from nearme.config.settings import settings


def setup_logging(name: str) -> None:
    """Configure stderr and rotating file sinks for a process."""
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)
    logger.add(
        f"logs/{name}.log",
        rotation="1 day",
        retention="7 days",
        level=settings.log_level,
        encoding="utf-8",
    )

    logger.info(f"Starting NearMe {name}...")
