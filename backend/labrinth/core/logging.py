"""
Loguru sink configuration.
"""

import sys

from loguru import logger

from labrinth.core.config import Settings


def configure_logging(settings: Settings) -> None:
    """Reset loguru sinks according to settings."""
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)

    if settings.log_file:
        logger.add(
            settings.log_file,
            level=settings.log_level,
            rotation="10 MB",
            retention="7 days",
            enqueue=True,
        )
