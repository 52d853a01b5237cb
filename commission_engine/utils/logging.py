"""
Logging configuration.

Configures the loguru logger: stderr at the configured level plus an
optional rotating file sink.
"""

import sys

from loguru import logger

from commission_engine.config.settings import Settings, settings


def setup_logging(config: Settings | None = None) -> None:
    """Configure logger sinks with file rotation."""
    config = config or settings

    logger.remove()
    logger.add(
        sys.stderr,
        level=config.log_level,
        backtrace=config.debug,
        diagnose=config.debug,
    )

    if config.log_file:
        logger.add(
            config.log_file,
            rotation="1 day",
            retention="7 days",
            level=config.log_level,
            encoding="utf-8",
        )

    logger.info(
        "Logging configured",
        extra={"environment": config.environment, "level": config.log_level},
    )
