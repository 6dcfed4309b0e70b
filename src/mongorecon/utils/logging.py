"""Logging configuration using loguru.

Provides centralized logging setup with configurable format, level
and file output. pymongo logs through the standard library, so stdlib
records are routed into loguru as well.
"""

import logging
import sys

from loguru import logger

from mongorecon.config.models import LoggingConfig


class _InterceptHandler(logging.Handler):
    """Route standard library logging (pymongo) through loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find the caller frame (skip logging internals)
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back  # type: ignore[assignment]
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def configure_logging(config: LoggingConfig) -> None:
    """
    Configure loguru logger based on configuration.

    Args:
        config: LoggingConfig with level, format, and file settings.
    """
    logger.remove()

    if config.format == "json":
        fmt = "{message}"
        serialize = True
    else:
        fmt = (
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        )
        serialize = False

    logger.add(
        sys.stderr,
        format=fmt,
        level=config.level,
        serialize=serialize,
        colorize=config.format == "console",
    )

    if config.file:
        logger.add(
            config.file,
            format=fmt,
            level=config.level,
            serialize=serialize,
            rotation=config.rotation,
            retention=config.retention,
            compression="gz",
        )

    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)
    # pymongo's topology and pool loggers are noisy below WARNING
    for name in ("pymongo", "pymongo.topology", "pymongo.connection", "pymongo.serverSelection"):
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.debug("Logging configured: level={} format={}", config.level, config.format)
