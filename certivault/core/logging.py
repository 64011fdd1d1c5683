# -*- coding: UTF-8 -*-
"""
@File ：logging.py
@IDE ：PyCharm
@Author ：zhanzhicai
@Date ：2025/10/31 16:07
@DOC: Logging configuration

Configures loguru for the API process and the Celery worker. Console output
is colourised; files rotate daily. This is also the operational channel for
processing-log write failures.
"""

import sys
from pathlib import Path

from loguru import logger

from certivault.core.config import settings


def setup_logging():
    """
    Configure loguru sinks.

    1. Drop the default handler
    2. Colourised console output
    3. app.log with daily rotation
    4. error.log for ERROR and above
    """
    logger.remove()

    log_dir = Path(settings.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)

    logger.add(
        sys.stdout,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level="DEBUG" if settings.DEBUG else "INFO",
        colorize=True,
        backtrace=True,
        diagnose=settings.DEBUG,
    )

    logger.add(
        log_dir / "app.log",
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
        level="DEBUG",
        rotation="1 day",
        retention="30 days",
        compression="zip",
        backtrace=True,
        diagnose=False,
        encoding="utf-8",
    )

    logger.add(
        log_dir / "error.log",
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
        level="ERROR",
        rotation="1 day",
        retention="30 days",
        compression="zip",
        backtrace=True,
        diagnose=False,
        encoding="utf-8",
    )

    logger.info("Logging configured")


def get_logger(name: str | None = None):
    """Return the shared logger, tagged with the calling module when given."""
    if name:
        return logger.bind(module=name)
    return logger
