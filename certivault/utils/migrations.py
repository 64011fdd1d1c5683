# -*- coding: UTF-8 -*-
"""
@File ：migrations.py
@IDE ：PyCharm
@Author ：zhanzhicai
@Date ：2025/10/31 17:00
@DOC: Database migration management

Runs `alembic upgrade head` at API startup so the schema matches the models
before any request or task touches it.
"""
import subprocess
import sys
from pathlib import Path

from certivault.core.logging import get_logger

logger = get_logger(__name__)

# alembic.ini lives at the project root
PROJECT_ROOT = Path(__file__).resolve().parents[2]


def run_migrations() -> bool:
    """
    Upgrade the database to the latest revision.

    :raises subprocess.CalledProcessError: alembic exited non-zero
    """
    try:
        result = subprocess.run(
            [sys.executable, "-m", "alembic", "upgrade", "head"],
            cwd=PROJECT_ROOT,
            capture_output=True,
            text=True,
            check=True,
        )
    except subprocess.CalledProcessError as e:
        logger.error(f"Database migration failed: {e.stderr}")
        raise

    if result.stdout:
        logger.info(f"Database migration output: {result.stdout}")
    logger.info("Database migration completed")
    return True
