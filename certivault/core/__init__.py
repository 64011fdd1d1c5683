# -*- coding: UTF-8 -*-
"""
@File ：__init__.py
@IDE ：PyCharm
@Author ：zhanzhicai
@Date ：2025/10/29 17:31
@DOC: Core package

Infrastructure shared by the API and the Celery worker:
- config.py: application settings
- database.py: engine and session management
- logging.py: loguru configuration
- s3_client.py: MinIO/S3 client
- storage.py: document store backends
- extraction_client.py: document-understanding client
- celery_app.py: task queue configuration
"""

from certivault.core.logging import get_logger

__all__ = [
    "get_logger",
]
