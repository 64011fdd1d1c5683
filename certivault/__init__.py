# -*- coding: UTF-8 -*-
"""
@File ：__init__.py
@IDE ：PyCharm
@Author ：zhanzhicai
@Date ：2025/10/31 02:10
@DOC: CertiVault application package

CertiVault turns scanned academic certificates dropped into object storage
into verified, searchable records with short-lived download links.

Core modules:
- core: configuration, database, logging, storage, extraction client, task queue
- models: SQLAlchemy data models
- ingestion: storage events, idempotency keys, extraction orchestration
- certificate: metadata store and the query/access API
- access: download token issuing and verification
- tasks: Celery entry points

Stack:
- FastAPI: web framework
- PostgreSQL: metadata store
- MinIO / S3: document storage
- Celery: asynchronous task queue
"""

__version__ = "0.1.0"
__author__ = "zhanzhicai"
__description__ = "CertiVault - academic certificate ingestion service"

__all__ = [
    "__version__",
    "__author__",
    "__description__",
]
