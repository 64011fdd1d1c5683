# -*- coding: UTF-8 -*-
"""
@File ：__init__.py
@IDE ：PyCharm
@Author ：zhanzhicai
@Date ：2025/10/31 16:25
@DOC: Data models package
"""

from certivault.models.models import (
    Base,
    DateTimeMixin,
    CertificateStatus,
    LogOutcome,
    CertificateRecord,
    ProcessingLogEntry,
)

__all__ = [
    "Base",
    "DateTimeMixin",
    "CertificateStatus",
    "LogOutcome",
    "CertificateRecord",
    "ProcessingLogEntry",
]
