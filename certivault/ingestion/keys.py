# -*- coding: UTF-8 -*-
"""
@File ：keys.py
@IDE ：PyCharm
@Author ：zhanzhicai
@Date ：2025/11/4 18:20
@DOC: Idempotency key derivation
"""
import hashlib

from certivault.schemas.schemas import DocumentIdentity


def normalize_path(path: str) -> str:
    """Object keys never carry a leading slash; '/c/a.pdf' and 'c/a.pdf' are one document."""
    return path.strip().lstrip("/")


def derive_key(identity: DocumentIdentity) -> str:
    """
    Stable key for one upload of one document.

    The same path and content version always give the same key; a re-upload
    (new content version) gives a new key, so the replacement is processed
    as its own record.
    """
    material = f"{normalize_path(identity.path)}\x00{identity.content_version.strip()}"
    return hashlib.sha256(material.encode("utf-8")).hexdigest()
