# -*- coding: UTF-8 -*-
"""
@File ：routes.py
@IDE ：PyCharm
@Author ：zhanzhicai
@Date ：2025/11/5 10:40
@DOC: File retrieval for the local storage backend

S3 and MinIO serve presigned URLs themselves. With STORAGE_BACKEND=local the
download URL points here, and the token decides which single file may be read.
"""
from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from certivault.core.exceptions import NotFoundException
from certivault.core.logging import get_logger
from certivault.core.storage import LocalDocumentStore, get_document_store

logger = get_logger(__name__)
router = APIRouter(prefix="/files", tags=["Files"])


def get_local_store() -> LocalDocumentStore:
    store = get_document_store()
    if not isinstance(store, LocalDocumentStore):
        raise NotFoundException("Direct file access is not enabled")
    return store


@router.get("/{token}", response_class=FileResponse, summary="Download a document with a scoped token")
async def download_file(token: str, store: LocalDocumentStore = Depends(get_local_store)):
    locator = store.verify_token(token)
    path = store.resolve(locator)
    if not path.is_file():
        logger.error(f"Token for {locator.path} is valid but the file is missing")
        raise NotFoundException("File not found in storage")
    return FileResponse(path, filename=path.name)
