# -*- coding: UTF-8 -*-
"""
@File ：storage.py
@IDE ：PyCharm
@Author ：zhanzhicai
@Date ：2025/11/1 02:30
@DOC: Document storage backends

Both backends implement DocumentStore:
- get(locator) -> bytes
- issue_scoped_token(locator, ttl_seconds) -> ScopedToken

S3DocumentStore serves MinIO and AWS S3 through presigned GET URLs.
LocalDocumentStore keeps files on disk and signs JWT download tokens that
the /files route verifies. Storage failures are classified into transient
and permanent extraction errors here, at the adapter boundary.
"""
import asyncio
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from pathlib import Path
from typing import NamedTuple, Protocol

import jwt
from botocore.exceptions import BotoCoreError, ClientError

from certivault.core.config import settings
from certivault.core.exceptions import (
    ForbiddenException,
    GoneException,
    PermanentExtractionError,
    TransientExtractionError,
)
from certivault.core.logging import get_logger
from certivault.schemas.schemas import ScopedToken

logger = get_logger(__name__)

TOKEN_SCOPE = "document:read"

# S3 error codes that will not go away by retrying. AccessDenied is retried up to the attempt cap.
_PERMANENT_S3_CODES = {
    "404", "NoSuchKey", "NoSuchVersion", "NoSuchBucket",
    "412", "PreconditionFailed", "InvalidArgument",
}


class DocumentLocator(NamedTuple):
    path: str
    content_version: str

    @classmethod
    def from_record(cls, record) -> "DocumentLocator":
        return cls(record.document_path, record.content_version)


class DocumentStore(Protocol):
    async def get(self, locator: DocumentLocator) -> bytes: ...

    def issue_scoped_token(self, locator: DocumentLocator, ttl_seconds: int) -> ScopedToken: ...


class S3DocumentStore:
    def __init__(self, client, bucket: str, versioned: bool = False):
        self.client = client
        self.bucket = bucket
        self.versioned = versioned

    def _object_params(self, locator: DocumentLocator) -> dict:
        params = {"Bucket": self.bucket, "Key": locator.path}
        if self.versioned:
            params["VersionId"] = locator.content_version
        return params

    def _get_sync(self, locator: DocumentLocator) -> bytes:
        params = self._object_params(locator)
        if not self.versioned:
            # Unversioned bucket: the ETag pins the upload we were notified about
            etag = locator.content_version.strip('"')
            params["IfMatch"] = f'"{etag}"'
        try:
            response = self.client.get_object(**params)
            return response["Body"].read()
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            logger.error(f"Failed to fetch {locator.path}@{locator.content_version}: {error_code}")
            if error_code in _PERMANENT_S3_CODES:
                raise PermanentExtractionError(f"Document unavailable in storage ({error_code})") from e
            raise TransientExtractionError(f"Storage error ({error_code})") from e
        except BotoCoreError as e:
            logger.warning(f"Storage transport error for {locator.path}: {e}")
            raise TransientExtractionError(f"Storage transport error: {e}") from e

    async def get(self, locator: DocumentLocator) -> bytes:
        # boto3 is blocking; keep it off the event loop
        return await asyncio.to_thread(self._get_sync, locator)

    def issue_scoped_token(self, locator: DocumentLocator, ttl_seconds: int) -> ScopedToken:
        """Presigned GET for exactly one object version, valid for ttl_seconds."""
        params = self._object_params(locator)
        params["ResponseContentDisposition"] = f'attachment; filename="{Path(locator.path).name}"'
        url = self.client.generate_presigned_url("get_object", Params=params, ExpiresIn=ttl_seconds)
        return ScopedToken(url=url, expires_at=datetime.now(timezone.utc) + timedelta(seconds=ttl_seconds))


class LocalDocumentStore:
    def __init__(self, root: str | Path, secret: str, algorithm: str = "HS256", base_url: str = ""):
        self.root = Path(root).resolve()
        self.secret = secret
        self.algorithm = algorithm
        self.base_url = base_url.rstrip("/")

    def resolve(self, locator: DocumentLocator) -> Path:
        candidate = (self.root / locator.path.lstrip("/")).resolve()
        if not candidate.is_relative_to(self.root):
            raise PermanentExtractionError(f"Path escapes storage root: {locator.path}")
        return candidate

    async def get(self, locator: DocumentLocator) -> bytes:
        path = self.resolve(locator)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError as e:
            raise PermanentExtractionError(f"Document not found: {locator.path}") from e
        except OSError as e:
            raise TransientExtractionError(f"Could not read {locator.path}: {e}") from e

    def issue_scoped_token(self, locator: DocumentLocator, ttl_seconds: int) -> ScopedToken:
        now = datetime.now(timezone.utc)
        expires_at = now + timedelta(seconds=ttl_seconds)
        claims = {
            "sub": locator.path,
            "ver": locator.content_version,
            "scope": TOKEN_SCOPE,
            "iat": now,
            "exp": expires_at,
        }
        token = jwt.encode(claims, self.secret, algorithm=self.algorithm)
        # JWT exp has second resolution
        expires_at = datetime.fromtimestamp(int(expires_at.timestamp()), tz=timezone.utc)
        return ScopedToken(url=f"{self.base_url}/files/{token}", expires_at=expires_at)

    def verify_token(self, token: str) -> DocumentLocator:
        """
        Decode a download token into the one locator it grants.
        Expired tokens raise GoneException, anything else invalid ForbiddenException.
        """
        try:
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "sub", "ver"]},
            )
        except jwt.ExpiredSignatureError:
            raise GoneException("Download link has expired")
        except jwt.InvalidTokenError as e:
            logger.warning(f"Rejected download token: {e}")
            raise ForbiddenException("Invalid download token")
        if claims.get("scope") != TOKEN_SCOPE:
            raise ForbiddenException("Invalid download token")
        return DocumentLocator(claims["sub"], claims["ver"])


@lru_cache()
def get_document_store() -> DocumentStore:
    """Document store selected by STORAGE_BACKEND."""
    if settings.STORAGE_BACKEND == "local":
        return LocalDocumentStore(
            root=settings.LOCAL_STORAGE_PATH,
            secret=settings.JWT_SECRET,
            algorithm=settings.JWT_ALGORITHM,
            base_url=settings.BASE_URL,
        )
    from certivault.core.s3_client import create_s3_client

    return S3DocumentStore(
        client=create_s3_client(),
        bucket=settings.MINIO_BUCKET,
        versioned=settings.S3_VERSIONED_BUCKET,
    )
