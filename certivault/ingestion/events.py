# -*- coding: UTF-8 -*-
"""
@File ：events.py
@IDE ：PyCharm
@Author ：zhanzhicai
@Date ：2025/11/4 18:12
@DOC: Storage notification parsing

MinIO and S3 publish bucket notifications in the same shape:

    {"Records": [{"eventName": "s3:ObjectCreated:Put",
                  "eventTime": "2024-06-01T10:00:00.000Z",
                  "s3": {"object": {"key": "c%2F2024%2F001.pdf", "eTag": "...", "versionId": "..."}}}]}

Only ObjectCreated records become ingestion events. Keys arrive URL-encoded.
"""
from datetime import datetime, timezone
from typing import Any
from urllib.parse import unquote_plus

from pydantic import ValidationError

from certivault.core.exceptions import BadRequestException
from certivault.core.logging import get_logger
from certivault.schemas.schemas import DocumentIdentity, IngestionEvent

logger = get_logger(__name__)


def _is_object_created(event_name: str) -> bool:
    # "s3:ObjectCreated:Put" from MinIO, "ObjectCreated:Put" from AWS
    return "ObjectCreated:" in event_name


def _content_version(s3_object: dict[str, Any]) -> str | None:
    version = s3_object.get("versionId")
    if version and version != "null":
        return version
    etag = s3_object.get("eTag") or s3_object.get("etag")
    return etag.strip('"') if etag else None


def _occurred_at(raw: str | None) -> datetime:
    if not raw:
        return datetime.now(timezone.utc)
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Unparseable eventTime {raw!r}, using receipt time")
        return datetime.now(timezone.utc)


def parse_storage_notification(payload: dict[str, Any]) -> list[IngestionEvent]:
    """
    Convert a bucket notification into ingestion events.

    Records that are not object creations are skipped; a creation record
    without a key or version is rejected, since it cannot be deduplicated.
    """
    records = payload.get("Records")
    if not isinstance(records, list):
        raise BadRequestException("Notification has no Records list")

    events: list[IngestionEvent] = []
    for index, record in enumerate(records):
        event_name = str(record.get("eventName", ""))
        if not _is_object_created(event_name):
            logger.debug(f"Skipping notification record {index}: {event_name or 'no eventName'}")
            continue

        s3_object = record.get("s3", {}).get("object", {})
        key = s3_object.get("key")
        version = _content_version(s3_object)
        if not key or not version:
            raise BadRequestException(f"Notification record {index} lacks an object key or version")

        try:
            events.append(
                IngestionEvent(
                    document_identity=DocumentIdentity(path=unquote_plus(key), content_version=version),
                    occurred_at=_occurred_at(record.get("eventTime")),
                )
            )
        except ValidationError as e:
            raise BadRequestException(f"Notification record {index} is invalid: {e.errors()}")
    return events
