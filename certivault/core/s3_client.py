# -*- coding: UTF-8 -*-
"""
@File ：s3_client.py
@IDE ：PyCharm
@Author ：zhanzhicai
@Date ：2025/10/31 16:59
@DOC: MinIO / S3 client

Builds the boto3 client used by the S3 document store and makes sure the
certificate bucket exists at startup. MinIO speaks the S3 API, so both
backends share this client.
"""

import boto3
from botocore.client import Config
from botocore.exceptions import ClientError

from certivault.core.config import settings
from certivault.core.exceptions import ForbiddenException
from certivault.core.logging import get_logger

logger = get_logger(__name__)


def create_s3_client():
    """
    Create a boto3 S3 client from settings.

    The endpoint URL is only set for MinIO; for AWS S3 boto3 resolves it from the region.
    """
    endpoint_url = None
    if settings.STORAGE_BACKEND == "minio":
        endpoint_url = f"{'https' if settings.MINIO_USE_SSL else 'http'}://{settings.MINIO_ENDPOINT}"
    return boto3.client(
        "s3",
        endpoint_url=endpoint_url,
        aws_access_key_id=settings.MINIO_ACCESS_KEY,
        aws_secret_access_key=settings.MINIO_SECRET_KEY,
        config=Config(signature_version="s3v4"),
        region_name=settings.S3_REGION,
    )


def ensure_minio_bucket_exists(bucket_name: str, client=None):
    """
    Make sure the bucket exists, creating it when it does not.

    Called from the FastAPI lifespan. Raises ForbiddenException when the
    credentials cannot see the bucket.
    """
    client = client or create_s3_client()
    try:
        client.head_bucket(Bucket=bucket_name)
        logger.info(f"Bucket {bucket_name} exists")
    except ClientError as e:
        err_code = e.response.get("Error", {}).get("Code", "UnknownError")
        match err_code:
            case "404" | "NoSuchBucket":
                logger.info(f"Bucket {bucket_name} does not exist, creating it")
                try:
                    client.create_bucket(Bucket=bucket_name)
                    logger.info(f"Bucket {bucket_name} created")
                except ClientError as create_error:
                    logger.error(f"Failed to create bucket '{bucket_name}': {str(create_error)}")
                    raise
            case "403":
                logger.error(f"Access to bucket {bucket_name} denied")
                raise ForbiddenException("Permission denied to access certificate bucket")
            case _:
                logger.error(f"Unexpected error checking bucket '{bucket_name}': {str(e)}")
                raise
