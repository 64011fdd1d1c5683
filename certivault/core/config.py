# -*- coding: UTF-8 -*-
"""
@File ：config.py
@IDE ：PyCharm
@Author ：zhanzhicai
@Date ：2025/10/29 17:36
@DOC: Application settings
"""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    app_name: str = "CertiVault"
    BASE_URL: str = "http://localhost:8000"
    JWT_SECRET: str = "your-jwt-secret"
    JWT_ALGORITHM: str = "HS256"
    DEBUG: bool = False
    LOG_DIR: str = "logs"

    # PostgreSQL
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: str = "5432"
    POSTGRES_DB: str = "certivault"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "12345678"
    # Overrides the PostgreSQL settings when set, e.g. sqlite+aiosqlite:///./dev.db
    DATABASE_URL: str | None = None

    # RabbitMQ (Celery broker)
    RABBITMQ_HOST: str = "localhost:5672"
    RABBITMQ_USER: str = "admin"
    RABBITMQ_PASSWORD: str = "admin123"

    # Redis (Celery result backend)
    REDIS_HOST: str = "localhost:6379"

    # Document storage: local | minio | s3
    STORAGE_BACKEND: str = "minio"
    MINIO_ENDPOINT: str = "localhost:9000"
    MINIO_ACCESS_KEY: str = "minioadmin"
    MINIO_SECRET_KEY: str = "minioadmin"
    MINIO_USE_SSL: bool = False
    MINIO_BUCKET: str = "certificates"
    S3_REGION: str = "us-east-1"
    # With versioning enabled the content version is an S3 VersionId, otherwise an ETag
    S3_VERSIONED_BUCKET: bool = False
    LOCAL_STORAGE_PATH: str = "source_documents/"

    # Download tokens
    DOWNLOAD_TOKEN_TTL_SECONDS: int = 300

    # Extraction capability
    EXTRACTION_ENDPOINT: str = "http://localhost:8500/analyze"
    EXTRACTION_API_KEY: str = ""
    EXTRACTION_TIMEOUT_SECONDS: float = 30.0
    EXTRACTION_MAX_ATTEMPTS: int = 5
    RETRY_BACKOFF_BASE_SECONDS: float = 10.0
    RETRY_BACKOFF_MAX_SECONDS: float = 600.0
    PROCESSING_LEASE_SECONDS: int = 900

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
    )

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )


@lru_cache()
def get_settings():
    return BaseConfig()

settings = get_settings()
