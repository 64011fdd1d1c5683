# -*- coding: UTF-8 -*-
"""
@File ：schemas.py
@IDE ：PyCharm
@Author ：zhanzhicai
@Date ：2025/10/31 18:14
@DOC: Pydantic schemas

- Ingestion: DocumentIdentity, IngestionEvent, ExtractionResult
- Normalized extraction output: CertificateFields
- API responses (camelCase on the wire): CertificateResponse, CertificatePage,
  DownloadTokenResponse, ProcessingLogResponse
- Storage: ScopedToken
"""

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from certivault.models.models import CertificateStatus, LogOutcome


class BaseSchema(BaseModel):
    # Build schemas straight from ORM rows
    model_config = ConfigDict(from_attributes=True)


class ApiSchema(BaseSchema):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


# ===================================================================
# Ingestion
# ===================================================================
class DocumentIdentity(ApiSchema):
    path: str = Field(..., min_length=1, max_length=1024, description="Object key in storage, e.g. 'c/2024/001.pdf'")
    content_version: str = Field(..., min_length=1, max_length=255, description="VersionId or ETag of the upload")


class IngestionEvent(ApiSchema):
    document_identity: DocumentIdentity
    occurred_at: datetime
    # 1 for the storage notification itself, n+1 for the retry after attempt n
    attempt: int = Field(default=1, ge=1)


class ExtractionResult(BaseModel):
    """Raw answer of the document-understanding capability."""
    fields: dict[str, Any] = Field(default_factory=dict)
    confidence: float | None = None


class CertificateFields(BaseSchema):
    """Normalized extraction output, written to a record in one update."""
    certificate_type: str = Field(..., min_length=1, max_length=100)
    issuing_institution: str = Field(..., min_length=1, max_length=255)
    student_name: str | None = Field(None, max_length=255)
    student_id: str | None = Field(None, max_length=100)
    date_of_birth: date | None = None
    degree_program: str | None = Field(None, max_length=255)
    gpa: float | None = Field(None, ge=0.0)
    graduation_date: date | None = None
    transcript_number: str | None = Field(None, max_length=100)
    confidence_score: float | None = Field(None, ge=0.0, le=1.0)

    @field_validator("certificate_type", "issuing_institution")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("required field is blank")
        return value

    def to_column_values(self) -> dict[str, Any]:
        values = self.model_dump()
        values["graduation_year"] = self.graduation_date.year if self.graduation_date else None
        return values


# ===================================================================
# API responses
# ===================================================================
class CertificateResponse(ApiSchema):
    id: int = Field(..., description="Store-assigned identifier")
    idempotency_key: str
    status: CertificateStatus
    attempt_count: int
    document_path: str
    content_version: str

    student_name: str | None = None
    student_id: str | None = None
    date_of_birth: date | None = None
    certificate_type: str | None = None
    degree_program: str | None = None
    gpa: float | None = None
    issuing_institution: str | None = None
    graduation_date: date | None = None
    transcript_number: str | None = None
    confidence_score: float | None = None

    processed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class CertificatePage(ApiSchema):
    records: list[CertificateResponse]
    total_count: int
    page: int
    page_size: int


class DownloadTokenResponse(ApiSchema):
    download_url: str
    expires_at: datetime


class ProcessingLogResponse(ApiSchema):
    id: int
    certificate_id: int | None = None
    timestamp: datetime
    message: str
    outcome: LogOutcome
    attempt: int | None = None


class IngestionAccepted(ApiSchema):
    accepted: int


# ===================================================================
# Storage
# ===================================================================
class ScopedToken(BaseModel):
    """Credential for reading exactly one stored document until expires_at."""
    url: str
    expires_at: datetime
