# -*- coding: UTF-8 -*-
"""
@File ：models/models.py
@IDE ：PyCharm
@Author ：zhanzhicai
@Date ：2025/10/31 16:25
@DOC: SQLAlchemy data models

- Base: declarative base
- DateTimeMixin: created_at / updated_at columns
- CertificateStatus: processing state with its allowed transitions
- LogOutcome: outcome recorded in the processing log
- CertificateRecord: one row per idempotency key
- ProcessingLogEntry: append-only audit trail
"""

import enum
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import (
    Integer,
    String,
    DateTime,
    Date,
    Float,
    Text,
    Enum as SQLAlchemyEnum,
    ForeignKey,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import relationship, DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    pass


class DateTimeMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class CertificateStatus(str, enum.Enum):
    PENDING = "Pending"
    PROCESSING = "Processing"
    EXTRACTED = "Extracted"
    FAILED = "Failed"

    def can_transition_to(self, target: "CertificateStatus") -> bool:
        return target in _ALLOWED_TRANSITIONS[self]


# PROCESSING -> PROCESSING is a new attempt claimed by a retry.
# FAILED -> PENDING only happens on an explicit reprocessing request.
_ALLOWED_TRANSITIONS = {
    CertificateStatus.PENDING: frozenset({CertificateStatus.PROCESSING}),
    CertificateStatus.PROCESSING: frozenset(
        {CertificateStatus.PROCESSING, CertificateStatus.EXTRACTED, CertificateStatus.FAILED}
    ),
    CertificateStatus.EXTRACTED: frozenset(),
    CertificateStatus.FAILED: frozenset({CertificateStatus.PENDING}),
}


class LogOutcome(str, enum.Enum):
    SUCCESS = "Success"
    TRANSIENT_ERROR = "TransientError"
    PERMANENT_ERROR = "PermanentError"


class CertificateRecord(Base, DateTimeMixin):
    __tablename__ = "certificate_records"
    __table_args__ = (
        CheckConstraint(
            "confidence_score IS NULL OR (confidence_score >= 0.0 AND confidence_score <= 1.0)",
            name="ck_certificate_records_confidence_range",
        ),
        Index("ix_certificate_records_created_at_id", "created_at", "id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    idempotency_key: Mapped[str] = mapped_column(
        String(64), nullable=False, unique=True, index=True
    )
    status: Mapped[CertificateStatus] = mapped_column(
        SQLAlchemyEnum(CertificateStatus), nullable=False, default=CertificateStatus.PENDING, index=True
    )
    attempt_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Document locator: object key plus the content version it was uploaded as
    document_path: Mapped[str] = mapped_column(String(1024), nullable=False)
    content_version: Mapped[str] = mapped_column(String(255), nullable=False)

    # Extracted fields
    student_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    student_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    date_of_birth: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    certificate_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    degree_program: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    gpa: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    issuing_institution: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    graduation_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    graduation_year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    transcript_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    confidence_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    last_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    log_entries: Mapped[List["ProcessingLogEntry"]] = relationship(
        "ProcessingLogEntry", back_populates="certificate", order_by="ProcessingLogEntry.id"
    )


class ProcessingLogEntry(Base):
    __tablename__ = "processing_log_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Nullable: failures can happen before the record exists
    certificate_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("certificate_records.id"), nullable=True, index=True
    )
    idempotency_key: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    outcome: Mapped[LogOutcome] = mapped_column(SQLAlchemyEnum(LogOutcome), nullable=False)
    attempt: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    certificate: Mapped[Optional["CertificateRecord"]] = relationship(
        "CertificateRecord", back_populates="log_entries"
    )
