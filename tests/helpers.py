"""Test doubles and builders shared across the suite."""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any

from certivault.certificate.repository import CertificateRepository
from certivault.core.exceptions import PermanentExtractionError
from certivault.core.storage import DocumentLocator
from certivault.ingestion.keys import derive_key
from certivault.models.models import CertificateRecord, CertificateStatus
from certivault.schemas.schemas import DocumentIdentity, ExtractionResult, IngestionEvent, ScopedToken

VALID_FIELDS: dict[str, Any] = {
    "studentName": "Jane Doe",
    "studentId": "S-1001",
    "dateOfBirth": "2000-02-29",
    "certificateType": "Bachelor Degree",
    "degreeProgram": "Computer Science",
    "gpa": "3.75 / 4.0",
    "issuingInstitution": "University of Somewhere",
    "graduationDate": "2024-06-15",
    "transcriptNumber": "TR-42",
}


def valid_result(confidence: float | None = 0.93, **overrides) -> ExtractionResult:
    fields = {**VALID_FIELDS, **overrides}
    return ExtractionResult(fields=fields, confidence=confidence)


def make_event(path: str = "certificates/2024/jane.pdf", version: str = "v1", attempt: int = 1) -> IngestionEvent:
    return IngestionEvent(
        document_identity=DocumentIdentity(path=path, content_version=version),
        occurred_at=datetime.now(timezone.utc),
        attempt=attempt,
    )


class FakeDocumentStore:
    """In-memory DocumentStore. Paths listed in `missing` behave like deleted objects."""

    def __init__(self, content: bytes = b"%PDF-1.4 certificate", missing: set[str] | None = None):
        self.content = content
        self.missing = missing or set()
        self.reads: list[DocumentLocator] = []

    async def get(self, locator: DocumentLocator) -> bytes:
        self.reads.append(locator)
        if locator.path in self.missing:
            raise PermanentExtractionError(f"Document not found: {locator.path}")
        return self.content

    def issue_scoped_token(self, locator: DocumentLocator, ttl_seconds: int) -> ScopedToken:
        return ScopedToken(
            url=f"https://storage.test/{locator.path}?versionId={locator.content_version}&expires={ttl_seconds}",
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=ttl_seconds),
        )


class FakeAnalyzer:
    """
    Replays outcomes in order, repeating the last one. An outcome is either an
    ExtractionResult or an exception instance to raise.
    """

    def __init__(self, *outcomes, delay: float = 0.0):
        self.outcomes = list(outcomes) or [valid_result()]
        self.delay = delay
        self.calls = 0

    async def analyze(self, content: bytes) -> ExtractionResult:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        outcome = self.outcomes[min(self.calls, len(self.outcomes)) - 1]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class RecordingScheduler:
    def __init__(self):
        self.scheduled: list[tuple[IngestionEvent, float]] = []

    async def __call__(self, event: IngestionEvent, delay_seconds: float) -> None:
        self.scheduled.append((event, delay_seconds))

    @property
    def delays(self) -> list[float]:
        return [delay for _, delay in self.scheduled]


async def seed_certificate(
        session_factory,
        path: str,
        version: str = "v1",
        status: CertificateStatus = CertificateStatus.EXTRACTED,
        **fields,
) -> CertificateRecord:
    """Create a record and walk it to `status` through the repository."""
    identity = DocumentIdentity(path=path, content_version=version)
    async with session_factory() as session:
        repository = CertificateRepository(session)
        record, _ = await repository.upsert_if_absent(derive_key(identity), DocumentLocator(path, version))
        if status != CertificateStatus.PENDING:
            await repository.transition_status(
                record.id, CertificateStatus.PENDING, CertificateStatus.PROCESSING, {"attempt_count": 1}
            )
        if status == CertificateStatus.EXTRACTED:
            values = {
                "certificate_type": "Bachelor Degree",
                "issuing_institution": "University of Somewhere",
                "processed_at": datetime.now(timezone.utc),
                **fields,
            }
            await repository.transition_status(
                record.id, CertificateStatus.PROCESSING, CertificateStatus.EXTRACTED, values
            )
        elif status == CertificateStatus.FAILED:
            await repository.transition_status(
                record.id, CertificateStatus.PROCESSING, CertificateStatus.FAILED, {"last_error": "boom", **fields}
            )
        return await repository.get_by_id(record.id)
