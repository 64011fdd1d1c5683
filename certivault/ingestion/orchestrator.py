# -*- coding: UTF-8 -*-
"""
@File ：orchestrator.py
@IDE ：PyCharm
@Author ：zhanzhicai
@Date ：2025/11/4 18:30
@DOC: Extraction orchestrator

Drives one document through Pending -> Processing -> Extracted | Failed.

Delivery is at-least-once, so every step is guarded by the store:
1. upsert_if_absent makes one record per idempotency key
2. claiming an attempt is a conditional write on (status, attempt_count)
3. the final write is a single conditional UPDATE carrying every extracted field

A record stays Processing across retries; each retry event names the attempt
it wants to start and only wins if the store still shows the previous one.
"""
import asyncio
import enum
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from certivault.certificate.repository import CertificateRepository
from certivault.core.exceptions import ConflictException, PermanentExtractionError, TransientExtractionError
from certivault.core.extraction_client import DocumentAnalyzer
from certivault.core.logging import get_logger
from certivault.core.storage import DocumentLocator, DocumentStore
from certivault.ingestion.keys import derive_key, normalize_path
from certivault.ingestion.normalization import normalize_extraction
from certivault.models.models import CertificateRecord, CertificateStatus, LogOutcome
from certivault.schemas.schemas import CertificateFields, DocumentIdentity, IngestionEvent

logger = get_logger(__name__)

RetryScheduler = Callable[[IngestionEvent, float], Awaitable[None]]


class HandleOutcome(str, enum.Enum):
    DUPLICATE = "duplicate"
    EXTRACTED = "extracted"
    RETRY_SCHEDULED = "retry_scheduled"
    LEASE_CHECK_SCHEDULED = "lease_check_scheduled"
    FAILED = "failed"


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 5
    base_delay_seconds: float = 10.0
    max_delay_seconds: float = 600.0

    def delay_for(self, attempt: int) -> float:
        """Backoff before the attempt that follows `attempt`."""
        return min(self.base_delay_seconds * 2 ** (attempt - 1), self.max_delay_seconds)


class ExtractionOrchestrator:
    def __init__(
            self,
            session_factory: async_sessionmaker[AsyncSession],
            store: DocumentStore,
            analyzer: DocumentAnalyzer,
            schedule_retry: RetryScheduler,
            retry_policy: RetryPolicy | None = None,
            extraction_timeout: float = 30.0,
            lease_seconds: int = 900,
            clock: Callable[[], datetime] | None = None,
    ):
        self.session_factory = session_factory
        self.store = store
        self.analyzer = analyzer
        self.schedule_retry = schedule_retry
        self.retry_policy = retry_policy or RetryPolicy()
        self.extraction_timeout = extraction_timeout
        self.lease_seconds = lease_seconds
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    # ------------------------------------------------------------------
    # entry points
    # ------------------------------------------------------------------
    async def handle(self, event: IngestionEvent) -> HandleOutcome:
        """
        Process one ingestion event. Duplicates return HandleOutcome.DUPLICATE
        after an operational log line and change nothing.
        """
        identity = event.document_identity
        key = derive_key(identity)
        locator = DocumentLocator(normalize_path(identity.path), identity.content_version.strip())

        async with self.session_factory() as session:
            record, created = await CertificateRepository(session).upsert_if_absent(key, locator)
        if created:
            logger.info(f"Created certificate {record.id} for {locator.path}@{locator.content_version}")

        if self._holds_live_lease(record, event):
            # Redelivery of the attempt in flight: its worker may have died, so come back when the lease ends
            delay = max(self._lease_remaining(record), 0.0) + 1.0
            await self.schedule_retry(event, delay)
            logger.info(
                f"Certificate {record.id}: attempt {event.attempt} is still leased, rechecking in {delay:.0f}s"
            )
            return HandleOutcome.LEASE_CHECK_SCHEDULED

        if not self._claimable(record, event):
            logger.info(
                f"Duplicate event for certificate {record.id} ignored "
                f"(status={record.status.value}, attempts={record.attempt_count}, event attempt={event.attempt})"
            )
            return HandleOutcome.DUPLICATE

        if record.attempt_count >= self.retry_policy.max_attempts:
            # Only reachable through an expired lease on the final attempt
            return await self._fail(
                record.id, key, record.attempt_count,
                f"Processing lease expired after final attempt {record.attempt_count}",
            )

        attempt = record.attempt_count + 1
        claimed = await self._transition(
            record.id,
            record.status,
            CertificateStatus.PROCESSING,
            {"attempt_count": attempt, "last_error": None},
            expected_attempt_count=record.attempt_count,
        )
        if not claimed:
            logger.info(f"Lost the race to claim attempt {attempt} of certificate {record.id}; treating as duplicate")
            return HandleOutcome.DUPLICATE

        logger.info(f"Certificate {record.id}: starting attempt {attempt}/{self.retry_policy.max_attempts}")
        try:
            fields = await self._extract(locator)
        except TransientExtractionError as e:
            return await self._retry_or_fail(record.id, key, attempt, event, str(e))
        except PermanentExtractionError as e:
            return await self._fail(record.id, key, attempt, str(e))
        except Exception as e:
            # Unclassified failures are retried within the attempt budget
            logger.exception(f"Certificate {record.id}: unexpected error on attempt {attempt}")
            return await self._retry_or_fail(record.id, key, attempt, event, f"{type(e).__name__}: {e}")

        return await self._complete(record.id, key, attempt, fields)

    async def request_reprocessing(self, certificate_id: int) -> IngestionEvent:
        """
        Move a Failed certificate back to Pending and return the event that
        restarts its pipeline.

        :raises NotFoundException: unknown certificate
        :raises ConflictException: certificate is not Failed
        """
        async with self.session_factory() as session:
            repository = CertificateRepository(session)
            record = await repository.get_by_id(certificate_id)
            if record.status != CertificateStatus.FAILED:
                raise ConflictException(
                    f"Certificate {certificate_id} is {record.status.value}; only Failed certificates can be reprocessed"
                )
            reset = await repository.transition_status(
                record.id,
                CertificateStatus.FAILED,
                CertificateStatus.PENDING,
                {"attempt_count": 0, "last_error": None},
                expected_attempt_count=record.attempt_count,
            )
        if not reset:
            raise ConflictException(f"Certificate {certificate_id} changed while requesting reprocessing")

        await self._log(record.id, record.idempotency_key, None, LogOutcome.SUCCESS, "Reprocessing requested")
        logger.info(f"Certificate {certificate_id} reset to Pending for reprocessing")
        return IngestionEvent(
            document_identity=DocumentIdentity(path=record.document_path, content_version=record.content_version),
            occurred_at=self.clock(),
        )

    # ------------------------------------------------------------------
    # steps
    # ------------------------------------------------------------------
    def _claimable(self, record: CertificateRecord, event: IngestionEvent) -> bool:
        match record.status:
            case CertificateStatus.PENDING:
                return True
            case CertificateStatus.PROCESSING:
                if event.attempt == record.attempt_count + 1:
                    return True
                return self._lease_expired(record)
            case _:
                return False

    def _holds_live_lease(self, record: CertificateRecord, event: IngestionEvent) -> bool:
        return (
            record.status == CertificateStatus.PROCESSING
            and event.attempt == record.attempt_count
            and not self._lease_expired(record)
        )

    def _lease_remaining(self, record: CertificateRecord) -> float:
        updated_at = record.updated_at
        if updated_at.tzinfo is None:
            updated_at = updated_at.replace(tzinfo=timezone.utc)
        elapsed = self.clock() - updated_at
        return (timedelta(seconds=self.lease_seconds) - elapsed).total_seconds()

    def _lease_expired(self, record: CertificateRecord) -> bool:
        return self._lease_remaining(record) < 0

    async def _extract(self, locator: DocumentLocator) -> CertificateFields:
        content = await self.store.get(locator)
        if not content:
            raise PermanentExtractionError(f"Document {locator.path} is empty")
        try:
            result = await asyncio.wait_for(self.analyzer.analyze(content), timeout=self.extraction_timeout)
        except asyncio.TimeoutError as e:
            raise TransientExtractionError(
                f"Extraction timed out after {self.extraction_timeout:g}s"
            ) from e
        return normalize_extraction(result)

    async def _complete(self, certificate_id: int, key: str, attempt: int, fields: CertificateFields) -> HandleOutcome:
        values = fields.to_column_values()
        values["processed_at"] = self.clock()
        values["last_error"] = None
        written = await self._transition(
            certificate_id,
            CertificateStatus.PROCESSING,
            CertificateStatus.EXTRACTED,
            values,
            expected_attempt_count=attempt,
        )
        if not written:
            logger.warning(f"Certificate {certificate_id}: attempt {attempt} was superseded, result discarded")
            return HandleOutcome.DUPLICATE

        confidence = "n/a" if fields.confidence_score is None else f"{fields.confidence_score:.2f}"
        await self._log(
            certificate_id, key, attempt, LogOutcome.SUCCESS,
            f"Extracted {fields.certificate_type} from {fields.issuing_institution} (confidence {confidence})",
        )
        logger.info(f"Certificate {certificate_id} extracted on attempt {attempt}")
        return HandleOutcome.EXTRACTED

    async def _retry_or_fail(
            self, certificate_id: int, key: str, attempt: int, event: IngestionEvent, error: str
    ) -> HandleOutcome:
        if attempt >= self.retry_policy.max_attempts:
            return await self._fail(certificate_id, key, attempt, f"Giving up after {attempt} attempts: {error}")

        delay = self.retry_policy.delay_for(attempt)
        await self._log(
            certificate_id, key, attempt, LogOutcome.TRANSIENT_ERROR,
            f"Attempt {attempt} failed: {error}; retrying in {delay:g}s",
        )
        # Still Processing: record the error and renew the lease
        kept = await self._transition(
            certificate_id,
            CertificateStatus.PROCESSING,
            CertificateStatus.PROCESSING,
            {"last_error": error},
            expected_attempt_count=attempt,
        )
        if not kept:
            logger.warning(f"Certificate {certificate_id}: attempt {attempt} was superseded, no retry scheduled")
            return HandleOutcome.DUPLICATE

        await self.schedule_retry(event.model_copy(update={"attempt": attempt + 1}), delay)
        logger.warning(f"Certificate {certificate_id}: attempt {attempt} failed transiently, retry in {delay:g}s")
        return HandleOutcome.RETRY_SCHEDULED

    async def _fail(self, certificate_id: int, key: str, attempt: int, error: str) -> HandleOutcome:
        # Log before the terminal transition so the log never trails the status
        await self._log(
            certificate_id, key, attempt, LogOutcome.PERMANENT_ERROR, f"Attempt {attempt} failed permanently: {error}"
        )
        failed = await self._transition(
            certificate_id,
            CertificateStatus.PROCESSING,
            CertificateStatus.FAILED,
            {"last_error": error, "processed_at": self.clock()},
            expected_attempt_count=attempt,
        )
        if not failed:
            logger.warning(f"Certificate {certificate_id}: attempt {attempt} was superseded before failing")
            return HandleOutcome.DUPLICATE
        logger.error(f"Certificate {certificate_id} failed permanently: {error}")
        return HandleOutcome.FAILED

    # ------------------------------------------------------------------
    # store access
    # ------------------------------------------------------------------
    async def _transition(
            self,
            certificate_id: int,
            expected_status: CertificateStatus,
            new_status: CertificateStatus,
            fields: dict,
            expected_attempt_count: int | None = None,
    ) -> bool:
        async with self.session_factory() as session:
            return await CertificateRepository(session).transition_status(
                certificate_id, expected_status, new_status, fields, expected_attempt_count
            )

    async def _log(
            self, certificate_id: int | None, key: str, attempt: int | None, outcome: LogOutcome, message: str
    ) -> None:
        try:
            async with self.session_factory() as session:
                await CertificateRepository(session).append_log(
                    certificate_id, message, outcome, idempotency_key=key, attempt=attempt
                )
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Processing log unavailable for certificate {certificate_id} ({outcome.value}): {e}")
