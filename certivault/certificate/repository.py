# -*- coding: UTF-8 -*-
"""
@File ：repository.py
@IDE ：PyCharm
@Author ：zhanzhicai
@Date ：2025/10/31 19:11
@DOC: Certificate metadata store

Durable storage for certificate records and the processing log:
- atomic create-or-fetch by idempotency key
- conditional status transitions (optimistic concurrency)
- filtered, paginated search
- best-effort append-only processing log

Every write commits immediately, so a conditional UPDATE either lands
completely or not at all.
"""
from typing import Any

from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from certivault.core.exceptions import AlreadyExistsException, InvalidStatusTransition, NotFoundException
from certivault.core.logging import get_logger
from certivault.core.storage import DocumentLocator
from certivault.models.models import CertificateRecord, CertificateStatus, LogOutcome, ProcessingLogEntry

logger = get_logger(__name__)

# Columns transition_status() may write besides status
MUTABLE_FIELDS = frozenset({
    "attempt_count",
    "student_name",
    "student_id",
    "date_of_birth",
    "certificate_type",
    "degree_program",
    "gpa",
    "issuing_institution",
    "graduation_date",
    "graduation_year",
    "transcript_number",
    "confidence_score",
    "processed_at",
    "last_error",
})


class CertificateRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    def _insert(self):
        dialect = self.session.get_bind().dialect.name
        match dialect:
            case "postgresql":
                from sqlalchemy.dialects.postgresql import insert
            case "sqlite":
                from sqlalchemy.dialects.sqlite import insert
            case _:
                raise NotImplementedError(f"upsert is not supported on {dialect}")
        return insert

    async def _get_by_key(self, idempotency_key: str) -> CertificateRecord | None:
        query = (
            select(CertificateRecord)
            .where(CertificateRecord.idempotency_key == idempotency_key)
            .execution_options(populate_existing=True)
        )
        result = await self.session.scalars(query)
        return result.one_or_none()

    async def upsert_if_absent(
            self, idempotency_key: str, locator: DocumentLocator
    ) -> tuple[CertificateRecord, bool]:
        """
        Create a Pending record for the key, or fetch the existing one.

        INSERT ... ON CONFLICT DO NOTHING on the unique idempotency_key keeps
        concurrent duplicate events from ever producing two rows.
        :return: (record, created)
        """
        insert = self._insert()
        stmt = (
            insert(CertificateRecord)
            .values(
                idempotency_key=idempotency_key,
                document_path=locator.path,
                content_version=locator.content_version,
                status=CertificateStatus.PENDING,
                attempt_count=0,
            )
            .on_conflict_do_nothing(index_elements=["idempotency_key"])
            .returning(CertificateRecord.id)
        )
        try:
            result = await self.session.execute(stmt)
            created = result.scalar_one_or_none() is not None
            record = await self._get_by_key(idempotency_key)
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise
        if record is None:
            # Unique key present but unreadable would mean a broken constraint
            raise RuntimeError(f"Record for key {idempotency_key} vanished after upsert")
        return record, created

    async def create(self, idempotency_key: str, locator: DocumentLocator) -> CertificateRecord:
        """
        Strict insert. A key collision surfaces as AlreadyExistsException.
        """
        record = CertificateRecord(
            idempotency_key=idempotency_key,
            document_path=locator.path,
            content_version=locator.content_version,
            status=CertificateStatus.PENDING,
            attempt_count=0,
        )
        self.session.add(record)
        try:
            await self.session.commit()
            await self.session.refresh(record)
            return record
        except IntegrityError:
            await self.session.rollback()
            raise AlreadyExistsException(f"Certificate with key {idempotency_key} already exists")

    async def transition_status(
            self,
            certificate_id: int,
            expected_status: CertificateStatus,
            new_status: CertificateStatus,
            fields: dict[str, Any] | None = None,
            expected_attempt_count: int | None = None,
    ) -> bool:
        """
        Conditional update: applies only while the row still has expected_status
        (and expected_attempt_count, when given).

        :return: False, with nothing written, when another writer got there first
        """
        if not expected_status.can_transition_to(new_status):
            raise InvalidStatusTransition(f"{expected_status.value} -> {new_status.value} is not allowed")

        values = dict(fields or {})
        unknown = set(values) - MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not writable through a transition: {sorted(unknown)}")
        values["status"] = new_status

        stmt = (
            update(CertificateRecord)
            .where(CertificateRecord.id == certificate_id)
            .where(CertificateRecord.status == expected_status)
        )
        if expected_attempt_count is not None:
            stmt = stmt.where(CertificateRecord.attempt_count == expected_attempt_count)
        stmt = stmt.values(**values).execution_options(synchronize_session=False)

        try:
            result = await self.session.execute(stmt)
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise
        return result.rowcount == 1

    async def get_by_id(self, certificate_id: int) -> CertificateRecord:
        query = (
            select(CertificateRecord)
            .where(CertificateRecord.id == certificate_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.scalars(query)
        record = result.one_or_none()
        if not record:
            raise NotFoundException(f"Certificate {certificate_id} not found")
        return record

    async def get_by_key(self, idempotency_key: str) -> CertificateRecord | None:
        return await self._get_by_key(idempotency_key)

    async def search(
            self,
            page: int,
            page_size: int,
            student_id: str | None = None,
            student_name: str | None = None,
            certificate_type: str | None = None,
            graduation_year: int | None = None,
    ) -> tuple[list[CertificateRecord], int]:
        """
        Filtered search, newest first. The id tie-breaker keeps the order
        total, so consecutive pages are disjoint and contiguous.
        """
        conditions = []
        if student_id:
            conditions.append(CertificateRecord.student_id == student_id)
        if student_name:
            conditions.append(CertificateRecord.student_name.icontains(student_name, autoescape=True))
        if certificate_type:
            conditions.append(CertificateRecord.certificate_type == certificate_type)
        if graduation_year is not None:
            conditions.append(CertificateRecord.graduation_year == graduation_year)

        count_query = select(func.count()).select_from(CertificateRecord).where(*conditions)
        total_count = (await self.session.execute(count_query)).scalar_one()

        query = (
            select(CertificateRecord)
            .where(*conditions)
            .order_by(CertificateRecord.created_at.desc(), CertificateRecord.id.desc())
            .limit(page_size)
            .offset((page - 1) * page_size)
        )
        result = await self.session.scalars(query)
        return list(result.all()), total_count

    async def append_log(
            self,
            certificate_id: int | None,
            message: str,
            outcome: LogOutcome,
            idempotency_key: str | None = None,
            attempt: int | None = None,
    ) -> None:
        """
        Append to the processing log. Never raises: a failed audit write is
        reported on the operational log and the caller carries on.
        """
        entry = ProcessingLogEntry(
            certificate_id=certificate_id,
            idempotency_key=idempotency_key,
            message=message,
            outcome=outcome,
            attempt=attempt,
        )
        self.session.add(entry)
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(
                f"Processing log write failed for certificate {certificate_id} "
                f"({outcome.value}: {message}): {e}"
            )

    async def list_logs(self, certificate_id: int) -> list[ProcessingLogEntry]:
        query = (
            select(ProcessingLogEntry)
            .where(ProcessingLogEntry.certificate_id == certificate_id)
            .order_by(ProcessingLogEntry.id)
        )
        result = await self.session.scalars(query)
        return list(result.all())
