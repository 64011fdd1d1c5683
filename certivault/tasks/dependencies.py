# -*- coding: UTF-8 -*-
"""
@File ：dependencies.py
@IDE ：PyCharm
@Author ：zhanzhicai
@Date ：2025/11/4 18:07
@DOC: Orchestrator wiring for Celery tasks and the API
"""
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from certivault.core.config import settings
from certivault.core.database import create_engine_and_session_for_celery
from certivault.core.extraction_client import get_document_analyzer
from certivault.core.logging import get_logger
from certivault.core.storage import get_document_store
from certivault.ingestion.orchestrator import ExtractionOrchestrator, HandleOutcome, RetryPolicy, RetryScheduler
from certivault.schemas.schemas import IngestionEvent
from certivault.tasks.dispatch import schedule_retry_with_celery

logger = get_logger(__name__)


def build_orchestrator(
        session_factory: async_sessionmaker[AsyncSession],
        schedule_retry: RetryScheduler = schedule_retry_with_celery,
) -> ExtractionOrchestrator:
    """
    Assemble an orchestrator from settings.
    :param session_factory: sessions for the metadata store
    :param schedule_retry: how transient failures are re-enqueued
    """
    return ExtractionOrchestrator(
        session_factory=session_factory,
        store=get_document_store(),
        analyzer=get_document_analyzer(),
        schedule_retry=schedule_retry,
        retry_policy=RetryPolicy(
            max_attempts=settings.EXTRACTION_MAX_ATTEMPTS,
            base_delay_seconds=settings.RETRY_BACKOFF_BASE_SECONDS,
            max_delay_seconds=settings.RETRY_BACKOFF_MAX_SECONDS,
        ),
        extraction_timeout=settings.EXTRACTION_TIMEOUT_SECONDS,
        lease_seconds=settings.PROCESSING_LEASE_SECONDS,
    )


async def run_ingestion_event(event: IngestionEvent, task_id_log_prefix: str) -> HandleOutcome:
    """
    Handle one event on a task-scoped engine, disposed before returning.
    """
    engine, SessionLocal = create_engine_and_session_for_celery()
    try:
        orchestrator = build_orchestrator(SessionLocal)
        outcome = await orchestrator.handle(event)
        logger.info(f"{task_id_log_prefix} {event.document_identity.path} -> {outcome.value}")
        return outcome
    finally:
        await engine.dispose()
