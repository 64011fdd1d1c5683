# -*- coding: UTF-8 -*-
"""
@File ：routes.py
@IDE ：PyCharm
@Author ：zhanzhicai
@Date ：2025/11/4 19:02
@DOC: Ingestion routes

- POST /ingestion/events: bucket notification webhook (MinIO / S3)
- POST /ingestion/certificates/{id}/reprocess: restart a Failed certificate

Both only enqueue work; the Celery worker runs the orchestrator.
"""
from typing import Any, Callable

from fastapi import APIRouter, Body, Depends, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from certivault.certificate.repository import CertificateRepository
from certivault.core.database import get_session_factory
from certivault.core.logging import get_logger
from certivault.ingestion.events import parse_storage_notification
from certivault.ingestion.orchestrator import ExtractionOrchestrator
from certivault.schemas.schemas import CertificateResponse, IngestionAccepted, IngestionEvent
from certivault.tasks.dependencies import build_orchestrator
from certivault.tasks.dispatch import enqueue_ingestion_event

logger = get_logger(__name__)
router = APIRouter(prefix="/ingestion", tags=["Ingestion"])

EventEnqueuer = Callable[[IngestionEvent], str]


def get_event_enqueuer() -> EventEnqueuer:
    return enqueue_ingestion_event


def get_orchestrator(
        session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> ExtractionOrchestrator:
    return build_orchestrator(session_factory)


@router.post(
    "/events",
    response_model=IngestionAccepted,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Receive a storage notification",
)
async def receive_storage_notification(
        payload: dict[str, Any] = Body(...),
        enqueue: EventEnqueuer = Depends(get_event_enqueuer),
) -> IngestionAccepted:
    events = parse_storage_notification(payload)
    for event in events:
        task_id = await run_in_threadpool(enqueue, event)
        logger.info(
            f"Queued ingestion of {event.document_identity.path}@{event.document_identity.content_version} "
            f"(task {task_id})"
        )
    return IngestionAccepted(accepted=len(events))


@router.post(
    "/certificates/{certificate_id}/reprocess",
    response_model=CertificateResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Reprocess a Failed certificate",
    responses={404: {"description": "Unknown certificate"}, 409: {"description": "Certificate is not Failed"}},
)
async def reprocess_certificate(
        certificate_id: int,
        orchestrator: ExtractionOrchestrator = Depends(get_orchestrator),
        enqueue: EventEnqueuer = Depends(get_event_enqueuer),
        session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> CertificateResponse:
    event = await orchestrator.request_reprocessing(certificate_id)
    task_id = await run_in_threadpool(enqueue, event)
    logger.info(f"Certificate {certificate_id} queued for reprocessing (task {task_id})")

    async with session_factory() as session:
        record = await CertificateRepository(session).get_by_id(certificate_id)
    return CertificateResponse.model_validate(record)
