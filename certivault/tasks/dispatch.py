# -*- coding: UTF-8 -*-
"""
@File ：dispatch.py
@IDE ：PyCharm
@Author ：zhanzhicai
@Date ：2025/11/4 18:40
@DOC: Enqueue ingestion work by task name, without importing the task module
"""
import asyncio

from certivault.core.celery_app import celery_app
from certivault.core.logging import get_logger
from certivault.schemas.schemas import IngestionEvent

logger = get_logger(__name__)

PROCESS_EVENT_TASK = "certivault.tasks.document_task.process_ingestion_event_task"


def enqueue_ingestion_event(event: IngestionEvent, countdown: float | None = None) -> str:
    result = celery_app.send_task(
        PROCESS_EVENT_TASK,
        args=[event.model_dump(mode="json", by_alias=True)],
        countdown=countdown,
    )
    logger.debug(
        f"Enqueued {event.document_identity.path} attempt {event.attempt} as task {result.id}"
        + (f" (in {countdown:g}s)" if countdown else "")
    )
    return result.id


async def schedule_retry_with_celery(event: IngestionEvent, delay_seconds: float) -> None:
    # send_task talks to the broker synchronously
    await asyncio.to_thread(enqueue_ingestion_event, event, delay_seconds)
