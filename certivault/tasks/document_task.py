# -*- coding: UTF-8 -*-
"""
@File ：document_task.py
@IDE ：PyCharm
@Author ：zhanzhicai
@Date ：2025/11/4 18:07
@DOC: Celery entry point for ingestion events
"""
import asyncio

from pydantic import ValidationError

from certivault.core.celery_app import celery_app
from certivault.core.logging import get_logger
from certivault.schemas.schemas import IngestionEvent
from certivault.tasks.dependencies import run_ingestion_event
from certivault.tasks.dispatch import PROCESS_EVENT_TASK

logger = get_logger(__name__)


@celery_app.task(name=PROCESS_EVENT_TASK, bind=True)
def process_ingestion_event_task(self, event: dict):
    """
    Run the orchestrator for one ingestion event.

    1. Each task gets a fresh event loop
    2. try...finally always closes it
    3. Unexpected errors are logged and re-raised so Celery marks the task FAILED;
       the record stays Processing until its lease expires and a redelivery reclaims it
    """
    task_id_log_prefix = f"[Celery Task ID: {self.request.id}]"

    try:
        ingestion_event = IngestionEvent.model_validate(event)
    except ValidationError as e:
        # Malformed message: nothing to retry
        logger.error(f"{task_id_log_prefix} Rejected malformed ingestion event: {e}")
        return {"status": "rejected", "error": str(e)}

    logger.info(
        f"{task_id_log_prefix} Received {ingestion_event.document_identity.path}"
        f"@{ingestion_event.document_identity.content_version} (attempt {ingestion_event.attempt})"
    )

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    try:
        outcome = loop.run_until_complete(run_ingestion_event(ingestion_event, task_id_log_prefix))
        return {"status": outcome.value}
    except Exception as e:
        logger.exception(f"{task_id_log_prefix} Ingestion failed unexpectedly: {e}")
        raise
    finally:
        logger.debug(f"{task_id_log_prefix} Closing event loop")
        loop.close()
