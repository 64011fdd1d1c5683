# -*- coding: UTF-8 -*-
"""
@File ：celery_app.py
@IDE ：PyCharm
@Author ：zhanzhicai
@Date ：2025/10/31 15:57
@DOC: Celery configuration

RabbitMQ is the broker, Redis stores results. Ingestion events run on
document_queue; late acks plus reject-on-worker-lost give at-least-once
execution, which the orchestrator tolerates.
"""

from celery import Celery
from celery.signals import setup_logging as celery_setup_logging

from certivault.core.config import settings
from certivault.core.logging import setup_logging


CELERY_BROKER_URL = f"amqp://{settings.RABBITMQ_USER}:{settings.RABBITMQ_PASSWORD}@{settings.RABBITMQ_HOST}/"


CELERY_RESULT_BACKEND = f"redis://{settings.REDIS_HOST}/2"


celery_app = Celery(
    "certivault",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
    include=["certivault.tasks.document_task"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    result_expires=3600,
    task_routes={
        "certivault.tasks.document_task.*": {"queue": "document_queue"},
    },
    task_queues={
        "celery": {
            "exchange": "celery",
            "routing_key": "celery",
        },
        "document_queue": {
            "exchange": "document_queue",
            "routing_key": "document_queue",
        },
    },
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
)


@celery_setup_logging.connect
def configure_worker_logging(**kwargs):
    # Connecting this signal stops Celery from installing its own handlers
    setup_logging()


# celery -A certivault.core.celery_app worker --loglevel=info -Q celery,document_queue --concurrency=4
