# -*- coding: UTF-8 -*-
"""
@File ：main.py
@IDE ：PyCharm
@Author ：zhanzhicai
@Date ：2025/10/29 17:31
@DOC: FastAPI application
"""
from contextlib import asynccontextmanager
import asyncio

import uvicorn
from fastapi import FastAPI, Response
from starlette.middleware.cors import CORSMiddleware

from certivault import __version__
from certivault.access.routes import router as files_router
from certivault.certificate.routes import router as certificate_router
from certivault.core.config import settings
from certivault.core.database import initialize_database_for_fastapi, close_database_for_fastapi
from certivault.core.logging import get_logger, setup_logging
from certivault.core.s3_client import ensure_minio_bucket_exists
from certivault.ingestion.routes import router as ingestion_router
from certivault.utils.migrations import run_migrations

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("Application starting, preparing resources...")
    await asyncio.to_thread(run_migrations)

    # Blocking startup work runs in threads so the loop stays free
    startup_tasks = [asyncio.to_thread(initialize_database_for_fastapi)]
    if settings.STORAGE_BACKEND != "local":
        startup_tasks.append(asyncio.to_thread(ensure_minio_bucket_exists, bucket_name=settings.MINIO_BUCKET))
    await asyncio.gather(*startup_tasks)

    logger.info("All resources ready")
    yield
    logger.info("Application shutting down, releasing resources...")
    await close_database_for_fastapi()
    logger.info("Resources released")


app = FastAPI(title=settings.app_name, version=__version__, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(certificate_router)
app.include_router(ingestion_router)
app.include_router(files_router)


@app.get("/health")
async def health_check(response: Response):
    response.status_code = 200
    return {"status": "healthy", "storage": settings.STORAGE_BACKEND}


if __name__ == "__main__":
    uvicorn.run("certivault.main:app", host="0.0.0.0", port=8000, reload=True)
