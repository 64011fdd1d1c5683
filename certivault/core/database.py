# -*- coding: UTF-8 -*-
"""
@File ：database.py
@IDE ：PyCharm
@Author ：zhanzhicai
@Date ：2025/10/31 16:15
@DOC: Database engine and session management

The API process owns one global engine created in the FastAPI lifespan.
Celery tasks build a short-lived engine per task, because each task runs on
its own event loop.
"""
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession, AsyncEngine

from certivault.core.config import settings
from certivault.core.logging import get_logger
from certivault.models.models import Base

logger = get_logger(__name__)

# Populated by the FastAPI lifespan
engine: Optional[AsyncEngine] = None
SessionLocal: Optional[async_sessionmaker[AsyncSession]] = None


def build_engine(url: str | None = None, **kwargs) -> AsyncEngine:
    """Create an async engine; pool sizing only applies to server databases."""
    url = url or settings.database_url
    if url.startswith("postgresql"):
        kwargs.setdefault("pool_size", 20)
        kwargs.setdefault("max_overflow", 10)
        kwargs.setdefault("pool_timeout", 30)
        kwargs.setdefault("pool_recycle", 3600)
    return create_async_engine(url, echo=False, **kwargs)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False keeps returned records readable after commit
    return async_sessionmaker(class_=AsyncSession, expire_on_commit=False, bind=bind)


def initialize_database_for_fastapi():
    """
    Create the global engine and session factory at API startup.
    """
    global engine, SessionLocal
    engine = build_engine()
    SessionLocal = build_session_factory(engine)
    logger.info("Database engine and session factory created for FastAPI")


async def close_database_for_fastapi():
    """
    Dispose the global engine at API shutdown.
    """
    global engine
    if engine:
        await engine.dispose()
        logger.info("FastAPI database engine disposed")


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency yielding one session per request.
    """
    if SessionLocal is None:
        raise RuntimeError("Database is not initialized. Check the FastAPI lifespan.")

    async with SessionLocal() as session:
        yield session


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """FastAPI dependency for code that opens its own sessions (the orchestrator)."""
    if SessionLocal is None:
        raise RuntimeError("Database is not initialized. Check the FastAPI lifespan.")
    return SessionLocal


def create_engine_and_session_for_celery():
    """
    Build a task-scoped engine and session factory.
    The caller disposes the engine when the task finishes.
    """
    celery_engine = build_engine()
    CelerySessionLocal = build_session_factory(celery_engine)
    return celery_engine, CelerySessionLocal


async def create_db_and_tables(bind: AsyncEngine | None = None):
    """
    Create all tables that do not exist yet. Alembic owns the schema in
    deployments; this is used for local development and tests.
    """
    target = bind or engine
    if not target:
        raise RuntimeError("Cannot create tables: database engine is not initialized.")

    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
