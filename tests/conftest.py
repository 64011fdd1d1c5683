"""Pytest configuration and shared fixtures."""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from certivault.core.database import build_engine, build_session_factory, create_db_and_tables, get_db, get_session_factory
from certivault.core.storage import get_document_store
from certivault.ingestion.orchestrator import ExtractionOrchestrator
from certivault.ingestion.routes import get_event_enqueuer, get_orchestrator
from certivault.main import app
from tests.helpers import FakeAnalyzer, FakeDocumentStore, RecordingScheduler


@pytest_asyncio.fixture
async def engine(tmp_path):
    """File-backed SQLite so concurrent sessions see each other's commits."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'certivault.db'}")
    await create_db_and_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def document_store() -> FakeDocumentStore:
    return FakeDocumentStore()


@pytest.fixture
def scheduler() -> RecordingScheduler:
    return RecordingScheduler()


@pytest.fixture
def make_orchestrator(session_factory, document_store, scheduler):
    """Build an orchestrator around the test database and fakes."""

    def _make(analyzer: FakeAnalyzer | None = None, **kwargs) -> ExtractionOrchestrator:
        return ExtractionOrchestrator(
            session_factory=session_factory,
            store=kwargs.pop("store", document_store),
            analyzer=analyzer or FakeAnalyzer(),
            schedule_retry=kwargs.pop("schedule_retry", scheduler),
            **kwargs,
        )

    return _make


@pytest.fixture
def enqueued():
    """Events handed to the task queue by the API."""
    return []


@pytest_asyncio.fixture
async def client(session_factory, document_store, make_orchestrator, enqueued):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    def override_enqueue():
        def _enqueue(event):
            enqueued.append(event)
            return f"task-{len(enqueued)}"
        return _enqueue

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_document_store] = lambda: document_store
    app.dependency_overrides[get_orchestrator] = lambda: make_orchestrator()
    app.dependency_overrides[get_event_enqueuer] = override_enqueue

    # ASGITransport skips the lifespan: no migrations, no bucket checks
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides = {}
