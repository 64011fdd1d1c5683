"""HTTP surface: camelCase payloads, status codes, and the local file route."""

import pytest

from certivault.access.routes import get_local_store
from certivault.core.storage import DocumentLocator, LocalDocumentStore
from certivault.main import app
from certivault.models.models import CertificateStatus
from tests.helpers import make_event, seed_certificate


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_get_certificate_uses_camel_case(client, session_factory):
    record = await seed_certificate(session_factory, "c/jane.pdf", student_id="S-1", graduation_year=2024)

    response = await client.get(f"/certificates/{record.id}")

    assert response.status_code == 200
    body = response.json()
    assert body["studentId"] == "S-1"
    assert body["status"] == "Extracted"
    assert body["attemptCount"] == 1
    assert body["documentPath"] == "c/jane.pdf"
    assert "student_id" not in body


@pytest.mark.asyncio
async def test_unknown_certificate_is_404(client):
    assert (await client.get("/certificates/999")).status_code == 404
    assert (await client.get("/certificates/999/download")).status_code == 404
    assert (await client.get("/certificates/999/logs")).status_code == 404


@pytest.mark.asyncio
async def test_download_link_for_extracted_certificate(client, session_factory):
    record = await seed_certificate(session_factory, "c/jane.pdf", version="v9")

    response = await client.get(f"/certificates/{record.id}/download")

    assert response.status_code == 200
    body = response.json()
    assert "versionId=v9" in body["downloadUrl"]
    assert "expiresAt" in body


@pytest.mark.asyncio
async def test_download_before_extraction_is_409(client, session_factory):
    record = await seed_certificate(session_factory, "c/jane.pdf", status=CertificateStatus.PROCESSING)

    response = await client.get(f"/certificates/{record.id}/download")

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_search_paginates_newest_first(client, session_factory):
    for i in range(5):
        await seed_certificate(session_factory, f"c/{i}.pdf", student_id=f"S-{i}")

    pages = []
    for page in (1, 2, 3):
        response = await client.get("/certificates", params={"page": page, "pageSize": 2})
        assert response.status_code == 200
        pages.append(response.json())

    assert [len(p["records"]) for p in pages] == [2, 2, 1]
    assert {p["totalCount"] for p in pages} == {5}
    assert pages[1]["pageSize"] == 2
    student_ids = [r["studentId"] for p in pages for r in p["records"]]
    assert student_ids == ["S-4", "S-3", "S-2", "S-1", "S-0"]


@pytest.mark.asyncio
async def test_search_filters_by_query_aliases(client, session_factory):
    await seed_certificate(session_factory, "c/1.pdf", student_id="S-1", graduation_year=2023)
    await seed_certificate(session_factory, "c/2.pdf", student_id="S-2", graduation_year=2024)

    response = await client.get("/certificates", params={"graduationYear": 2024})

    body = response.json()
    assert body["totalCount"] == 1
    assert body["records"][0]["studentId"] == "S-2"


@pytest.mark.asyncio
@pytest.mark.parametrize("params", [{"pageSize": 0}, {"page": 0}, {"pageSize": 101}])
async def test_invalid_pagination_is_rejected(client, params):
    response = await client.get("/certificates", params=params)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_processing_log_endpoint(client, session_factory, make_orchestrator):
    await make_orchestrator().handle(make_event(path="c/jane.pdf"))

    listing = (await client.get("/certificates")).json()
    certificate_id = listing["records"][0]["id"]
    response = await client.get(f"/certificates/{certificate_id}/logs")

    assert response.status_code == 200
    entries = response.json()
    assert [e["outcome"] for e in entries] == ["Success"]
    assert entries[0]["certificateId"] == certificate_id


@pytest.mark.asyncio
async def test_storage_notification_is_enqueued(client, enqueued):
    payload = {
        "Records": [
            {
                "eventName": "s3:ObjectCreated:Put",
                "eventTime": "2024-06-01T10:00:00Z",
                "s3": {"object": {"key": "c%2Fjane.pdf", "eTag": "e1"}},
            }
        ]
    }

    response = await client.post("/ingestion/events", json=payload)

    assert response.status_code == 202
    assert response.json() == {"accepted": 1}
    assert enqueued[0].document_identity.path == "c/jane.pdf"
    assert enqueued[0].document_identity.content_version == "e1"


@pytest.mark.asyncio
async def test_malformed_notification_is_400(client, enqueued):
    response = await client.post("/ingestion/events", json={"hello": "world"})

    assert response.status_code == 400
    assert enqueued == []


@pytest.mark.asyncio
async def test_reprocess_failed_certificate(client, session_factory, enqueued):
    record = await seed_certificate(session_factory, "c/jane.pdf", status=CertificateStatus.FAILED)

    response = await client.post(f"/ingestion/certificates/{record.id}/reprocess")

    assert response.status_code == 202
    assert response.json()["status"] == "Pending"
    assert response.json()["attemptCount"] == 0
    assert enqueued[0].document_identity.path == "c/jane.pdf"


@pytest.mark.asyncio
async def test_reprocess_extracted_certificate_is_409(client, session_factory, enqueued):
    record = await seed_certificate(session_factory, "c/jane.pdf")

    response = await client.post(f"/ingestion/certificates/{record.id}/reprocess")

    assert response.status_code == 409
    assert enqueued == []


@pytest.fixture
def local_files(tmp_path):
    root = tmp_path / "documents"
    (root / "c").mkdir(parents=True)
    (root / "c" / "jane.pdf").write_bytes(b"%PDF-1.4 jane")
    store = LocalDocumentStore(root=root, secret="test-secret", base_url="http://test")
    app.dependency_overrides[get_local_store] = lambda: store
    return store


@pytest.mark.asyncio
async def test_local_file_download(client, local_files):
    scoped = local_files.issue_scoped_token(DocumentLocator("c/jane.pdf", "v1"), ttl_seconds=60)

    response = await client.get(scoped.url)

    assert response.status_code == 200
    assert response.content == b"%PDF-1.4 jane"


@pytest.mark.asyncio
async def test_local_file_token_errors(client, local_files):
    expired = local_files.issue_scoped_token(DocumentLocator("c/jane.pdf", "v1"), ttl_seconds=-1)

    assert (await client.get(expired.url)).status_code == 410
    assert (await client.get("/files/garbage")).status_code == 403
