from datetime import datetime, timedelta, timezone

import jwt
import pytest

from certivault.access.token_issuer import AccessTokenIssuer
from certivault.certificate.repository import CertificateRepository
from certivault.core.exceptions import ForbiddenException, GoneException, NotFoundException, NotReadyException
from certivault.core.storage import DocumentLocator, LocalDocumentStore
from certivault.models.models import CertificateStatus
from tests.helpers import FakeDocumentStore, seed_certificate

SECRET = "test-secret"


@pytest.fixture
def local_store(tmp_path) -> LocalDocumentStore:
    return LocalDocumentStore(root=tmp_path, secret=SECRET, base_url="http://test/")


@pytest.mark.asyncio
async def test_issues_token_for_extracted_certificate(session_factory, session):
    record = await seed_certificate(session_factory, "certificates/2024/jane.pdf", version="v7")
    issuer = AccessTokenIssuer(CertificateRepository(session), FakeDocumentStore(), ttl_seconds=300)

    before = datetime.now(timezone.utc)
    token = await issuer.issue_download_token(record.id)

    assert "certificates/2024/jane.pdf" in token.download_url
    assert "versionId=v7" in token.download_url
    assert before + timedelta(seconds=299) <= token.expires_at <= datetime.now(timezone.utc) + timedelta(seconds=300)


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [CertificateStatus.PENDING, CertificateStatus.PROCESSING, CertificateStatus.FAILED])
async def test_refuses_certificates_that_are_not_extracted(session_factory, session, status):
    record = await seed_certificate(session_factory, "certificates/2024/jane.pdf", status=status)
    issuer = AccessTokenIssuer(CertificateRepository(session), FakeDocumentStore(), ttl_seconds=300)

    with pytest.raises(NotReadyException) as exc_info:
        await issuer.issue_download_token(record.id)
    assert exc_info.value.status_code == 409


@pytest.mark.asyncio
async def test_unknown_certificate_is_not_found(session):
    issuer = AccessTokenIssuer(CertificateRepository(session), FakeDocumentStore(), ttl_seconds=300)

    with pytest.raises(NotFoundException):
        await issuer.issue_download_token(404404)


@pytest.mark.asyncio
async def test_ttl_must_be_positive(session):
    with pytest.raises(ValueError):
        AccessTokenIssuer(CertificateRepository(session), FakeDocumentStore(), ttl_seconds=0)


def test_local_token_grants_exactly_one_document(local_store):
    locator = DocumentLocator("certificates/2024/jane.pdf", "etag-1")

    scoped = local_store.issue_scoped_token(locator, ttl_seconds=60)

    assert scoped.url.startswith("http://test/files/")
    token = scoped.url.rsplit("/", 1)[1]
    assert local_store.verify_token(token) == locator
    claims = jwt.decode(token, SECRET, algorithms=["HS256"])
    assert claims["scope"] == "document:read"
    assert claims["exp"] == int(scoped.expires_at.timestamp())


def test_expired_local_token_is_gone(local_store):
    scoped = local_store.issue_scoped_token(DocumentLocator("a.pdf", "v1"), ttl_seconds=-5)

    with pytest.raises(GoneException):
        local_store.verify_token(scoped.url.rsplit("/", 1)[1])


def test_tampered_or_foreign_tokens_are_forbidden(local_store):
    foreign = jwt.encode(
        {"sub": "a.pdf", "ver": "v1", "scope": "document:read",
         "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
        "another-secret",
        algorithm="HS256",
    )
    wrong_scope = jwt.encode(
        {"sub": "a.pdf", "ver": "v1", "scope": "admin",
         "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
        SECRET,
        algorithm="HS256",
    )

    for token in ("not-a-token", foreign, wrong_scope):
        with pytest.raises(ForbiddenException):
            local_store.verify_token(token)
