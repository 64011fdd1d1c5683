import io

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from certivault.core.exceptions import ForbiddenException, PermanentExtractionError, TransientExtractionError
from certivault.core.s3_client import ensure_minio_bucket_exists
from certivault.core.storage import DocumentLocator, LocalDocumentStore, S3DocumentStore

LOCATOR = DocumentLocator("certificates/2024/jane.pdf", "abc123")


class StubS3Client:
    def __init__(self, error: Exception | None = None):
        self.error = error
        self.get_calls: list[dict] = []
        self.presign_calls: list[tuple] = []

    def get_object(self, **params):
        self.get_calls.append(params)
        if self.error:
            raise self.error
        return {"Body": io.BytesIO(b"%PDF-1.4")}

    def generate_presigned_url(self, operation, Params, ExpiresIn):
        self.presign_calls.append((operation, Params, ExpiresIn))
        return f"https://minio.test/{Params['Bucket']}/{Params['Key']}?X-Amz-Expires={ExpiresIn}"


def client_error(code: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, "GetObject")


@pytest.mark.asyncio
async def test_unversioned_get_pins_etag():
    client = StubS3Client()
    store = S3DocumentStore(client, "certificates")

    assert await store.get(LOCATOR) == b"%PDF-1.4"
    assert client.get_calls == [{"Bucket": "certificates", "Key": LOCATOR.path, "IfMatch": '"abc123"'}]


@pytest.mark.asyncio
async def test_versioned_get_uses_version_id():
    client = StubS3Client()
    store = S3DocumentStore(client, "certificates", versioned=True)

    await store.get(LOCATOR)
    assert client.get_calls == [{"Bucket": "certificates", "Key": LOCATOR.path, "VersionId": "abc123"}]


@pytest.mark.asyncio
@pytest.mark.parametrize("code", ["NoSuchKey", "NoSuchVersion", "PreconditionFailed"])
async def test_missing_or_replaced_object_is_permanent(code):
    store = S3DocumentStore(StubS3Client(client_error(code)), "certificates")

    with pytest.raises(PermanentExtractionError):
        await store.get(LOCATOR)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        client_error("SlowDown"),
        client_error("InternalError"),
        client_error("AccessDenied"),
        client_error("403"),
        EndpointConnectionError(endpoint_url="http://minio"),
    ],
)
async def test_storage_hiccups_are_transient(error):
    store = S3DocumentStore(StubS3Client(error), "certificates")

    with pytest.raises(TransientExtractionError):
        await store.get(LOCATOR)


def test_presigned_url_is_scoped_to_one_version():
    client = StubS3Client()
    store = S3DocumentStore(client, "certificates", versioned=True)

    scoped = store.issue_scoped_token(LOCATOR, ttl_seconds=300)

    operation, params, expires_in = client.presign_calls[0]
    assert operation == "get_object"
    assert params["VersionId"] == "abc123"
    assert params["ResponseContentDisposition"] == 'attachment; filename="jane.pdf"'
    assert expires_in == 300
    assert "X-Amz-Expires=300" in scoped.url


@pytest.mark.asyncio
async def test_local_store_reads_and_rejects_traversal(tmp_path):
    (tmp_path / "certificates").mkdir()
    (tmp_path / "certificates" / "jane.pdf").write_bytes(b"%PDF-1.4 local")
    store = LocalDocumentStore(root=tmp_path, secret="s")

    assert await store.get(DocumentLocator("certificates/jane.pdf", "v1")) == b"%PDF-1.4 local"
    with pytest.raises(PermanentExtractionError):
        await store.get(DocumentLocator("certificates/missing.pdf", "v1"))
    with pytest.raises(PermanentExtractionError):
        store.resolve(DocumentLocator("../outside.pdf", "v1"))


class StubBucketClient:
    def __init__(self, head_error: Exception | None = None):
        self.head_error = head_error
        self.created: list[str] = []

    def head_bucket(self, Bucket):
        if self.head_error:
            raise self.head_error

    def create_bucket(self, Bucket):
        self.created.append(Bucket)


def test_existing_bucket_is_left_alone():
    client = StubBucketClient()
    ensure_minio_bucket_exists("certificates", client=client)
    assert client.created == []


def test_missing_bucket_is_created():
    client = StubBucketClient(ClientError({"Error": {"Code": "404"}}, "HeadBucket"))
    ensure_minio_bucket_exists("certificates", client=client)
    assert client.created == ["certificates"]


def test_forbidden_bucket_raises():
    client = StubBucketClient(ClientError({"Error": {"Code": "403"}}, "HeadBucket"))
    with pytest.raises(ForbiddenException):
        ensure_minio_bucket_exists("certificates", client=client)
