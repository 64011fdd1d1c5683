import httpx
import pytest

from certivault.core.exceptions import PermanentExtractionError, TransientExtractionError
from certivault.core.extraction_client import HttpDocumentAnalyzer

ENDPOINT = "http://analyzer.test/analyze"


def analyzer_for(handler, api_key="") -> HttpDocumentAnalyzer:
    return HttpDocumentAnalyzer(ENDPOINT, api_key=api_key, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_successful_analysis():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = request.content
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json={"fields": {"certificateType": "Diploma"}, "confidence": 0.9})

    result = await analyzer_for(handler, api_key="k-1").analyze(b"%PDF")

    assert result.fields == {"certificateType": "Diploma"}
    assert result.confidence == 0.9
    assert seen == {"body": b"%PDF", "auth": "Bearer k-1"}


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [429, 500, 503])
async def test_retryable_status_is_transient(status_code):
    analyzer = analyzer_for(lambda request: httpx.Response(status_code))

    with pytest.raises(TransientExtractionError):
        await analyzer.analyze(b"%PDF")


@pytest.mark.asyncio
async def test_connection_error_is_transient():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransientExtractionError):
        await analyzer_for(handler).analyze(b"%PDF")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(422, json={"detail": "unsupported format"}),
        httpx.Response(200, text="<html>oops</html>"),
        httpx.Response(200, json={"error": {"code": "NotACertificate", "message": "blank page"}}),
        httpx.Response(200, json=["fields"]),
        httpx.Response(200, json={"fields": "not a map"}),
    ],
)
async def test_rejections_and_malformed_payloads_are_permanent(response):
    with pytest.raises(PermanentExtractionError):
        await analyzer_for(lambda request: response).analyze(b"%PDF")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error_type",
    [httpx.DecodingError, httpx.TooManyRedirects],
)
async def test_other_request_errors_are_transient(error_type):
    def handler(request):
        raise error_type("broken response", request=request)

    with pytest.raises(TransientExtractionError, match=error_type.__name__):
        await analyzer_for(handler).analyze(b"%PDF")
