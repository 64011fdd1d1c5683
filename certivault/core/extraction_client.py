# -*- coding: UTF-8 -*-
"""
@File ：extraction_client.py
@IDE ：PyCharm
@Author ：zhanzhicai
@Date ：2025/11/7 09:24
@DOC: Document-understanding client

The analyzer is an external HTTP service: the document bytes go in, a map of
extracted fields plus an overall confidence come out. This client makes one
request per call; retries belong to the orchestrator, which re-enqueues the
whole attempt with backoff.
"""
from typing import Protocol

import httpx
from pydantic import ValidationError

from certivault.core.config import settings
from certivault.core.exceptions import PermanentExtractionError, TransientExtractionError
from certivault.core.logging import get_logger
from certivault.schemas.schemas import ExtractionResult

logger = get_logger(__name__)

# Status codes worth another attempt later
RETRYABLE_STATUS_CODES = {408, 425, 429, 500, 502, 503, 504}


class DocumentAnalyzer(Protocol):
    async def analyze(self, content: bytes) -> ExtractionResult: ...


class HttpDocumentAnalyzer:
    """
    POSTs the raw document to EXTRACTION_ENDPOINT.

    Expected response body:
        {"fields": {"studentName": "...", ...}, "confidence": 0.93}
    or, for documents the service refuses:
        {"error": {"code": "...", "message": "..."}}
    """

    def __init__(
            self,
            endpoint: str,
            api_key: str = "",
            timeout: float = 30.0,
            transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.endpoint = endpoint
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/octet-stream", "Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def analyze(self, content: bytes) -> ExtractionResult:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.endpoint, content=content, headers=self._headers())
        except httpx.TimeoutException as e:
            raise TransientExtractionError(f"Extraction request timed out: {e}") from e
        except httpx.TransportError as e:
            raise TransientExtractionError(f"Extraction transport error: {e}") from e
        except httpx.HTTPError as e:
            # Decoding errors, redirect loops and the like
            raise TransientExtractionError(f"Extraction request failed: {type(e).__name__}: {e}") from e

        if response.status_code in RETRYABLE_STATUS_CODES:
            logger.warning(f"Extraction service returned {response.status_code}, will retry")
            raise TransientExtractionError(f"Extraction service returned {response.status_code}")
        if response.status_code >= 400:
            logger.error(f"Extraction service rejected document: {response.status_code} {response.text[:200]}")
            raise PermanentExtractionError(f"Extraction service rejected document ({response.status_code})")

        try:
            payload = response.json()
        except ValueError as e:
            raise PermanentExtractionError("Extraction service returned a non-JSON body") from e

        if not isinstance(payload, dict):
            raise PermanentExtractionError("Extraction service returned an unexpected payload")
        if payload.get("error"):
            error = payload["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise PermanentExtractionError(f"Extraction service reported an error: {message}")

        try:
            return ExtractionResult.model_validate(payload)
        except ValidationError as e:
            raise PermanentExtractionError(f"Malformed extraction payload: {e.errors()}") from e


def get_document_analyzer() -> DocumentAnalyzer:
    # The orchestrator enforces the per-attempt timeout; the httpx timeout is a backstop
    return HttpDocumentAnalyzer(
        endpoint=settings.EXTRACTION_ENDPOINT,
        api_key=settings.EXTRACTION_API_KEY,
        timeout=settings.EXTRACTION_TIMEOUT_SECONDS + 5,
    )
