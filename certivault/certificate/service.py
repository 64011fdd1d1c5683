# -*- coding: UTF-8 -*-
"""
@File ：service.py
@IDE ：PyCharm
@Author ：zhanzhicai
@Date ：2025/10/31 19:11
@DOC: Certificate query service

Read-only composition of the metadata store and the token issuer. Nothing
here writes to the store.
"""

from certivault.access.token_issuer import AccessTokenIssuer
from certivault.certificate.repository import CertificateRepository
from certivault.core.exceptions import BadRequestException
from certivault.core.logging import get_logger
from certivault.schemas.param_schemas import CertificateQueryParams
from certivault.schemas.schemas import (
    CertificatePage,
    CertificateResponse,
    DownloadTokenResponse,
    ProcessingLogResponse,
)

logger = get_logger(__name__)


class CertificateQueryService:
    def __init__(self, repository: CertificateRepository, token_issuer: AccessTokenIssuer):
        """Service layer for certificate reads."""
        self.repository = repository
        self.token_issuer = token_issuer

    async def search_certificates(self, params: CertificateQueryParams) -> CertificatePage:
        if params.page < 1 or params.page_size < 1:
            raise BadRequestException("page and pageSize must be positive")

        records, total_count = await self.repository.search(
            page=params.page,
            page_size=params.page_size,
            student_id=params.student_id,
            student_name=params.student_name,
            certificate_type=params.certificate_type,
            graduation_year=params.graduation_year,
        )
        return CertificatePage(
            records=[CertificateResponse.model_validate(record) for record in records],
            total_count=total_count,
            page=params.page,
            page_size=params.page_size,
        )

    async def get_certificate(self, certificate_id: int) -> CertificateResponse:
        record = await self.repository.get_by_id(certificate_id)
        return CertificateResponse.model_validate(record)

    async def get_download(self, certificate_id: int) -> DownloadTokenResponse:
        # Token, not bytes: the client fetches the file straight from storage
        return await self.token_issuer.issue_download_token(certificate_id)

    async def get_processing_log(self, certificate_id: int) -> list[ProcessingLogResponse]:
        await self.repository.get_by_id(certificate_id)
        entries = await self.repository.list_logs(certificate_id)
        return [ProcessingLogResponse.model_validate(entry) for entry in entries]
