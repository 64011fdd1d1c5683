# -*- coding: UTF-8 -*-
"""
@File ：token_issuer.py
@IDE ：PyCharm
@Author ：zhanzhicai
@Date ：2025/11/5 10:02
@DOC: Access token issuer

Mints a download credential scoped to the one document behind a verified
certificate. Reads the store only; issuing twice just yields two
independent tokens.
"""
from certivault.certificate.repository import CertificateRepository
from certivault.core.exceptions import NotReadyException
from certivault.core.logging import get_logger
from certivault.core.storage import DocumentLocator, DocumentStore
from certivault.models.models import CertificateStatus
from certivault.schemas.schemas import DownloadTokenResponse

logger = get_logger(__name__)


class AccessTokenIssuer:
    def __init__(self, repository: CertificateRepository, store: DocumentStore, ttl_seconds: int):
        if ttl_seconds <= 0:
            raise ValueError("Download token TTL must be positive")
        self.repository = repository
        self.store = store
        self.ttl_seconds = ttl_seconds

    async def issue_download_token(self, certificate_id: int) -> DownloadTokenResponse:
        """
        :raises NotFoundException: unknown certificate
        :raises NotReadyException: certificate is not Extracted
        """
        record = await self.repository.get_by_id(certificate_id)
        if record.status != CertificateStatus.EXTRACTED:
            raise NotReadyException(
                f"Certificate {certificate_id} is {record.status.value}, not downloadable yet"
            )

        token = self.store.issue_scoped_token(DocumentLocator.from_record(record), self.ttl_seconds)
        logger.info(f"Issued download token for certificate {certificate_id}, expires {token.expires_at.isoformat()}")
        return DownloadTokenResponse(download_url=token.url, expires_at=token.expires_at)
