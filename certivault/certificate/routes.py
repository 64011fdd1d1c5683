# -*- coding: UTF-8 -*-
"""
@File ：routes.py
@IDE ：PyCharm
@Author ：zhanzhicai
@Date ：2025/11/1 01:46
@DOC: Certificate routes

- GET /certificates: filtered, paginated search
- GET /certificates/{id}: single record
- GET /certificates/{id}/download: short-lived download link
- GET /certificates/{id}/logs: processing history
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from certivault.access.token_issuer import AccessTokenIssuer
from certivault.certificate.repository import CertificateRepository
from certivault.certificate.service import CertificateQueryService
from certivault.core.config import settings
from certivault.core.database import get_db
from certivault.core.logging import get_logger
from certivault.core.storage import DocumentStore, get_document_store
from certivault.schemas.param_schemas import CertificateQueryParams
from certivault.schemas.schemas import (
    CertificatePage,
    CertificateResponse,
    DownloadTokenResponse,
    ProcessingLogResponse,
)

logger = get_logger(__name__)
router = APIRouter(prefix="/certificates", tags=["Certificate"])


def get_certificate_service(
        session: AsyncSession = Depends(get_db),
        store: DocumentStore = Depends(get_document_store),
) -> CertificateQueryService:
    repository = CertificateRepository(session)
    token_issuer = AccessTokenIssuer(repository, store, settings.DOWNLOAD_TOKEN_TTL_SECONDS)
    return CertificateQueryService(repository, token_issuer)


@router.get("", response_model=CertificatePage, summary="Search certificates")
async def search_certificates(
        params: Annotated[CertificateQueryParams, Query()],
        service: CertificateQueryService = Depends(get_certificate_service),
) -> CertificatePage:
    try:
        page = await service.search_certificates(params)
        logger.info(f"Search returned {len(page.records)} of {page.total_count} certificates")
        return page
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Certificate search failed: {str(e)}")
        raise


@router.get("/{certificate_id}", response_model=CertificateResponse, summary="Get certificate by id")
async def get_certificate(
        certificate_id: int,
        service: CertificateQueryService = Depends(get_certificate_service),
) -> CertificateResponse:
    return await service.get_certificate(certificate_id)


@router.get(
    "/{certificate_id}/download",
    response_model=DownloadTokenResponse,
    summary="Get a short-lived download link",
    responses={404: {"description": "Unknown certificate"}, 409: {"description": "Certificate not extracted yet"}},
)
async def download_certificate(
        certificate_id: int,
        service: CertificateQueryService = Depends(get_certificate_service),
) -> DownloadTokenResponse:
    try:
        return await service.get_download(certificate_id)
    except HTTPException as e:
        logger.info(f"Download for certificate {certificate_id} refused: {e.status_code} {e.detail}")
        raise


@router.get(
    "/{certificate_id}/logs",
    response_model=list[ProcessingLogResponse],
    summary="Processing history of a certificate",
)
async def get_processing_log(
        certificate_id: int,
        service: CertificateQueryService = Depends(get_certificate_service),
) -> list[ProcessingLogResponse]:
    return await service.get_processing_log(certificate_id)
