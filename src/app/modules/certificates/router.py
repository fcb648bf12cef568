"""
Certificates Router

Endpoints:
- POST /certificates/generate - Issue a certificate for an existing application (admin)
- POST /certificates/generate-scratch - Create a student and issue a certificate (admin)
- GET /certificates/{id} - Public verification view of a certificate
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.core.auth import require_admin
from app.core.rate_limit import admin_rate_limit
from app.core.request_info import get_base_url
from app.core.storage import ObjectStorage, get_storage
from app.modules.certificates import service
from app.modules.certificates.schemas import (
    CertificateGenerateRequest,
    CertificateIssueResponse,
    CertificateScratchRequest,
    CertificateViewResponse,
)
from app.modules.certificates.service import CertificateServiceError
from app.repository import PortalStore, get_store

logger = logging.getLogger(__name__)

router = APIRouter()


def _http_error(e: CertificateServiceError) -> HTTPException:
    return HTTPException(
        status_code=e.status_code,
        detail={
            "error": e.error_code,
            "message": e.message,
            **e.extra,
        },
    )


def _internal_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "error": "INTERNAL_ERROR",
            "message": "Failed to generate certificate",
        },
    )


@router.post(
    "/generate",
    response_model=CertificateIssueResponse,
    response_model_by_alias=True,
    dependencies=[Depends(admin_rate_limit), Depends(require_admin)],
    summary="Issue Certificate",
    responses={
        404: {"description": "Application not found"},
        409: {"description": "Certificate already exists (original id, serial and URL included)"},
    },
)
async def generate_certificate(
    payload: CertificateGenerateRequest,
    request: Request,
    store: PortalStore = Depends(get_store),
    storage: ObjectStorage = Depends(get_storage),
) -> CertificateIssueResponse:
    """
    Issue a completion certificate for a submitted application.

    **Requires:** admin bearer credential
    """
    try:
        return await service.issue_certificate(store, storage, payload, get_base_url(request))
    except CertificateServiceError as e:
        raise _http_error(e) from e
    except Exception as e:
        logger.exception(f"Certificate generation error: {e}")
        raise _internal_error() from e


@router.post(
    "/generate-scratch",
    response_model=CertificateIssueResponse,
    response_model_by_alias=True,
    dependencies=[Depends(admin_rate_limit), Depends(require_admin)],
    summary="Create Student and Issue Certificate",
    responses={409: {"description": "Roll number already registered"}},
)
async def generate_certificate_from_scratch(
    payload: CertificateScratchRequest,
    request: Request,
    store: PortalStore = Depends(get_store),
    storage: ObjectStorage = Depends(get_storage),
) -> CertificateIssueResponse:
    """
    Create a student record from the supplied details and certify it.

    **Requires:** admin bearer credential
    """
    try:
        return await service.issue_certificate_from_scratch(
            store, storage, payload, get_base_url(request)
        )
    except CertificateServiceError as e:
        raise _http_error(e) from e
    except Exception as e:
        logger.exception(f"Scratch certificate generation error: {e}")
        raise _internal_error() from e


@router.get(
    "/{certificate_id}",
    response_model=CertificateViewResponse,
    summary="Verify Certificate",
    responses={404: {"description": "Certificate not found"}},
)
async def view_certificate(
    certificate_id: UUID,
    store: PortalStore = Depends(get_store),
) -> CertificateViewResponse:
    """Public verification view: the certificate and its student (IP address removed)."""
    try:
        view = await service.get_public_certificate(store, certificate_id)
    except CertificateServiceError as e:
        raise _http_error(e) from e

    return CertificateViewResponse(data=view)
