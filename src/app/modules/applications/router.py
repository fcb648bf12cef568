"""
Internship Applications Router

Public endpoints (no authentication) used by the application form.

Endpoints:
- GET /form-token - Issue a signed form timing token
- POST /submit - Submit an internship application
- GET /forms/{id} - Public view of a submitted application

Security:
- Layered anti-abuse checks in the service (size, IP ban, rate limit,
  CAPTCHA, timing token, email cooldown, validation, duplicates)
- The submitter's IP address is never returned by the view endpoint
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.core.config import settings
from app.core.form_token import issue_form_token
from app.core.rate_limit import SubmissionThrottle, get_throttle
from app.core.request_info import get_base_url, get_client_ip
from app.core.storage import ObjectStorage, get_storage
from app.modules.applications import service
from app.modules.applications.schemas import (
    FormTokenResponse,
    FormViewResponse,
    SubmissionResponse,
)
from app.modules.applications.service import (
    ApplicationServiceError,
    RateLimitExceededError,
)
from app.repository import PortalStore, get_store

logger = logging.getLogger(__name__)

router = APIRouter()


def _http_error(e: ApplicationServiceError) -> HTTPException:
    headers = None
    if isinstance(e, RateLimitExceededError):
        headers = {"Retry-After": str(e.retry_after_seconds)}
    return HTTPException(
        status_code=e.status_code,
        detail={
            "error": e.error_code,
            "message": e.message,
        },
        headers=headers,
    )


async def read_capped_body(request: Request, limit: int) -> bytes:
    """
    Read the request body, stopping at the first chunk that takes it past ``limit``.

    The returned bytes are longer than ``limit`` exactly when the body was cut
    short, which the size check in the service rejects.
    """
    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            break
    return bytes(body)


def _internal_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "error": "INTERNAL_ERROR",
            "message": "Server error. Please try again later.",
        },
    )


@router.get(
    "/form-token",
    response_model=FormTokenResponse,
    summary="Issue Form Token",
    description="""
Issue a signed token recording when the form was loaded.

The client sends it back as `formToken` on submission. Submissions made less
than 10 seconds after issue, or more than an hour later, are rejected.
""",
)
async def get_form_token(request: Request) -> FormTokenResponse:
    return FormTokenResponse(token=issue_form_token(get_client_ip(request)))


@router.post(
    "/submit",
    response_model=SubmissionResponse,
    response_model_by_alias=True,
    summary="Submit Internship Application",
    description="""
Submit a new internship application.

The body is JSON with camelCase keys (`studentName`, `emailAddress`, ...),
base64 data URLs for `photo` and `signature`, `declarationAccepted`, and the
anti-abuse fields `turnstileToken`, `formToken` and the hidden `website`
honeypot.

**Response:** the new application's id, its public view URL and a QR code
(PNG data URL) pointing to that view.
""",
    responses={
        400: {"description": "Invalid body, failed CAPTCHA/timing check or validation error"},
        403: {"description": "IP temporarily blocked after repeated suspicious requests"},
        409: {"description": "Email or university roll number already registered"},
        413: {"description": "Request body larger than the configured ceiling"},
        429: {"description": "Rate limit or email cooldown active"},
    },
)
async def submit_application(
    request: Request,
    store: PortalStore = Depends(get_store),
    throttle: SubmissionThrottle = Depends(get_throttle),
    storage: ObjectStorage = Depends(get_storage),
) -> SubmissionResponse:
    """
    Submit an internship application.

    Args:
        request: raw request (body, headers for IP and base URL)
        store: persistence backend (injected)
        throttle: anti-abuse throttle (injected)
        storage: object storage for images (injected)

    Returns:
        SubmissionResponse with id, viewUrl and qrCode

    Raises:
        HTTPException: status and code of the first failed check
    """
    client_ip = get_client_ip(request)
    declared_length = request.headers.get("content-length", "")
    content_length = int(declared_length) if declared_length.isdigit() else None

    try:
        if content_length is not None and content_length > settings.max_request_bytes:
            body = b""
        else:
            body = await read_capped_body(request, settings.max_request_bytes)
        return await service.submit_application(
            store,
            throttle,
            storage,
            body=body,
            client_ip=client_ip,
            base_url=get_base_url(request),
            content_length=content_length,
        )
    except ApplicationServiceError as e:
        raise _http_error(e) from e
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error submitting application: {e}")
        raise _internal_error() from e


@router.get(
    "/forms/{application_id}",
    response_model=FormViewResponse,
    summary="View Submitted Application",
    responses={404: {"description": "Form not found or has expired"}},
)
async def view_application(
    application_id: UUID,
    store: PortalStore = Depends(get_store),
) -> FormViewResponse:
    """Public, read-only view of a submitted application (IP address removed)."""
    try:
        application = await service.get_public_application(store, application_id)
    except ApplicationServiceError as e:
        raise _http_error(e) from e

    return FormViewResponse(data=application)
