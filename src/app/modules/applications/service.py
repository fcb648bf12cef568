"""
Internship Applications Service Layer

Business logic for accepting public internship applications.

Submission pipeline (stops at the first failing step):
1. Request size ceiling                     -> 413, suspicious
2. IP flagged as suspicious                 -> 403
3. Per-IP rate limit                        -> 429
4. JSON body parsing                        -> 400, suspicious
5. CAPTCHA (when a provider secret is set)  -> 400, suspicious
6. Form timing token (when present)         -> 400, suspicious
7. Per-email cooldown                       -> 429
8. Field validation                         -> 400, suspicious
9. Duplicate email / roll number            -> 409
10. Image upload (inline fallback)          -> 500 only if fallback disabled
11. Insert                                  -> 500 on failure, 409 on unique violation
12. QR code for the view link (best effort)
13. Success response

Security considerations:
- Throttle state is only written by steps 3 and 7 and by suspicious-activity
  recording; a rejected rate-limit or cooldown check consumes nothing
- Unique constraints back the duplicate pre-check (step 9) against races
- Error messages never include stack traces or internal identifiers
"""

import json
import logging
import math
from uuid import UUID

from pydantic import ValidationError

from app.core.captcha import is_captcha_enabled, verify_turnstile_token
from app.core.config import settings
from app.core.form_token import verify_form_token
from app.core.qr import qr_data_url
from app.core.rate_limit import SubmissionThrottle
from app.core.storage import ObjectStorage, StorageError
from app.modules.applications.options import DEFAULT_UNIVERSITY, OTHER
from app.modules.applications.schemas import (
    ApplicationPublic,
    ApplicationSubmission,
    NewApplication,
    SubmissionResponse,
)
from app.modules.applications.validators import clean_text, parse_date, validate_submission
from app.repository.base import DuplicateRecordError, PortalStore, StoreError

logger = logging.getLogger(__name__)

DUPLICATE_EMAIL_MESSAGE = (
    "An application with this email already exists. Please use a different email."
)
DUPLICATE_ROLL_MESSAGE = "An application with this university roll number already exists."


class ApplicationServiceError(Exception):
    """Base exception for application service errors."""

    def __init__(self, message: str, error_code: str, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


class PayloadTooLargeError(ApplicationServiceError):
    def __init__(self):
        super().__init__(
            message="Request too large",
            error_code="PAYLOAD_TOO_LARGE",
            status_code=413,
        )


class SuspiciousIPError(ApplicationServiceError):
    def __init__(self):
        super().__init__(
            message="Access denied. Please try again later.",
            error_code="ACCESS_DENIED",
            status_code=403,
        )


class RateLimitExceededError(ApplicationServiceError):
    """Raised when an IP exceeds the submission rate limit."""

    def __init__(self, wait_minutes: int, retry_after_seconds: int):
        self.retry_after_seconds = retry_after_seconds
        super().__init__(
            message=f"Too many submissions. Please try again in {wait_minutes} minutes.",
            error_code="RATE_LIMIT_EXCEEDED",
            status_code=429,
        )


class InvalidRequestError(ApplicationServiceError):
    def __init__(self, message: str = "Invalid request body"):
        super().__init__(message=message, error_code="INVALID_REQUEST", status_code=400)


class CaptchaFailedError(ApplicationServiceError):
    def __init__(self):
        super().__init__(
            message="CAPTCHA verification failed. Please try again.",
            error_code="CAPTCHA_FAILED",
            status_code=400,
        )


class FormTokenError(ApplicationServiceError):
    """Raised when the form timing token is invalid, expired or too fresh."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(
            message="Form verification failed. Please reload the page and try again.",
            error_code="FORM_TOKEN_INVALID",
            status_code=400,
        )


class EmailCooldownError(ApplicationServiceError):
    def __init__(self, wait_minutes: int):
        super().__init__(
            message=(
                f"This email was recently used. Please try again in {wait_minutes} minutes "
                "or use a different email."
            ),
            error_code="EMAIL_COOLDOWN",
            status_code=429,
        )


class SubmissionValidationError(ApplicationServiceError):
    def __init__(self, message: str):
        super().__init__(message=message, error_code="VALIDATION_ERROR", status_code=400)


class DuplicateApplicationError(ApplicationServiceError):
    """Raised when a duplicate application is detected."""

    def __init__(self, message: str):
        super().__init__(message=message, error_code="DUPLICATE_APPLICATION", status_code=409)


class ImageUploadError(ApplicationServiceError):
    def __init__(self):
        super().__init__(
            message="Failed to store uploaded images. Please try again.",
            error_code="IMAGE_UPLOAD_FAILED",
            status_code=500,
        )


class SubmissionPersistenceError(ApplicationServiceError):
    def __init__(self):
        super().__init__(
            message="Failed to submit application. Please try again.",
            error_code="SUBMISSION_FAILED",
            status_code=500,
        )


class ApplicationNotFoundError(ApplicationServiceError):
    """Raised when an application is not found."""

    def __init__(self):
        super().__init__(
            message="Form not found or has expired",
            error_code="APPLICATION_NOT_FOUND",
            status_code=404,
        )


def form_view_url(base_url: str, application_id: UUID) -> str:
    return f"{base_url.rstrip('/')}/form/view/{application_id}"


def _resolve_other(selected: str, other_text: str | None) -> str:
    """Replace the "Other" sentinel with the applicant's free text."""
    if selected == OTHER and other_text and other_text.strip():
        return clean_text(other_text, 200)
    return selected


def build_new_application(
    data: ApplicationSubmission,
    photo: str | None,
    signature: str | None,
    client_ip: str,
) -> NewApplication:
    """
    Normalize a validated submission into a record ready for insertion.

    Free text is trimmed and stripped of control characters; the email
    address is lower-cased.
    """
    return NewApplication(
        student_name=clean_text(data.student_name, 100),
        father_name=clean_text(data.father_name, 100),
        mother_name=clean_text(data.mother_name, 100),
        gender=data.gender.strip(),
        date_of_birth=parse_date(data.date_of_birth),
        address=clean_text(data.address, 500),
        internship_topic=data.internship_topic.strip(),
        course=_resolve_other(data.course.strip(), data.other_course) if data.course else None,
        college_name=_resolve_other(data.college_name.strip(), data.other_college),
        honours_subject=_resolve_other(data.honours_subject.strip(), data.other_honours_subject),
        current_semester=data.current_semester.strip(),
        class_roll_no=clean_text(data.class_roll_no, 50),
        university_name=clean_text(data.university_name, 200) or DEFAULT_UNIVERSITY,
        university_roll_number=clean_text(data.university_roll_number, 50),
        university_registration_number=clean_text(data.university_registration_number, 50),
        contact_number=data.contact_number.strip(),
        whatsapp_number=(data.whatsapp_number or "").strip() or None,
        email_address=data.email_address.strip().lower(),
        photo=photo,
        signature=signature,
        ip_address=client_ip,
    )


async def _reject_suspicious(throttle: SubmissionThrottle, client_ip: str, reason: str) -> None:
    logger.warning(f"Rejected submission from {client_ip}: {reason}")
    await throttle.record_suspicious_activity(client_ip)


def _parse_body(body: bytes) -> ApplicationSubmission:
    """
    Decode the raw request body.

    Raises:
        InvalidRequestError: body is not a JSON object matching the form shape
    """
    try:
        payload = json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise InvalidRequestError() from e

    if not isinstance(payload, dict):
        raise InvalidRequestError()

    try:
        return ApplicationSubmission.model_validate(payload)
    except ValidationError as e:
        raise InvalidRequestError() from e


async def _check_duplicates(store: PortalStore, data: ApplicationSubmission) -> None:
    """
    Reject an email or roll number that is already on file.

    Raises:
        DuplicateApplicationError: If either value already exists
    """
    if await store.find_application_by_email(data.email_address.strip().lower()):
        logger.warning("Duplicate application attempt (email)")
        raise DuplicateApplicationError(DUPLICATE_EMAIL_MESSAGE)

    if await store.find_application_by_roll_number(data.university_roll_number.strip()):
        logger.warning(f"Duplicate application attempt (roll number {data.university_roll_number})")
        raise DuplicateApplicationError(DUPLICATE_ROLL_MESSAGE)


async def _duplicate_error_after_race(
    store: PortalStore, data: ApplicationSubmission
) -> DuplicateApplicationError:
    """Work out which unique value a concurrent insert took."""
    if await store.find_application_by_email(data.email_address.strip().lower()):
        return DuplicateApplicationError(DUPLICATE_EMAIL_MESSAGE)
    return DuplicateApplicationError(DUPLICATE_ROLL_MESSAGE)


async def submit_application(
    store: PortalStore,
    throttle: SubmissionThrottle,
    storage: ObjectStorage,
    *,
    body: bytes,
    client_ip: str,
    base_url: str,
    content_length: int | None = None,
) -> SubmissionResponse:
    """
    Run the full submission pipeline for one request.

    Args:
        store: persistence backend
        throttle: anti-abuse throttle
        storage: object storage for the applicant's images
        body: raw request body
        client_ip: resolved client IP
        base_url: public base URL for the view link
        content_length: declared Content-Length header, if any

    Returns:
        SubmissionResponse with the new application's id, view URL and QR code

    Raises:
        ApplicationServiceError: subclass describing the first failed step
    """
    # 1. Size ceiling (declared and actual)
    declared = content_length or 0
    if declared > settings.max_request_bytes or len(body) > settings.max_request_bytes:
        await _reject_suspicious(throttle, client_ip, "request too large")
        raise PayloadTooLargeError()

    # 2. Banned IP
    if await throttle.is_suspicious_ip(client_ip):
        logger.warning(f"Rejected submission from suspicious IP {client_ip}")
        raise SuspiciousIPError()

    # 3. Rate limit
    rate = await throttle.check_rate_limit(client_ip)
    if not rate.allowed:
        retry_after = rate.retry_after_seconds(throttle.now())
        raise RateLimitExceededError(
            wait_minutes=max(1, math.ceil(retry_after / 60)),
            retry_after_seconds=retry_after,
        )

    # 4. Parse
    try:
        data = _parse_body(body)
    except InvalidRequestError:
        await _reject_suspicious(throttle, client_ip, "malformed body")
        raise

    # 5. CAPTCHA
    if is_captcha_enabled() and not await verify_turnstile_token(data.turnstile_token, client_ip):
        await _reject_suspicious(throttle, client_ip, "captcha failed")
        raise CaptchaFailedError()

    # 6. Timing token
    if data.form_token:
        token_result = verify_form_token(data.form_token, client_ip)
        if not token_result.valid:
            await _reject_suspicious(throttle, client_ip, f"form token: {token_result.error}")
            raise FormTokenError(token_result.error or "invalid")

    # 7. Email cooldown
    if data.email_address and data.email_address.strip():
        cooldown = await throttle.check_email_cooldown(data.email_address)
        if not cooldown.allowed:
            raise EmailCooldownError(cooldown.wait_minutes)

    # 8. Validation
    error = validate_submission(data)
    if error:
        await _reject_suspicious(throttle, client_ip, f"validation: {error}")
        raise SubmissionValidationError(error)

    # 9. Duplicates
    await _check_duplicates(store, data)

    # 10. Images
    try:
        photo, signature = await storage.upload_images(
            data.photo, data.signature, data.university_roll_number.strip()
        )
    except StorageError as e:
        logger.error(f"Image upload failed for {client_ip}: {e}")
        raise ImageUploadError() from e

    # 11. Insert
    try:
        record = await store.insert_application(
            build_new_application(data, photo, signature, client_ip)
        )
    except DuplicateRecordError as e:
        logger.warning(f"Unique constraint hit on insert from {client_ip}: {e}")
        raise await _duplicate_error_after_race(store, data) from e
    except StoreError as e:
        logger.error(f"Database insert error: {e}")
        raise SubmissionPersistenceError() from e

    # 12. QR code (best effort)
    view_url = form_view_url(base_url, record.id)
    try:
        qr_code = qr_data_url(view_url)
    except Exception as e:
        logger.warning(f"QR generation failed for application {record.id}: {e}")
        qr_code = None

    logger.info(f"Application submitted successfully: id={record.id}, ip={client_ip}")

    # 13. Done
    return SubmissionResponse(id=record.id, view_url=view_url, qr_code=qr_code)


async def get_public_application(store: PortalStore, application_id: UUID) -> ApplicationPublic:
    """
    Fetch an application for the public form view.

    Raises:
        ApplicationNotFoundError: If no application has this id
    """
    record = await store.get_application_by_id(application_id)
    if record is None:
        raise ApplicationNotFoundError()
    return record.to_public()
