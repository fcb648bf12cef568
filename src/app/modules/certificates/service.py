"""
Certificate Service Layer

Business logic for issuing internship completion certificates.

Issue flow:
1. Resolve (or, for the scratch variant, create) the student's application
2. Refuse a second certificate for the same application (409)
3. Grade the marks and allocate the next year-scoped serial number
4. Insert the certificate record (its id is encoded in the QR code)
5. Render the PDF, upload it and backfill its URL onto the record

A certificate is never mutated after issue except for the document URL.
"""

import asyncio
import logging
import re
import time
from datetime import UTC, date, datetime
from uuid import UUID

from app.core.config import settings
from app.core.storage import ObjectStorage, StorageError, load_image_bytes
from app.modules.applications.options import DEFAULT_UNIVERSITY
from app.modules.applications.schemas import ApplicationRecord, NewApplication
from app.modules.applications.validators import MAX_EMAIL_LENGTH, clean_text, parse_date
from app.modules.certificates.grading import calculate_grade, format_serial
from app.modules.certificates.pdf import render_certificate_pdf
from app.modules.certificates.schemas import (
    CertificateGenerateRequest,
    CertificateIssueResponse,
    CertificateRecord,
    CertificateScratchRequest,
    CertificateView,
    NewCertificate,
)
from app.repository.base import DuplicateRecordError, PortalStore, StoreError

logger = logging.getLogger(__name__)

# Collisions only happen when two certificates are issued at the same moment
SERIAL_ALLOCATION_ATTEMPTS = 3

# (attribute, wire name) of fields the scratch variant cannot do without
SCRATCH_REQUIRED_FIELDS: tuple[tuple[str, str], ...] = (
    ("student_name", "studentName"),
    ("father_name", "fatherName"),
    ("course", "course"),
    ("college", "college"),
    ("semester", "semester"),
    ("roll_no", "rollNo"),
    ("reg_no", "regNo"),
    ("class_roll", "classRoll"),
    ("topic", "topic"),
    ("rts_reg_number", "rtsRegNumber"),
    ("start_date", "startDate"),
    ("end_date", "endDate"),
)

# (attribute, wire name, max length) matching the column each value is stored in
SCRATCH_FIELD_LIMITS: tuple[tuple[str, str, int], ...] = (
    ("student_name", "studentName", 100),
    ("father_name", "fatherName", 100),
    ("gender", "gender", 20),
    ("contact", "contact", 20),
    ("email", "email", MAX_EMAIL_LENGTH),
    ("course", "course", 100),
    ("college", "college", 200),
    ("honours_subject", "honoursSubject", 100),
    ("semester", "semester", 50),
    ("roll_no", "rollNo", 50),
    ("reg_no", "regNo", 50),
    ("class_roll", "classRoll", 50),
    ("topic", "topic", 100),
    ("rts_reg_number", "rtsRegNumber", 100),
)

PLACEHOLDER = "N/A"
PLACEHOLDER_DATE_OF_BIRTH = date(2000, 1, 1)
GENERATED_EMAIL_DOMAIN = "rts-generated.local"


class CertificateServiceError(Exception):
    """Base exception for certificate service errors."""

    def __init__(
        self,
        message: str,
        error_code: str,
        status_code: int = 400,
        extra: dict | None = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.extra = extra or {}
        super().__init__(message)


class ApplicationNotFoundError(CertificateServiceError):
    def __init__(self):
        super().__init__(
            message="Application not found",
            error_code="APPLICATION_NOT_FOUND",
            status_code=404,
        )


class CertificateNotFoundError(CertificateServiceError):
    def __init__(self):
        super().__init__(
            message="Certificate not found",
            error_code="CERTIFICATE_NOT_FOUND",
            status_code=404,
        )


class CertificateExistsError(CertificateServiceError):
    """Raised when the application already has a certificate."""

    def __init__(self, existing: CertificateRecord):
        self.existing = existing
        super().__init__(
            message="Certificate already exists for this application",
            error_code="CERTIFICATE_EXISTS",
            status_code=409,
            extra={
                "certificateId": str(existing.id),
                "serialNumber": existing.serial_number,
                "certificateUrl": existing.certificate_url,
            },
        )


class StudentExistsError(CertificateServiceError):
    """Raised by the scratch flow when the student is already on file."""

    def __init__(self, roll_number: str | None = None):
        if roll_number is not None:
            message = (
                f'A student with roll number "{roll_number}" already exists in the system. '
                'Use the "Certificate" button next to their name in the table instead.'
            )
        else:
            message = "A student with this email address already exists in the system."
        super().__init__(message=message, error_code="STUDENT_EXISTS", status_code=409)


class MissingFieldsError(CertificateServiceError):
    def __init__(self, fields: list[str]):
        self.fields = fields
        super().__init__(
            message=f"Missing required fields: {', '.join(fields)}",
            error_code="VALIDATION_ERROR",
            status_code=400,
        )


class InvalidCertificateRequestError(CertificateServiceError):
    def __init__(self, message: str):
        super().__init__(message=message, error_code="VALIDATION_ERROR", status_code=400)


class CertificatePersistenceError(CertificateServiceError):
    def __init__(self, message: str = "Failed to create certificate record"):
        super().__init__(message=message, error_code="CERTIFICATE_FAILED", status_code=500)


def certificate_view_url(base_url: str, certificate_id: UUID) -> str:
    return f"{base_url.rstrip('/')}/certificate/view/{certificate_id}"


def generated_email(roll_number: str, now_ms: int | None = None) -> str:
    """Placeholder address for students created without an email."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    safe_roll = re.sub(r"[^a-zA-Z0-9]", "-", roll_number)
    return f"cert-{safe_roll}-{now_ms}@{GENERATED_EMAIL_DOMAIN}"


async def _insert_certificate(
    store: PortalStore,
    application_id: UUID,
    rts_reg_number: str,
    marks: int,
    start_date: date,
    end_date: date,
) -> CertificateRecord:
    """
    Grade, allocate a serial number and insert the certificate.

    Raises:
        CertificateExistsError: a concurrent request certified the application first
        CertificatePersistenceError: the store failed or no serial could be allocated
    """
    grade = calculate_grade(marks)
    year = datetime.now(UTC).year

    for _ in range(SERIAL_ALLOCATION_ATTEMPTS):
        try:
            sequence = await store.next_certificate_sequence(year)
            serial_number = format_serial(settings.certificate_serial_prefix, year, sequence)
            return await store.insert_certificate(
                NewCertificate(
                    application_id=application_id,
                    serial_number=serial_number,
                    serial_year=year,
                    serial_sequence=sequence,
                    rts_reg_number=rts_reg_number,
                    marks=marks,
                    grade=grade.grade,
                    grade_point=grade.grade_point,
                    start_date=start_date,
                    end_date=end_date,
                )
            )
        except DuplicateRecordError as e:
            existing = await store.get_certificate_by_application_id(application_id)
            if existing:
                raise CertificateExistsError(existing) from e
            logger.warning(f"Serial number {serial_number} already taken, allocating another")
        except StoreError as e:
            logger.error(f"Failed to insert certificate for application {application_id}: {e}")
            raise CertificatePersistenceError() from e

    logger.error(f"Could not allocate a serial number for application {application_id}")
    raise CertificatePersistenceError()


async def _render_and_store(
    store: PortalStore,
    storage: ObjectStorage,
    application: ApplicationRecord,
    certificate: CertificateRecord,
    view_url: str,
) -> str | None:
    """Render the PDF, upload it and backfill the URL. Returns the URL if stored."""
    photo = await load_image_bytes(application.photo)
    pdf = await asyncio.to_thread(
        render_certificate_pdf, application, certificate, view_url, photo
    )

    url = await storage.upload_certificate_pdf(pdf, str(certificate.id))
    if url is None:
        return None

    try:
        await store.update_certificate_url(certificate.id, url)
    except StoreError as e:
        logger.error(f"Failed to save URL for certificate {certificate.id}: {e}")
    return url


async def _issue(
    store: PortalStore,
    storage: ObjectStorage,
    application: ApplicationRecord,
    *,
    rts_reg_number: str,
    marks: int,
    start_date: date,
    end_date: date,
    base_url: str,
) -> CertificateIssueResponse:
    existing = await store.get_certificate_by_application_id(application.id)
    if existing:
        raise CertificateExistsError(existing)

    certificate = await _insert_certificate(
        store, application.id, rts_reg_number, marks, start_date, end_date
    )
    view_url = certificate_view_url(base_url, certificate.id)
    certificate_url = await _render_and_store(store, storage, application, certificate, view_url)

    logger.info(
        f"Certificate issued: serial={certificate.serial_number}, application={application.id}"
    )
    return CertificateIssueResponse(
        certificate_id=certificate.id,
        serial_number=certificate.serial_number,
        grade=certificate.grade,
        grade_point=certificate.grade_point,
        certificate_url=certificate_url,
        view_url=view_url,
    )


async def issue_certificate(
    store: PortalStore,
    storage: ObjectStorage,
    request: CertificateGenerateRequest,
    base_url: str,
) -> CertificateIssueResponse:
    """
    Issue a certificate for an existing application.

    Args:
        store: persistence backend
        storage: object storage for the rendered PDF
        request: application id, registration number, marks and period
        base_url: public base URL for the verification link

    Returns:
        CertificateIssueResponse with serial number, grade and URLs

    Raises:
        ApplicationNotFoundError: unknown application id
        CertificateExistsError: the application already has a certificate
        CertificatePersistenceError: the certificate could not be stored
    """
    application = await store.get_application_by_id(request.application_id)
    if application is None:
        raise ApplicationNotFoundError()

    return await _issue(
        store,
        storage,
        application,
        rts_reg_number=request.rts_reg_number,
        marks=request.marks,
        start_date=request.start_date,
        end_date=request.end_date,
        base_url=base_url,
    )


def _require_scratch_fields(request: CertificateScratchRequest) -> None:
    missing = [
        wire_name
        for attribute, wire_name in SCRATCH_REQUIRED_FIELDS
        if not (getattr(request, attribute) or "").strip()
    ]
    if missing:
        raise MissingFieldsError(missing)

    for attribute, wire_name, max_length in SCRATCH_FIELD_LIMITS:
        if len((getattr(request, attribute) or "").strip()) > max_length:
            raise InvalidCertificateRequestError(
                f"{wire_name} must be at most {max_length} characters"
            )

    if request.marks is None or not 0 <= request.marks <= 100:
        raise InvalidCertificateRequestError("marks must be an integer between 0 and 100")


def _parse_period(request: CertificateScratchRequest) -> tuple[date, date]:
    start_date = parse_date(request.start_date)
    end_date = parse_date(request.end_date)
    if start_date is None or end_date is None:
        raise InvalidCertificateRequestError("startDate and endDate must be valid dates")
    if end_date < start_date:
        raise InvalidCertificateRequestError("endDate must be on or after startDate")
    return start_date, end_date


def _scratch_application(
    request: CertificateScratchRequest, photo: str | None
) -> NewApplication:
    date_of_birth = PLACEHOLDER_DATE_OF_BIRTH
    if request.dob and request.dob.strip():
        date_of_birth = parse_date(request.dob)
        if date_of_birth is None:
            raise InvalidCertificateRequestError("dob must be a valid date")

    roll_number = request.roll_no.strip()
    email = (request.email or "").strip().lower() or generated_email(roll_number)
    course = clean_text(request.course, 100)

    return NewApplication(
        student_name=clean_text(request.student_name, 100),
        father_name=clean_text(request.father_name, 100),
        mother_name=PLACEHOLDER,
        gender=(request.gender or "Male").strip() or "Male",
        date_of_birth=date_of_birth,
        address=PLACEHOLDER,
        internship_topic=clean_text(request.topic, 100),
        course=course,
        college_name=clean_text(request.college, 200),
        honours_subject=clean_text(request.honours_subject, 100) or course,
        current_semester=clean_text(request.semester, 50),
        class_roll_no=clean_text(request.class_roll, 50),
        university_name=DEFAULT_UNIVERSITY,
        university_roll_number=roll_number,
        university_registration_number=clean_text(request.reg_no, 50),
        contact_number=(request.contact or "").strip() or PLACEHOLDER,
        email_address=email,
        photo=photo,
    )


async def issue_certificate_from_scratch(
    store: PortalStore,
    storage: ObjectStorage,
    request: CertificateScratchRequest,
    base_url: str,
) -> CertificateIssueResponse:
    """
    Create a student record and issue its certificate in one step.

    Used for students who never filled in the public form. Missing optional
    details are filled with placeholders.

    Raises:
        MissingFieldsError: required fields absent (all of them are listed)
        InvalidCertificateRequestError: marks or dates invalid
        StudentExistsError: roll number (or email) already registered
        CertificatePersistenceError: a record could not be stored
    """
    _require_scratch_fields(request)
    start_date, end_date = _parse_period(request)
    roll_number = request.roll_no.strip()

    if await store.find_application_by_roll_number(roll_number):
        raise StudentExistsError(roll_number)

    photo = None
    if request.photo:
        try:
            photo, _ = await storage.upload_images(request.photo, None, roll_number)
        except StorageError as e:
            logger.error(f"Photo upload failed for roll number {roll_number}: {e}")
            raise CertificatePersistenceError("Failed to store photo") from e

    new_application = _scratch_application(request, photo)
    try:
        application = await store.insert_application(new_application)
    except DuplicateRecordError as e:
        if await store.find_application_by_roll_number(roll_number):
            raise StudentExistsError(roll_number) from e
        raise StudentExistsError() from e
    except StoreError as e:
        logger.error(f"Failed to create student record for roll number {roll_number}: {e}")
        raise CertificatePersistenceError("Failed to create student record") from e

    logger.info(f"Student record created for certificate: id={application.id}")

    response = await _issue(
        store,
        storage,
        application,
        rts_reg_number=request.rts_reg_number.strip(),
        marks=request.marks,
        start_date=start_date,
        end_date=end_date,
        base_url=base_url,
    )
    response.application_id = application.id
    return response


async def get_public_certificate(store: PortalStore, certificate_id: UUID) -> CertificateView:
    """
    Fetch a certificate with its application for the public verification page.

    Raises:
        CertificateNotFoundError: unknown certificate id
        ApplicationNotFoundError: the linked application no longer exists
    """
    certificate = await store.get_certificate_by_id(certificate_id)
    if certificate is None:
        raise CertificateNotFoundError()

    application = await store.get_application_by_id(certificate.application_id)
    if application is None:
        raise ApplicationNotFoundError()

    return CertificateView(certificate=certificate, application=application.to_public())
