"""
Admin Exports

CSV and ZIP exports of the submitted applications.

- CSV: one row per application, every cell quoted, images reported as Yes/No
- ZIP: ``photos/`` and ``signatures/`` folders; inline images are decoded,
  stored URLs are downloaded, unreadable images are skipped
"""

import csv
import io
import logging
import posixpath
import re
import zipfile
from datetime import date
from urllib.parse import urlparse

from app.core.storage import decode_data_url, fetch_bytes, is_url
from app.modules.applications.schemas import ApplicationRecord

logger = logging.getLogger(__name__)

CSV_HEADERS = [
    "Student Name",
    "Father Name",
    "Mother Name",
    "Gender",
    "DOB",
    "Address",
    "Internship Topic",
    "College",
    "Honours Subject",
    "Semester",
    "Class Roll",
    "University",
    "Uni Roll No",
    "Uni Reg No",
    "Contact",
    "WhatsApp",
    "Email",
    "Has Photo",
    "Has Signature",
    "Submitted At",
]

DEFAULT_IMAGE_EXTENSION = "jpg"


def export_filename(prefix: str, extension: str, today: date | None = None) -> str:
    """e.g. ``internship_applications_2026-10-17.csv``"""
    return f"{prefix}_{(today or date.today()).isoformat()}.{extension}"


def csv_row(application: ApplicationRecord) -> list[str]:
    return [
        application.student_name,
        application.father_name,
        application.mother_name,
        application.gender,
        application.date_of_birth.isoformat(),
        application.address,
        application.internship_topic,
        application.college_name,
        application.honours_subject,
        application.current_semester,
        application.class_roll_no,
        application.university_name or "",
        application.university_roll_number,
        application.university_registration_number,
        application.contact_number,
        application.whatsapp_number or "",
        application.email_address,
        "Yes" if application.photo else "No",
        "Yes" if application.signature else "No",
        application.created_at.isoformat(),
    ]


def build_csv(applications: list[ApplicationRecord]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for application in applications:
        writer.writerow(csv_row(application))
    return buffer.getvalue()


def _safe_name(value: str) -> str:
    return re.sub(r"[^a-zA-Z0-9]", "_", value)


def _url_extension(url: str) -> str:
    extension = posixpath.splitext(urlparse(url).path)[1].lstrip(".").lower()
    return extension or DEFAULT_IMAGE_EXTENSION


async def _resolve_image(value: str | None) -> tuple[bytes, str] | None:
    """Raw bytes and file extension of a stored image, or None if unavailable."""
    if not value:
        return None

    if is_url(value):
        content = await fetch_bytes(value)
        if content is None:
            return None
        return content, _url_extension(value)

    try:
        image = decode_data_url(value)
    except ValueError:
        logger.warning("Skipping stored image that is not a valid data URL")
        return None
    return image.content, image.extension


async def build_images_zip(applications: list[ApplicationRecord]) -> bytes:
    """
    Bundle every applicant's photo and signature into a ZIP archive.

    Returns:
        ZIP file bytes (an empty archive when no image could be resolved)
    """
    buffer = io.BytesIO()
    added = 0

    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        for application in applications:
            name = _safe_name(application.student_name)
            roll_number = _safe_name(application.university_roll_number)
            stem = f"{name}_{roll_number}"

            photo = await _resolve_image(application.photo)
            if photo:
                content, extension = photo
                archive.writestr(f"photos/{stem}.{extension}", content)
                added += 1

            signature = await _resolve_image(application.signature)
            if signature:
                content, extension = signature
                archive.writestr(f"signatures/{stem}_signature.{extension}", content)
                added += 1

    logger.info(f"Built images archive: {added} files from {len(applications)} applications")
    return buffer.getvalue()
