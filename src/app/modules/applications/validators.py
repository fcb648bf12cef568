"""
Application Validators

Pure, side-effect free checks for submitted application data.
``validate_submission`` runs them fail-fast and returns the first message.
"""

import math
import re
from datetime import date, datetime

from app.modules.applications.options import (
    COLLEGES,
    COURSES,
    GENDER_OPTIONS,
    HONOURS_SUBJECTS,
    INTERNSHIP_TOPICS,
    OTHER,
    SEMESTERS,
)
from app.modules.applications.schemas import ApplicationSubmission

MAX_PHOTO_BYTES = 250 * 1024
MAX_SIGNATURE_BYTES = 150 * 1024
MAX_EMAIL_LENGTH = 254
MIN_AGE = 16
MAX_AGE = 60

# (field, label, max length)
REQUIRED_FIELDS: tuple[tuple[str, str, int], ...] = (
    ("student_name", "Student Name", 100),
    ("father_name", "Father's Name", 100),
    ("mother_name", "Mother's Name", 100),
    ("gender", "Gender", 20),
    ("date_of_birth", "Date of Birth", 30),
    ("address", "Address", 500),
    ("internship_topic", "Internship Topic", 100),
    ("college_name", "College Name", 200),
    ("honours_subject", "Honours Subject", 100),
    ("current_semester", "Current Semester", 50),
    ("class_roll_no", "Class Roll No", 50),
    ("university_roll_number", "University Roll Number", 50),
    ("university_registration_number", "University Registration Number", 50),
    ("contact_number", "Contact Number", 20),
    ("email_address", "Email Address", MAX_EMAIL_LENGTH),
)

# Optional free-text fields and their limits
OPTIONAL_FIELD_LIMITS: tuple[tuple[str, str, int], ...] = (
    ("course", "Course", 100),
    ("other_course", "Course", 100),
    ("other_college", "College Name", 200),
    ("other_honours_subject", "Honours Subject", 100),
    ("university_name", "University Name", 200),
    ("whatsapp_number", "WhatsApp Number", 20),
)

# (selection field, free-text field, message)
OTHER_SENTINEL_FIELDS: tuple[tuple[str, str, str], ...] = (
    ("course", "other_course", "Please specify your course"),
    ("college_name", "other_college", "Please specify your college name"),
    ("honours_subject", "other_honours_subject", "Please specify your honours subject"),
)

DROPDOWN_FIELDS: tuple[tuple[str, str, tuple[str, ...]], ...] = (
    ("gender", "gender", GENDER_OPTIONS),
    ("internship_topic", "internship topic", INTERNSHIP_TOPICS),
    ("course", "course", COURSES),
    ("college_name", "college", COLLEGES),
    ("honours_subject", "honours subject", HONOURS_SUBJECTS),
    ("current_semester", "semester", SEMESTERS),
)

SPAM_CHECKED_FIELDS = ("student_name", "father_name", "mother_name", "address")

SPAM_PATTERNS = (
    re.compile(
        r"\b(viagra|cialis|casino|lottery|winner|prize|claim|urgent|bitcoin|crypto)\b",
        re.IGNORECASE,
    ),
    re.compile(r"\b(click here|buy now|limited offer|act now|free money)\b", re.IGNORECASE),
    re.compile(r"https?://\S+", re.IGNORECASE),
    re.compile(r"<script", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"on\w+\s*=", re.IGNORECASE),
)

EMAIL_PATTERN = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)

PHONE_PATTERN = re.compile(r"^\d{10}$")

CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")

DISPOSABLE_EMAIL_DOMAINS = frozenset(
    {
        "tempmail.com", "throwaway.email", "guerrillamail.com", "mailinator.com",
        "10minutemail.com", "temp-mail.org", "fakeinbox.com", "trashmail.com",
        "yopmail.com", "tempail.com", "sharklasers.com", "guerrillamail.info",
        "grr.la", "spam4.me", "getairmail.com", "mohmal.com", "tempmailo.com",
        "mailnesia.com", "maildrop.cc", "dispostable.com", "mailcatch.com",
        "mintemail.com", "tempr.email", "discard.email", "spamgourmet.com",
        "mytrashmail.com", "mailnull.com", "jetable.org", "incognitomail.org",
        "emailondeck.com", "getnada.com", "burnermail.io", "tempinbox.com",
        "fakemailgenerator.com", "throwawaymail.com", "mailsac.com", "moakt.com",
        "tempsky.com", "mailpoof.com", "spambox.us", "trash-mail.com",
        "wegwerfmail.de", "byom.de", "spamfree24.org", "mail-temporaire.fr",
        "tempmailaddress.com", "emailfake.com", "crazymailing.com", "tempemailco.com",
        "anonymmail.net", "fakemail.net", "mailtemp.net", "inboxkitten.com",
        "gmailnator.com", "emailnator.com", "1secmail.com", "1secmail.org",
        "guerrillamailblock.com", "pokemail.net", "spam.la", "tempmails.net",
    }
)  # fmt: skip


def clean_text(value: str | None, max_length: int = 500) -> str:
    """Trim, truncate and strip NUL/control characters (newlines and tabs are kept)."""
    if not value:
        return ""
    return CONTROL_CHARS.sub("", value.strip()[:max_length])


def contains_spam(text: str | None) -> bool:
    if not text:
        return False
    return any(pattern.search(text) for pattern in SPAM_PATTERNS)


def is_disposable_email(email: str | None) -> bool:
    if not email or "@" not in email:
        return False
    domain = email.lower().split("@", 1)[1]
    return domain in DISPOSABLE_EMAIL_DOMAINS


def is_valid_email(email: str | None) -> bool:
    if not email:
        return False
    return len(email) <= MAX_EMAIL_LENGTH and EMAIL_PATTERN.match(email) is not None


def is_valid_phone(number: str | None) -> bool:
    return bool(number) and PHONE_PATTERN.match(number) is not None


def parse_date(value: str | None) -> date | None:
    """Parse an ISO date (or datetime) string; None if unparseable."""
    if not value:
        return None
    value = value.strip()
    try:
        return date.fromisoformat(value)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(value).date()
    except ValueError:
        return None


def calculate_age(dob: date, today: date | None = None) -> int:
    """Age in whole years, counting 365.25 days per year."""
    today = today or date.today()
    return math.floor((today - dob).days / 365.25)


def is_valid_date_of_birth(value: str | None, today: date | None = None) -> bool:
    """True when the date parses and the age is within [16, 60]."""
    dob = parse_date(value)
    if dob is None:
        return False
    return MIN_AGE <= calculate_age(dob, today) <= MAX_AGE


def get_base64_size(value: str | None) -> int:
    """
    Decoded size in bytes of a base64 string or data URL.

    Computed from the encoded length (no decoding): floor(len * 3 / 4) minus
    the trailing padding.
    """
    if not value:
        return 0
    payload = value.split(",", 1)[1] if "," in value else value
    padding = len(payload) - len(payload.rstrip("="))
    return math.floor(len(payload) * 3 / 4) - padding


def is_valid_photo(value: str | None) -> bool:
    return get_base64_size(value) <= MAX_PHOTO_BYTES


def is_valid_signature(value: str | None) -> bool:
    return get_base64_size(value) <= MAX_SIGNATURE_BYTES


def validate_dropdowns(data: ApplicationSubmission) -> str | None:
    """
    Check every provided dropdown value against its enumeration.

    Returns:
        Label of the first invalid field, or None
    """
    for field, label, options in DROPDOWN_FIELDS:
        value = getattr(data, field)
        if value and value not in options:
            return label
    return None


def validate_submission(data: ApplicationSubmission, today: date | None = None) -> str | None:
    """
    Run every submission check in order, stopping at the first failure.

    Args:
        data: parsed submission body
        today: override for the current date (age calculation)

    Returns:
        Error message for the first failing check, or None when valid
    """
    if data.website and data.website.strip():
        return "Invalid submission"

    for field, label, max_length in REQUIRED_FIELDS:
        value = (getattr(data, field) or "").strip()
        if not value:
            return f"{label} is required"
        if len(value) > max_length:
            return f"{label} must be at most {max_length} characters"

    for field, label, max_length in OPTIONAL_FIELD_LIMITS:
        value = (getattr(data, field) or "").strip()
        if len(value) > max_length:
            return f"{label} must be at most {max_length} characters"

    for field, other_field, message in OTHER_SENTINEL_FIELDS:
        if getattr(data, field) == OTHER and not (getattr(data, other_field) or "").strip():
            return message

    invalid_dropdown = validate_dropdowns(data)
    if invalid_dropdown:
        return f"Invalid {invalid_dropdown} selected"

    email = data.email_address.strip()
    if not is_valid_email(email):
        return "Invalid email address"
    if is_disposable_email(email):
        return "Disposable email addresses are not allowed"

    if not is_valid_phone(data.contact_number.strip()):
        return "Contact number must be 10 digits"
    whatsapp = (data.whatsapp_number or "").strip()
    if whatsapp and not is_valid_phone(whatsapp):
        return "WhatsApp number must be 10 digits"

    if not is_valid_date_of_birth(data.date_of_birth, today):
        return f"Invalid date of birth. Applicant must be between {MIN_AGE} and {MAX_AGE} years old"

    if not data.declaration_accepted:
        return "Please accept the declaration"

    if any(contains_spam(getattr(data, field)) for field in SPAM_CHECKED_FIELDS):
        return "Submission contains disallowed content"

    if not is_valid_photo(data.photo):
        return "Photo must be 250KB or smaller"
    if not is_valid_signature(data.signature):
        return "Signature must be 150KB or smaller"

    return None
