"""
Unit tests for application validators.

These tests cover:
- Field helpers (email, phone, age, base64 size, spam)
- The ordered checks of validate_submission and their messages
"""

from datetime import date

import pytest

from app.modules.applications.schemas import ApplicationSubmission
from app.modules.applications.validators import (
    calculate_age,
    clean_text,
    contains_spam,
    get_base64_size,
    is_disposable_email,
    is_valid_date_of_birth,
    is_valid_email,
    is_valid_phone,
    validate_submission,
)

TODAY = date(2026, 10, 17)


def _validate(payload: dict, **changes) -> str | None:
    data = ApplicationSubmission.model_validate({**payload, **changes})
    return validate_submission(data, today=TODAY)


class TestHelpers:
    """Tests for the individual field checks."""

    @pytest.mark.parametrize(
        ("email", "expected"),
        [
            ("asha@example.com", True),
            ("first.last+tag@college.ac.in", True),
            ("no-at-sign.example.com", False),
            ("two@@example.com", False),
            ("", False),
            ("a" * 250 + "@x.io", False),
        ],
    )
    def test_is_valid_email(self, email, expected):
        assert is_valid_email(email) is expected

    def test_disposable_domains(self):
        assert is_disposable_email("bot@Mailinator.com")
        assert is_disposable_email("x@yopmail.com")
        assert not is_disposable_email("asha@gmail.com")

    @pytest.mark.parametrize(
        ("number", "expected"),
        [("9876543210", True), ("98765 43210", False), ("+919876543210", False), ("12345", False)],
    )
    def test_is_valid_phone(self, number, expected):
        assert is_valid_phone(number) is expected

    def test_calculate_age(self):
        assert calculate_age(date(2004, 5, 15), TODAY) == 22

    @pytest.mark.parametrize(
        ("dob", "expected"),
        [
            ("2010-10-17", True),  # exactly 16
            ("2010-10-18", False),  # one day short of 16
            ("1966-10-17", True),  # exactly 60
            ("1965-10-17", True),  # 22280 days, still 60 by days / 365.25
            ("1965-10-16", False),  # 61
            ("2004-05-15T00:00:00", True),
            ("15/05/2004", False),
            ("", False),
        ],
    )
    def test_date_of_birth_bounds(self, dob, expected):
        assert is_valid_date_of_birth(dob, TODAY) is expected

    def test_base64_size(self):
        assert get_base64_size("data:image/png;base64,QUJD") == 3
        assert get_base64_size("QQ==") == 1
        assert get_base64_size(None) == 0

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("Claim your PRIZE now", True),
            ("see https://spam.example", True),
            ("<script>alert(1)</script>", True),
            ("img onerror=alert(1)", True),
            ("Proclaimed Nagar, Patna", False),
            ("Sunita Devi", False),
        ],
    )
    def test_contains_spam(self, text, expected):
        assert contains_spam(text) is expected

    def test_clean_text_strips_control_characters(self):
        assert clean_text("  Asha\x00 Kumari\x07 ") == "Asha Kumari"
        assert clean_text("line one\nline two") == "line one\nline two"
        assert clean_text("abcdef", max_length=3) == "abc"


class TestValidateSubmission:
    """Tests for validate_submission."""

    def test_valid_submission(self, submission_payload):
        assert _validate(submission_payload) is None

    def test_honeypot(self, submission_payload):
        assert _validate(submission_payload, website="http://bot.example") == "Invalid submission"

    @pytest.mark.parametrize(
        ("field", "message"),
        [
            ("studentName", "Student Name is required"),
            ("motherName", "Mother's Name is required"),
            ("universityRollNumber", "University Roll Number is required"),
            ("emailAddress", "Email Address is required"),
        ],
    )
    def test_required_fields(self, submission_payload, field, message):
        assert _validate(submission_payload, **{field: "   "}) == message

    def test_length_limit(self, submission_payload):
        message = _validate(submission_payload, studentName="A" * 101)
        assert message == "Student Name must be at most 100 characters"

    def test_first_failure_wins(self, submission_payload):
        message = _validate(submission_payload, studentName="", emailAddress="broken")
        assert message == "Student Name is required"

    @pytest.mark.parametrize(
        ("field", "message"),
        [
            ("course", "Please specify your course"),
            ("collegeName", "Please specify your college name"),
            ("honoursSubject", "Please specify your honours subject"),
        ],
    )
    def test_other_requires_free_text(self, submission_payload, field, message):
        assert _validate(submission_payload, **{field: "Other"}) == message

    def test_other_with_free_text(self, submission_payload):
        message = _validate(
            submission_payload, collegeName="Other", otherCollege="Sri Arvind College"
        )
        assert message is None

    def test_course_is_optional(self, submission_payload):
        assert _validate(submission_payload, course=None) is None

    @pytest.mark.parametrize(
        ("field", "value", "message"),
        [
            ("gender", "Unknown", "Invalid gender selected"),
            ("internshipTopic", "Astrology", "Invalid internship topic selected"),
            ("course", "PhD", "Invalid course selected"),
            ("currentSemester", "9th Semester", "Invalid semester selected"),
        ],
    )
    def test_dropdowns(self, submission_payload, field, value, message):
        assert _validate(submission_payload, **{field: value}) == message

    def test_invalid_email(self, submission_payload):
        message = _validate(submission_payload, emailAddress="asha at example")
        assert message == "Invalid email address"

    def test_disposable_email(self, submission_payload):
        message = _validate(submission_payload, emailAddress="asha@mailinator.com")
        assert message == "Disposable email addresses are not allowed"

    def test_contact_number(self, submission_payload):
        message = _validate(submission_payload, contactNumber="98765")
        assert message == "Contact number must be 10 digits"

    def test_numeric_contact_number_is_accepted(self, submission_payload):
        assert _validate(submission_payload, contactNumber=9876543210) is None

    def test_whatsapp_optional_but_checked(self, submission_payload):
        assert _validate(submission_payload, whatsappNumber="") is None
        message = _validate(submission_payload, whatsappNumber="12")
        assert message == "WhatsApp number must be 10 digits"

    def test_age_out_of_range(self, submission_payload):
        message = _validate(submission_payload, dateOfBirth="2015-01-01")
        assert message == "Invalid date of birth. Applicant must be between 16 and 60 years old"

    def test_declaration_required(self, submission_payload):
        message = _validate(submission_payload, declarationAccepted=False)
        assert message == "Please accept the declaration"

    def test_spam_content(self, submission_payload):
        message = _validate(submission_payload, address="Buy now at https://cheap.example")
        assert message == "Submission contains disallowed content"

    def test_photo_too_large(self, submission_payload):
        photo = "data:image/jpeg;base64," + "A" * (250 * 1024 * 4 // 3 + 8)
        assert _validate(submission_payload, photo=photo) == "Photo must be 250KB or smaller"

    def test_signature_too_large(self, submission_payload):
        signature = "data:image/png;base64," + "A" * (150 * 1024 * 4 // 3 + 8)
        message = _validate(submission_payload, signature=signature)
        assert message == "Signature must be 150KB or smaller"
