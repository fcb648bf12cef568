"""
Internship Application Schemas

Pydantic schemas for request parsing and response serialization.

The submission body is parsed leniently (every field optional, numbers
coerced to strings) so that the validators can report the first problem
with a human-readable message instead of a pydantic error list.
"""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApplicationSubmission(BaseModel):
    """Request body for POST /submit (camelCase on the wire)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )

    # Personal information
    student_name: str | None = None
    father_name: str | None = None
    mother_name: str | None = None
    gender: str | None = None
    date_of_birth: str | None = None
    address: str | None = None

    # Academic information
    internship_topic: str | None = None
    course: str | None = None
    other_course: str | None = None
    college_name: str | None = None
    other_college: str | None = None
    honours_subject: str | None = None
    other_honours_subject: str | None = None
    current_semester: str | None = None
    class_roll_no: str | None = None
    university_name: str | None = None
    university_roll_number: str | None = None
    university_registration_number: str | None = None

    # Contact information
    contact_number: str | None = None
    whatsapp_number: str | None = None
    email_address: str | None = None

    # Images as base64 data URLs
    photo: str | None = None
    signature: str | None = None

    declaration_accepted: bool = False

    # Anti-abuse
    website: str | None = None  # honeypot, must stay empty
    turnstile_token: str | None = None
    form_token: str | None = None


class NewApplication(BaseModel):
    """Normalized application ready to be persisted."""

    student_name: str
    father_name: str
    mother_name: str
    gender: str
    date_of_birth: date
    address: str
    internship_topic: str
    course: str | None = None
    college_name: str
    honours_subject: str
    current_semester: str
    class_roll_no: str
    university_name: str | None = None
    university_roll_number: str
    university_registration_number: str
    contact_number: str
    whatsapp_number: str | None = None
    email_address: str
    photo: str | None = None
    signature: str | None = None
    ip_address: str | None = None


class ApplicationPublic(BaseModel):
    """Stored application as exposed on public read endpoints."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    student_name: str
    father_name: str
    mother_name: str
    gender: str
    date_of_birth: date
    address: str
    internship_topic: str
    course: str | None = None
    college_name: str
    honours_subject: str
    current_semester: str
    class_roll_no: str
    university_name: str | None = None
    university_roll_number: str
    university_registration_number: str
    contact_number: str
    whatsapp_number: str | None = None
    email_address: str
    photo: str | None = None
    signature: str | None = None
    created_at: datetime


class ApplicationRecord(ApplicationPublic):
    """Stored application including server-side metadata."""

    ip_address: str | None = None

    def to_public(self) -> ApplicationPublic:
        return ApplicationPublic.model_validate(self.model_dump(exclude={"ip_address"}))


class SubmissionResponse(BaseModel):
    """Response after an accepted submission."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    id: UUID
    view_url: str
    qr_code: str | None = Field(None, description="PNG data URL of the view link")
    message: str = "Application submitted successfully!"


class FormTokenResponse(BaseModel):
    token: str


class FormViewResponse(BaseModel):
    success: bool = True
    data: ApplicationPublic
