"""
Certificate Schemas

Request bodies use camelCase on the wire; stored records use snake_case.
"""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from app.modules.applications.schemas import ApplicationPublic


class CertificateGenerateRequest(BaseModel):
    """Request body for POST /certificates/generate."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    application_id: UUID
    rts_reg_number: str = Field(..., min_length=1, max_length=100)
    marks: int = Field(..., ge=0, le=100, strict=True)
    start_date: date
    end_date: date

    @field_validator("rts_reg_number")
    @classmethod
    def strip_reg_number(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("rtsRegNumber is required")
        return value

    @model_validator(mode="after")
    def validate_period(self) -> "CertificateGenerateRequest":
        if self.end_date < self.start_date:
            raise ValueError("endDate must be on or after startDate")
        return self


class CertificateScratchRequest(BaseModel):
    """
    Request body for POST /certificates/generate-scratch.

    Fields are loosely typed; the service reports every missing required
    field at once.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )

    student_name: str | None = None
    father_name: str | None = None
    gender: str | None = "Male"
    dob: str | None = None
    contact: str | None = None
    email: str | None = None
    course: str | None = None
    college: str | None = None
    honours_subject: str | None = None
    semester: str | None = None
    roll_no: str | None = None
    reg_no: str | None = None
    class_roll: str | None = None
    topic: str | None = None
    photo: str | None = None
    rts_reg_number: str | None = None
    marks: int | None = Field(None, strict=True)
    start_date: str | None = None
    end_date: str | None = None


class NewCertificate(BaseModel):
    application_id: UUID
    serial_number: str
    serial_year: int
    serial_sequence: int
    rts_reg_number: str
    marks: int
    grade: str
    grade_point: int
    start_date: date
    end_date: date
    certificate_url: str | None = None


class CertificateRecord(NewCertificate):
    """Stored certificate."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    created_at: datetime


class CertificateIssueResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    certificate_id: UUID
    application_id: UUID | None = Field(None, description="Set when the student record was created")
    serial_number: str
    grade: str
    grade_point: int
    certificate_url: str | None = None
    view_url: str


class CertificateView(BaseModel):
    certificate: CertificateRecord
    application: ApplicationPublic


class CertificateViewResponse(BaseModel):
    success: bool = True
    data: CertificateView
