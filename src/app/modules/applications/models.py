"""
Internship Application Models

One row per accepted application. Email address and university roll number
are unique; together with the service-level pre-checks this is what keeps
duplicate submissions out.
"""

import uuid
from datetime import UTC, date, datetime

from sqlalchemy import Date, DateTime, Index, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class InternshipApplication(Base):
    """A student's internship application."""

    __tablename__ = "internship_applications"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # Personal information
    student_name: Mapped[str] = mapped_column(String(100), nullable=False)
    father_name: Mapped[str] = mapped_column(String(100), nullable=False)
    mother_name: Mapped[str] = mapped_column(String(100), nullable=False)
    gender: Mapped[str] = mapped_column(String(20), nullable=False)
    date_of_birth: Mapped[date] = mapped_column(Date, nullable=False)
    address: Mapped[str] = mapped_column(String(500), nullable=False)

    # Academic information
    internship_topic: Mapped[str] = mapped_column(String(100), nullable=False)
    course: Mapped[str | None] = mapped_column(String(100), nullable=True)
    college_name: Mapped[str] = mapped_column(String(200), nullable=False)
    honours_subject: Mapped[str] = mapped_column(String(100), nullable=False)
    current_semester: Mapped[str] = mapped_column(String(50), nullable=False)
    class_roll_no: Mapped[str] = mapped_column(String(50), nullable=False)
    university_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    university_roll_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    university_registration_number: Mapped[str] = mapped_column(String(50), nullable=False)

    # Contact information
    contact_number: Mapped[str] = mapped_column(String(20), nullable=False)
    whatsapp_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    email_address: Mapped[str] = mapped_column(String(254), nullable=False, unique=True)

    # Images: public URL or inline base64 data URL
    photo: Mapped[str | None] = mapped_column(Text, nullable=True)
    signature: Mapped[str | None] = mapped_column(Text, nullable=True)

    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (Index("ix_internship_applications_created_at", "created_at"),)
