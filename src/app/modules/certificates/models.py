"""
Certificate Models

At most one certificate per application. Serial numbers are allocated per
calendar year; (serial_year, serial_sequence) is unique so two concurrent
issuers can never commit the same serial.
"""

import uuid
from datetime import UTC, date, datetime

from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class Certificate(Base):
    """An issued internship completion certificate."""

    __tablename__ = "certificates"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    application_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("internship_applications.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    serial_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    serial_year: Mapped[int] = mapped_column(Integer, nullable=False)
    serial_sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    rts_reg_number: Mapped[str] = mapped_column(String(100), nullable=False)

    marks: Mapped[int] = mapped_column(Integer, nullable=False)
    grade: Mapped[str] = mapped_column(String(30), nullable=False)
    grade_point: Mapped[int] = mapped_column(Integer, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Backfilled once the PDF is stored
    certificate_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("serial_year", "serial_sequence", name="uq_certificates_serial_year_seq"),
    )
