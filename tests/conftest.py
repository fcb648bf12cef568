"""
Shared fixtures for the internship portal tests.
"""

from datetime import UTC, date, datetime
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core import throttle_store  # noqa: F401
from app.core.database import Base
from app.modules.applications import models as application_models  # noqa: F401
from app.modules.applications.schemas import ApplicationRecord
from app.modules.certificates import models as certificate_models  # noqa: F401
from app.modules.certificates.schemas import CertificateRecord
from app.repository.base import PortalStore

# Smallest valid PNG header, base64 encoded
TINY_PNG_DATA_URL = "data:image/png;base64,iVBORw0KGgo="


class FakeClock:
    """Manually advanced epoch-seconds clock."""

    def __init__(self, start: float = 1_800_000_000.0):
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest_asyncio.fixture
async def session_factory():
    """In-memory SQLite database with every table created."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def submission_payload():
    """A complete, valid application body as the form sends it (camelCase)."""
    return {
        "studentName": "Asha Kumari",
        "fatherName": "Ramesh Kumar",
        "motherName": "Sunita Devi",
        "gender": "Female",
        "dateOfBirth": "2004-05-15",
        "address": "12 Boring Road, Patna, Bihar",
        "internshipTopic": "Web Development",
        "course": "BCA",
        "collegeName": "Patna Science College",
        "honoursSubject": "Computer Science",
        "currentSemester": "5th Semester",
        "classRollNo": "42",
        "universityName": "Patliputra University",
        "universityRollNumber": "PU-2022-0042",
        "universityRegistrationNumber": "REG-778899",
        "contactNumber": "9876543210",
        "whatsappNumber": "9876543210",
        "emailAddress": "Asha.Kumari@example.com",
        "photo": TINY_PNG_DATA_URL,
        "signature": TINY_PNG_DATA_URL,
        "declarationAccepted": True,
        "website": "",
    }


@pytest.fixture
def application_record():
    """A stored application."""
    return ApplicationRecord(
        id=uuid4(),
        student_name="Asha Kumari",
        father_name="Ramesh Kumar",
        mother_name="Sunita Devi",
        gender="Female",
        date_of_birth=date(2004, 5, 15),
        address="12 Boring Road, Patna, Bihar",
        internship_topic="Web Development",
        course="BCA",
        college_name="Patna Science College",
        honours_subject="Computer Science",
        current_semester="5th Semester",
        class_roll_no="42",
        university_name="Patliputra University",
        university_roll_number="PU-2022-0042",
        university_registration_number="REG-778899",
        contact_number="9876543210",
        whatsapp_number=None,
        email_address="asha.kumari@example.com",
        photo=TINY_PNG_DATA_URL,
        signature=TINY_PNG_DATA_URL,
        ip_address="203.0.113.5",
        created_at=datetime(2026, 10, 1, 9, 30, tzinfo=UTC),
    )


@pytest.fixture
def certificate_record(application_record):
    """A stored certificate for ``application_record``."""
    return CertificateRecord(
        id=uuid4(),
        application_id=application_record.id,
        serial_number="RTS/2026/0007",
        serial_year=2026,
        serial_sequence=7,
        rts_reg_number="RTS-REG-1001",
        marks=86,
        grade="A+",
        grade_point=9,
        start_date=date(2026, 6, 1),
        end_date=date(2026, 7, 15),
        certificate_url="https://files.example.com/certificates/abc.pdf",
        created_at=datetime(2026, 7, 20, 12, 0, tzinfo=UTC),
    )


@pytest.fixture
def mock_store():
    """PortalStore double with nothing on file."""
    store = AsyncMock(spec=PortalStore)
    store.find_application_by_email.return_value = None
    store.find_application_by_roll_number.return_value = None
    store.get_application_by_id.return_value = None
    store.get_certificate_by_id.return_value = None
    store.get_certificate_by_application_id.return_value = None
    store.next_certificate_sequence.return_value = 1
    store.list_applications.return_value = []
    return store
