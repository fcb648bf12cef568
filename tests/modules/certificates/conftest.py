"""
Fixtures for certificate tests.
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from app.core.storage import ObjectStorage
from app.modules.applications.schemas import ApplicationRecord, NewApplication
from app.modules.certificates.schemas import CertificateRecord, NewCertificate

PDF_URL = "https://files.example.com/certificates/issued.pdf"


def stored_certificate(new: NewCertificate) -> CertificateRecord:
    return CertificateRecord(id=uuid4(), created_at=datetime.now(UTC), **new.model_dump())


def stored_application(new: NewApplication) -> ApplicationRecord:
    return ApplicationRecord(id=uuid4(), created_at=datetime.now(UTC), **new.model_dump())


@pytest.fixture
def issuing_store(mock_store, application_record):
    """mock_store holding ``application_record`` and echoing inserts back."""
    mock_store.get_application_by_id.return_value = application_record
    mock_store.insert_certificate.side_effect = stored_certificate
    mock_store.insert_application.side_effect = stored_application
    return mock_store


@pytest.fixture
def pdf_storage():
    """Object storage double that accepts every upload."""
    storage = AsyncMock(spec=ObjectStorage)
    storage.upload_certificate_pdf.return_value = PDF_URL
    storage.upload_images.return_value = ("https://files.example.com/photo/p.jpg", None)
    return storage
