"""
Portal Store Interface

Persistence contract for applications and certificates. Two implementations
exist: ``SqlPortalStore`` (SQLAlchemy) and ``SupabasePortalStore`` (managed
Postgres over PostgREST). Services only ever see this interface.

Design Principles:
- Returns pydantic records, never ORM objects or raw rows
- Unique-constraint violations surface as ``DuplicateRecordError``
- No business logic (validation, grading, throttling live in services)
"""

from abc import ABC, abstractmethod
from uuid import UUID

from app.modules.applications.schemas import ApplicationRecord, NewApplication
from app.modules.certificates.schemas import CertificateRecord, NewCertificate


class StoreError(Exception):
    """Base exception for persistence failures."""


class DuplicateRecordError(StoreError):
    """Raised when an insert violates a unique constraint."""


class PortalStore(ABC):
    # Applications

    @abstractmethod
    async def find_application_by_email(self, email: str) -> ApplicationRecord | None:
        """Look up an application by (lower-cased) email address."""

    @abstractmethod
    async def find_application_by_roll_number(self, roll_number: str) -> ApplicationRecord | None:
        """Look up an application by university roll number."""

    @abstractmethod
    async def insert_application(self, application: NewApplication) -> ApplicationRecord:
        """
        Persist a new application.

        Raises:
            DuplicateRecordError: email or roll number already stored
            StoreError: any other persistence failure
        """

    @abstractmethod
    async def get_application_by_id(self, application_id: UUID) -> ApplicationRecord | None: ...

    @abstractmethod
    async def list_applications(self) -> list[ApplicationRecord]:
        """All applications, newest first."""

    # Certificates

    @abstractmethod
    async def get_certificate_by_id(self, certificate_id: UUID) -> CertificateRecord | None: ...

    @abstractmethod
    async def get_certificate_by_application_id(
        self, application_id: UUID
    ) -> CertificateRecord | None: ...

    @abstractmethod
    async def next_certificate_sequence(self, year: int) -> int:
        """Next unused serial sequence for ``year`` (1 for the first certificate)."""

    @abstractmethod
    async def insert_certificate(self, certificate: NewCertificate) -> CertificateRecord:
        """
        Persist a new certificate.

        Raises:
            DuplicateRecordError: application already certified or serial taken
            StoreError: any other persistence failure
        """

    @abstractmethod
    async def update_certificate_url(self, certificate_id: UUID, url: str) -> None: ...
