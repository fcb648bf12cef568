"""
SQL Portal Store

SQLAlchemy implementation of ``PortalStore`` over an async session.
"""

from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.applications.models import InternshipApplication
from app.modules.applications.schemas import ApplicationRecord, NewApplication
from app.modules.certificates.models import Certificate
from app.modules.certificates.schemas import CertificateRecord, NewCertificate
from app.repository.base import DuplicateRecordError, PortalStore, StoreError


class SqlPortalStore(PortalStore):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _add(self, instance):
        self.db.add(instance)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise DuplicateRecordError(str(e.orig)) from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreError(str(e)) from e
        await self.db.refresh(instance)
        return instance

    # Applications

    async def find_application_by_email(self, email: str) -> ApplicationRecord | None:
        result = await self.db.execute(
            select(InternshipApplication).where(
                InternshipApplication.email_address == email.strip().lower()
            )
        )
        row = result.scalars().first()
        return ApplicationRecord.model_validate(row) if row else None

    async def find_application_by_roll_number(self, roll_number: str) -> ApplicationRecord | None:
        result = await self.db.execute(
            select(InternshipApplication).where(
                InternshipApplication.university_roll_number == roll_number.strip()
            )
        )
        row = result.scalars().first()
        return ApplicationRecord.model_validate(row) if row else None

    async def insert_application(self, application: NewApplication) -> ApplicationRecord:
        row = await self._add(InternshipApplication(**application.model_dump()))
        return ApplicationRecord.model_validate(row)

    async def get_application_by_id(self, application_id: UUID) -> ApplicationRecord | None:
        row = await self.db.get(InternshipApplication, application_id)
        return ApplicationRecord.model_validate(row) if row else None

    async def list_applications(self) -> list[ApplicationRecord]:
        result = await self.db.execute(
            select(InternshipApplication).order_by(InternshipApplication.created_at.desc())
        )
        return [ApplicationRecord.model_validate(row) for row in result.scalars().all()]

    # Certificates

    async def get_certificate_by_id(self, certificate_id: UUID) -> CertificateRecord | None:
        row = await self.db.get(Certificate, certificate_id)
        return CertificateRecord.model_validate(row) if row else None

    async def get_certificate_by_application_id(
        self, application_id: UUID
    ) -> CertificateRecord | None:
        result = await self.db.execute(
            select(Certificate).where(Certificate.application_id == application_id)
        )
        row = result.scalars().first()
        return CertificateRecord.model_validate(row) if row else None

    async def next_certificate_sequence(self, year: int) -> int:
        current = await self.db.scalar(
            select(func.max(Certificate.serial_sequence)).where(Certificate.serial_year == year)
        )
        return (current or 0) + 1

    async def insert_certificate(self, certificate: NewCertificate) -> CertificateRecord:
        row = await self._add(Certificate(**certificate.model_dump()))
        return CertificateRecord.model_validate(row)

    async def update_certificate_url(self, certificate_id: UUID, url: str) -> None:
        try:
            await self.db.execute(
                update(Certificate)
                .where(Certificate.id == certificate_id)
                .values(certificate_url=url)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreError(str(e)) from e
