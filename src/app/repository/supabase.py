"""
Supabase Portal Store

``PortalStore`` over the Supabase (PostgREST) client. The supabase-py client
is synchronous, so each query runs in a worker thread.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any
from uuid import UUID

from postgrest.exceptions import APIError
from supabase import Client, create_client

from app.core.config import settings
from app.modules.applications.schemas import ApplicationRecord, NewApplication
from app.modules.certificates.schemas import CertificateRecord, NewCertificate
from app.repository.base import DuplicateRecordError, PortalStore, StoreError

logger = logging.getLogger(__name__)

APPLICATIONS_TABLE = "internship_applications"
CERTIFICATES_TABLE = "certificates"
UNIQUE_VIOLATION = "23505"

# Singleton client (lazily initialized)
_client: Client | None = None


def get_supabase_client() -> Client:
    """
    Get the Supabase client (service role key).

    Raises:
        RuntimeError: If Supabase is not configured
    """
    global _client

    if _client is not None:
        return _client

    if not settings.supabase_url:
        raise RuntimeError("SUPABASE_URL not configured")
    if not settings.supabase_service_role_key:
        raise RuntimeError("SUPABASE_SERVICE_ROLE_KEY not configured")

    _client = create_client(settings.supabase_url, settings.supabase_service_role_key)
    logger.info("Supabase client initialized")
    return _client


class SupabasePortalStore(PortalStore):
    def __init__(self, client: Client):
        self.client = client

    async def _run(self, query: Callable[[], Any]) -> list[dict[str, Any]]:
        try:
            response = await asyncio.to_thread(query)
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                raise DuplicateRecordError(e.message) from e
            raise StoreError(e.message) from e
        return response.data or []

    async def _first(self, table: str, column: str, value: str) -> dict[str, Any] | None:
        rows = await self._run(
            lambda: self.client.table(table).select("*").eq(column, value).limit(1).execute()
        )
        return rows[0] if rows else None

    async def _insert(self, table: str, payload: dict[str, Any]) -> dict[str, Any]:
        rows = await self._run(lambda: self.client.table(table).insert(payload).execute())
        if not rows:
            raise StoreError(f"Insert into {table} returned no row")
        return rows[0]

    # Applications

    async def find_application_by_email(self, email: str) -> ApplicationRecord | None:
        row = await self._first(APPLICATIONS_TABLE, "email_address", email.strip().lower())
        return ApplicationRecord.model_validate(row) if row else None

    async def find_application_by_roll_number(self, roll_number: str) -> ApplicationRecord | None:
        row = await self._first(APPLICATIONS_TABLE, "university_roll_number", roll_number.strip())
        return ApplicationRecord.model_validate(row) if row else None

    async def insert_application(self, application: NewApplication) -> ApplicationRecord:
        row = await self._insert(APPLICATIONS_TABLE, application.model_dump(mode="json"))
        return ApplicationRecord.model_validate(row)

    async def get_application_by_id(self, application_id: UUID) -> ApplicationRecord | None:
        row = await self._first(APPLICATIONS_TABLE, "id", str(application_id))
        return ApplicationRecord.model_validate(row) if row else None

    async def list_applications(self) -> list[ApplicationRecord]:
        rows = await self._run(
            lambda: self.client.table(APPLICATIONS_TABLE)
            .select("*")
            .order("created_at", desc=True)
            .execute()
        )
        return [ApplicationRecord.model_validate(row) for row in rows]

    # Certificates

    async def get_certificate_by_id(self, certificate_id: UUID) -> CertificateRecord | None:
        row = await self._first(CERTIFICATES_TABLE, "id", str(certificate_id))
        return CertificateRecord.model_validate(row) if row else None

    async def get_certificate_by_application_id(
        self, application_id: UUID
    ) -> CertificateRecord | None:
        row = await self._first(CERTIFICATES_TABLE, "application_id", str(application_id))
        return CertificateRecord.model_validate(row) if row else None

    async def next_certificate_sequence(self, year: int) -> int:
        rows = await self._run(
            lambda: self.client.table(CERTIFICATES_TABLE)
            .select("serial_sequence")
            .eq("serial_year", year)
            .order("serial_sequence", desc=True)
            .limit(1)
            .execute()
        )
        return (rows[0]["serial_sequence"] if rows else 0) + 1

    async def insert_certificate(self, certificate: NewCertificate) -> CertificateRecord:
        row = await self._insert(CERTIFICATES_TABLE, certificate.model_dump(mode="json"))
        return CertificateRecord.model_validate(row)

    async def update_certificate_url(self, certificate_id: UUID, url: str) -> None:
        await self._run(
            lambda: self.client.table(CERTIFICATES_TABLE)
            .update({"certificate_url": url})
            .eq("id", str(certificate_id))
            .execute()
        )
