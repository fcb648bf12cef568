"""
Persistence layer.

``get_store`` is the FastAPI dependency that hands routers the store selected
by ``settings.storage_backend``.
"""

from collections.abc import AsyncIterator

from app.core.config import settings
from app.core.database import async_session_maker
from app.repository.base import DuplicateRecordError, PortalStore, StoreError
from app.repository.sql import SqlPortalStore


async def get_store() -> AsyncIterator[PortalStore]:
    """
    FastAPI dependency yielding the configured ``PortalStore``.

    Usage:
        @router.get("/forms/{id}")
        async def view(id: UUID, store: PortalStore = Depends(get_store)):
            ...
    """
    if settings.storage_backend.lower() == "supabase":
        from app.repository.supabase import SupabasePortalStore, get_supabase_client

        yield SupabasePortalStore(get_supabase_client())
        return

    async with async_session_maker() as session:
        yield SqlPortalStore(session)


__all__ = [
    "DuplicateRecordError",
    "PortalStore",
    "SqlPortalStore",
    "StoreError",
    "get_store",
]
