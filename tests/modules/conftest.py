"""
Fixtures shared by the module (service and router) tests.
"""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from app.core.config import Settings, settings
from app.core.rate_limit import SubmissionThrottle, get_throttle
from app.core.storage import ObjectStorage, get_storage
from app.core.throttle_store import MemoryThrottleStore
from app.main import app
from app.repository import get_store

SITE_URL = "https://apply.example.com"
ADMIN_PASSWORD = "correct-horse-battery"


@pytest.fixture
def inline_storage():
    """Storage with no bucket configured: images stay inline."""
    return ObjectStorage(Settings(s3_access_key_id=None, s3_public_base_url=None))


@pytest.fixture
def api_throttle(clock):
    """Fresh throttle with production limits for router tests."""
    return SubmissionThrottle(MemoryThrottleStore(clock=clock), Settings(python_env="production"))


@pytest.fixture
def client(mock_store, api_throttle, inline_storage):
    """
    TestClient with the store, throttle and storage dependencies replaced.

    The lifespan is not run, so no database, Redis or scheduler is touched.
    """
    app.dependency_overrides[get_store] = lambda: mock_store
    app.dependency_overrides[get_throttle] = lambda: api_throttle
    app.dependency_overrides[get_storage] = lambda: inline_storage

    with (
        patch.object(settings, "site_url", SITE_URL),
        patch.object(settings, "turnstile_secret_key", None),
        patch.object(settings, "admin_password", ADMIN_PASSWORD),
    ):
        yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {ADMIN_PASSWORD}"}
