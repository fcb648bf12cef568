"""
Fixtures for internship application tests.
"""

from datetime import UTC, datetime
from uuid import uuid4

import pytest

from app.core.config import Settings
from app.core.rate_limit import SubmissionThrottle
from app.core.throttle_store import MemoryThrottleStore
from app.modules.applications.schemas import ApplicationRecord, NewApplication


@pytest.fixture
def throttle_config():
    return Settings(
        python_env="development",
        rate_limit_max_submissions=5,
        email_cooldown_seconds=1800,
        suspicious_threshold=10,
    )


@pytest.fixture
def throttle(throttle_config, clock):
    return SubmissionThrottle(MemoryThrottleStore(clock=clock), throttle_config)


def stored(new: NewApplication) -> ApplicationRecord:
    """What the store hands back after inserting ``new``."""
    return ApplicationRecord(id=uuid4(), created_at=datetime.now(UTC), **new.model_dump())


@pytest.fixture
def inserting_store(mock_store):
    """mock_store whose insert echoes the new application back as a record."""
    mock_store.insert_application.side_effect = stored
    return mock_store
