"""
HTTP tests for the admin endpoints.

These tests cover:
- Password verification
- Bearer credential on the listing and export endpoints
- CSV and ZIP downloads
- Admin rate limit ahead of the password check
- Background job listing and manual runs
"""

import zipfile
from io import BytesIO
from unittest.mock import AsyncMock, patch

from apscheduler.triggers.interval import IntervalTrigger

from app.core import scheduler
from app.core.config import settings
from app.repository.base import StoreError

ADMIN_PASSWORD = "correct-horse-battery"


class TestVerify:
    """Tests for POST /admin/verify."""

    def test_correct_password(self, client):
        response = client.post("/api/v1/admin/verify", json={"password": ADMIN_PASSWORD})

        assert response.status_code == 200
        assert response.json() == {"success": True}

    def test_wrong_password(self, client):
        response = client.post("/api/v1/admin/verify", json={"password": "guess"})

        assert response.status_code == 401
        assert response.json()["detail"] == {"error": "UNAUTHORIZED", "message": "Unauthorized"}

    def test_missing_password(self, client):
        assert client.post("/api/v1/admin/verify", json={}).status_code == 401

    def test_not_configured(self, client):
        with patch.object(settings, "admin_password", None):
            response = client.post("/api/v1/admin/verify", json={"password": "anything"})

        assert response.status_code == 500
        assert response.json()["detail"]["error"] == "SERVER_CONFIGURATION_ERROR"

    def test_rate_limited_after_four_attempts(self, client):
        for _ in range(4):
            client.post("/api/v1/admin/verify", json={"password": "guess"})

        response = client.post("/api/v1/admin/verify", json={"password": ADMIN_PASSWORD})

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "900"
        assert response.json()["detail"]["message"] == (
            "Too many requests. Please try again in 15 minutes."
        )


class TestSubmissions:
    """Tests for GET /admin/submissions."""

    def test_requires_credential(self, client):
        response = client.get("/api/v1/admin/submissions")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_lists_applications(self, client, admin_headers, mock_store, application_record):
        mock_store.list_applications.return_value = [application_record]

        response = client.get("/api/v1/admin/submissions", headers=admin_headers)

        assert response.status_code == 200
        submissions = response.json()["submissions"]
        assert len(submissions) == 1
        assert submissions[0]["email_address"] == "asha.kumari@example.com"
        assert submissions[0]["ip_address"] == "203.0.113.5"

    def test_store_failure(self, client, admin_headers, mock_store):
        mock_store.list_applications.side_effect = StoreError("connection refused")

        response = client.get("/api/v1/admin/submissions", headers=admin_headers)

        assert response.status_code == 500
        assert response.json()["detail"] == {
            "error": "DATABASE_ERROR",
            "message": "Failed to fetch submissions",
        }


class TestExports:
    """Tests for the CSV and ZIP downloads."""

    def test_csv(self, client, admin_headers, mock_store, application_record):
        mock_store.list_applications.return_value = [application_record]

        response = client.get("/api/v1/admin/submissions/export.csv", headers=admin_headers)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        disposition = response.headers["content-disposition"]
        assert disposition.startswith('attachment; filename="internship_applications_')
        assert disposition.endswith('.csv"')
        assert '"Asha Kumari"' in response.text

    def test_csv_requires_credential(self, client):
        assert client.get("/api/v1/admin/submissions/export.csv").status_code == 401

    def test_zip(self, client, admin_headers, mock_store, application_record):
        mock_store.list_applications.return_value = [application_record]

        response = client.get("/api/v1/admin/submissions/images.zip", headers=admin_headers)

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/zip"
        assert 'filename="internship_images_' in response.headers["content-disposition"]
        with zipfile.ZipFile(BytesIO(response.content)) as archive:
            assert len(archive.namelist()) == 2


class TestJobs:
    """Tests for the background job endpoints."""

    def test_list_jobs(self, client, admin_headers):
        with patch.dict(
            scheduler._job_registry,
            {"sweep": (AsyncMock(), IntervalTrigger(minutes=10))},
            clear=True,
        ):
            response = client.get("/api/v1/admin/jobs", headers=admin_headers)

        assert response.status_code == 200
        assert [job["job_id"] for job in response.json()["jobs"]] == ["sweep"]

    def test_trigger_job(self, client, admin_headers):
        job = AsyncMock()

        with patch.dict(
            scheduler._job_registry, {"sweep": (job, IntervalTrigger(minutes=10))}, clear=True
        ):
            response = client.post("/api/v1/admin/jobs/sweep/trigger", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["status"] == "success"
        job.assert_awaited_once()

    def test_trigger_failing_job(self, client, admin_headers):
        job = AsyncMock(side_effect=RuntimeError("store offline"))

        with patch.dict(
            scheduler._job_registry, {"sweep": (job, IntervalTrigger(minutes=10))}, clear=True
        ):
            response = client.post("/api/v1/admin/jobs/sweep/trigger", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["status"] == "error"
        assert response.json()["error"] == "store offline"

    def test_trigger_unknown_job(self, client, admin_headers):
        with patch.dict(scheduler._job_registry, {}, clear=True):
            response = client.post("/api/v1/admin/jobs/missing/trigger", headers=admin_headers)

        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "JOB_NOT_FOUND"

    def test_jobs_require_credential(self, client):
        assert client.get("/api/v1/admin/jobs").status_code == 401
        assert client.post("/api/v1/admin/jobs/sweep/trigger").status_code == 401
