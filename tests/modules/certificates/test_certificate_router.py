"""
HTTP tests for the certificate endpoints.

These tests cover:
- Admin credential and admin rate limit on the issue endpoints
- Error bodies, including the existing-certificate details on 409
- Public certificate verification view
"""

from unittest.mock import AsyncMock, patch
from uuid import uuid4

from app.core.config import settings
from app.modules.certificates.schemas import CertificateIssueResponse
from app.modules.certificates.service import CertificateExistsError, StudentExistsError

ISSUE_TARGET = "app.modules.certificates.service.issue_certificate"
SCRATCH_TARGET = "app.modules.certificates.service.issue_certificate_from_scratch"


def _generate_body(application_id) -> dict:
    return {
        "applicationId": str(application_id),
        "rtsRegNumber": "RTS-REG-1001",
        "marks": 86,
        "startDate": "2026-06-01",
        "endDate": "2026-07-15",
    }


def _issued(certificate_record) -> CertificateIssueResponse:
    return CertificateIssueResponse(
        certificate_id=certificate_record.id,
        serial_number=certificate_record.serial_number,
        grade="A+",
        grade_point=9,
        certificate_url=certificate_record.certificate_url,
        view_url=f"https://apply.example.com/certificate/view/{certificate_record.id}",
    )


class TestGenerate:
    """Tests for POST /certificates/generate."""

    def test_requires_admin(self, client, application_record):
        response = client.post(
            "/api/v1/certificates/generate", json=_generate_body(application_record.id)
        )

        assert response.status_code == 401
        assert response.json()["detail"]["error"] == "UNAUTHORIZED"

    def test_wrong_password(self, client, application_record):
        response = client.post(
            "/api/v1/certificates/generate",
            json=_generate_body(application_record.id),
            headers={"Authorization": "Bearer wrong"},
        )

        assert response.status_code == 401

    def test_missing_server_password(self, client, admin_headers, application_record):
        with patch.object(settings, "admin_password", None):
            response = client.post(
                "/api/v1/certificates/generate",
                json=_generate_body(application_record.id),
                headers=admin_headers,
            )

        assert response.status_code == 500
        assert response.json()["detail"]["error"] == "SERVER_CONFIGURATION_ERROR"

    def test_success(self, client, admin_headers, application_record, certificate_record):
        issue = AsyncMock(return_value=_issued(certificate_record))

        with patch(ISSUE_TARGET, issue):
            response = client.post(
                "/api/v1/certificates/generate",
                json=_generate_body(application_record.id),
                headers=admin_headers,
            )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["certificateId"] == str(certificate_record.id)
        assert body["serialNumber"] == "RTS/2026/0007"
        assert body["gradePoint"] == 9
        assert body["viewUrl"].endswith(f"/certificate/view/{certificate_record.id}")
        assert issue.await_args.args[3] == "https://apply.example.com"

    def test_existing_certificate(
        self, client, admin_headers, application_record, certificate_record
    ):
        issue = AsyncMock(side_effect=CertificateExistsError(certificate_record))

        with patch(ISSUE_TARGET, issue):
            response = client.post(
                "/api/v1/certificates/generate",
                json=_generate_body(application_record.id),
                headers=admin_headers,
            )

        assert response.status_code == 409
        assert response.json()["detail"] == {
            "error": "CERTIFICATE_EXISTS",
            "message": "Certificate already exists for this application",
            "certificateId": str(certificate_record.id),
            "serialNumber": "RTS/2026/0007",
            "certificateUrl": certificate_record.certificate_url,
        }

    def test_unexpected_failure(self, client, admin_headers, application_record):
        with patch(ISSUE_TARGET, AsyncMock(side_effect=RuntimeError("renderer crashed"))):
            response = client.post(
                "/api/v1/certificates/generate",
                json=_generate_body(application_record.id),
                headers=admin_headers,
            )

        assert response.status_code == 500
        assert response.json()["detail"] == {
            "error": "INTERNAL_ERROR",
            "message": "Failed to generate certificate",
        }

    def test_marks_out_of_range(self, client, admin_headers, application_record):
        body = {**_generate_body(application_record.id), "marks": 101}

        response = client.post("/api/v1/certificates/generate", json=body, headers=admin_headers)

        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["error"] == "VALIDATION_ERROR"
        assert "marks" in detail["message"]

    def test_end_before_start(self, client, admin_headers, application_record):
        body = {**_generate_body(application_record.id), "endDate": "2026-05-01"}

        response = client.post("/api/v1/certificates/generate", json=body, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["detail"]["message"] == "endDate must be on or after startDate"

    def test_admin_rate_limit(self, client, application_record):
        for _ in range(4):
            response = client.post(
                "/api/v1/certificates/generate", json=_generate_body(application_record.id)
            )
            assert response.status_code == 401

        response = client.post(
            "/api/v1/certificates/generate", json=_generate_body(application_record.id)
        )

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "900"


class TestGenerateScratch:
    """Tests for POST /certificates/generate-scratch."""

    def test_success_includes_application_id(self, client, admin_headers, certificate_record):
        issued = _issued(certificate_record)
        issued.application_id = certificate_record.application_id

        with patch(SCRATCH_TARGET, AsyncMock(return_value=issued)):
            response = client.post(
                "/api/v1/certificates/generate-scratch",
                json={"studentName": "Ravi Ranjan", "marks": 72},
                headers=admin_headers,
            )

        assert response.status_code == 200
        assert response.json()["applicationId"] == str(certificate_record.application_id)

    def test_student_exists(self, client, admin_headers):
        with patch(SCRATCH_TARGET, AsyncMock(side_effect=StudentExistsError("PU-2021-0199"))):
            response = client.post(
                "/api/v1/certificates/generate-scratch",
                json={"rollNo": "PU-2021-0199"},
                headers=admin_headers,
            )

        assert response.status_code == 409
        assert response.json()["detail"]["error"] == "STUDENT_EXISTS"


class TestVerify:
    """Tests for GET /certificates/{id}."""

    def test_found(self, client, mock_store, certificate_record, application_record):
        mock_store.get_certificate_by_id.return_value = certificate_record
        mock_store.get_application_by_id.return_value = application_record

        response = client.get(f"/api/v1/certificates/{certificate_record.id}")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["certificate"]["serial_number"] == "RTS/2026/0007"
        assert data["application"]["student_name"] == "Asha Kumari"
        assert "ip_address" not in data["application"]

    def test_not_found(self, client):
        response = client.get(f"/api/v1/certificates/{uuid4()}")

        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "CERTIFICATE_NOT_FOUND"
