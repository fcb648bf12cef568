"""
Admin Router

Password-protected review of submitted applications.

Endpoints:
- POST /admin/verify - Check the admin password
- GET /admin/submissions - List all applications (newest first)
- GET /admin/submissions/export.csv - Download applications as CSV
- GET /admin/submissions/images.zip - Download all photos and signatures
- GET /admin/jobs - List background jobs and their next run
- POST /admin/jobs/{job_id}/trigger - Run a background job now

Security:
- Every endpoint is rate limited per client IP before the password is checked
- The password is compared in constant time
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status

from app.core.auth import check_admin_password, require_admin
from app.core.rate_limit import admin_rate_limit
from app.core.scheduler import list_registered_jobs, trigger_job_manually
from app.modules.admin.exports import build_csv, build_images_zip, export_filename
from app.modules.admin.schemas import (
    AdminVerifyRequest,
    AdminVerifyResponse,
    JobRunResponse,
    JobsResponse,
    SubmissionsResponse,
)
from app.modules.applications.schemas import ApplicationRecord
from app.repository import PortalStore, get_store
from app.repository.base import StoreError

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(admin_rate_limit)])


async def _load_submissions(store: PortalStore) -> list[ApplicationRecord]:
    try:
        return await store.list_applications()
    except StoreError as e:
        logger.error(f"Failed to fetch submissions: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "DATABASE_ERROR",
                "message": "Failed to fetch submissions",
            },
        ) from e


def _attachment(content: bytes | str, media_type: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post(
    "/verify",
    response_model=AdminVerifyResponse,
    summary="Verify Admin Password",
    responses={401: {"description": "Invalid password"}},
)
async def verify_admin(payload: AdminVerifyRequest) -> AdminVerifyResponse:
    check_admin_password(payload.password)
    return AdminVerifyResponse()


@router.get(
    "/submissions",
    response_model=SubmissionsResponse,
    dependencies=[Depends(require_admin)],
    summary="List Submissions",
)
async def list_submissions(store: PortalStore = Depends(get_store)) -> SubmissionsResponse:
    """
    List every submitted application, newest first.

    **Requires:** admin bearer credential
    """
    return SubmissionsResponse(submissions=await _load_submissions(store))


@router.get(
    "/submissions/export.csv",
    dependencies=[Depends(require_admin)],
    summary="Export Submissions as CSV",
    response_class=Response,
)
async def export_submissions_csv(store: PortalStore = Depends(get_store)) -> Response:
    applications = await _load_submissions(store)
    return _attachment(
        build_csv(applications),
        "text/csv; charset=utf-8",
        export_filename("internship_applications", "csv"),
    )


@router.get(
    "/submissions/images.zip",
    dependencies=[Depends(require_admin)],
    summary="Download Submission Images",
    response_class=Response,
)
async def export_submission_images(store: PortalStore = Depends(get_store)) -> Response:
    """
    Download all photos and signatures as one ZIP archive.

    Images kept in object storage are downloaded first; any that cannot be
    fetched or decoded are left out.
    """
    applications = await _load_submissions(store)
    content = await build_images_zip(applications)
    return _attachment(
        content,
        "application/zip",
        export_filename("internship_images", "zip"),
    )


@router.get(
    "/jobs",
    response_model=JobsResponse,
    dependencies=[Depends(require_admin)],
    summary="List Background Jobs",
)
async def list_jobs() -> JobsResponse:
    return JobsResponse(jobs=list_registered_jobs())


@router.post(
    "/jobs/{job_id}/trigger",
    response_model=JobRunResponse,
    dependencies=[Depends(require_admin)],
    summary="Run Background Job",
    responses={404: {"description": "Unknown job id"}},
)
async def trigger_job(job_id: str) -> JobRunResponse:
    """
    Run a background job immediately, outside its schedule.

    A failing job is reported with ``status: "error"`` rather than an HTTP error.

    **Requires:** admin bearer credential
    """
    try:
        result = await trigger_job_manually(job_id)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "error": "JOB_NOT_FOUND",
                "message": str(e),
            },
        ) from e
    return JobRunResponse(**result)
