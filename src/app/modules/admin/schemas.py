"""
Admin Schemas
"""

from pydantic import BaseModel

from app.modules.applications.schemas import ApplicationRecord


class AdminVerifyRequest(BaseModel):
    password: str | None = None


class AdminVerifyResponse(BaseModel):
    success: bool = True


class SubmissionsResponse(BaseModel):
    """All applications, newest first (admin view includes the submitter IP)."""

    submissions: list[ApplicationRecord]


class JobInfo(BaseModel):
    job_id: str
    next_run_time: str | None = None


class JobsResponse(BaseModel):
    jobs: list[JobInfo]


class JobRunResponse(BaseModel):
    job_id: str
    status: str
    executed_at: str
    error: str | None = None
