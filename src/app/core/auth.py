"""
Admin Authentication

The admin area is protected by one shared password (``ADMIN_PASSWORD``),
presented as a bearer credential. Comparison is constant time.

SECURITY NOTE:
- If ADMIN_PASSWORD is not configured every admin request fails with 500;
  the endpoints are never left open.
"""

import hmac
import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import settings

logger = logging.getLogger(__name__)

# Security scheme for OpenAPI documentation
security = HTTPBearer(
    auto_error=False,
    description="Admin password as a Bearer credential",
)


def _configuration_error() -> HTTPException:
    logger.error("ADMIN_PASSWORD is not configured")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "error": "SERVER_CONFIGURATION_ERROR",
            "message": "Server configuration error",
        },
    )


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={
            "error": "UNAUTHORIZED",
            "message": "Unauthorized",
        },
        headers={"WWW-Authenticate": "Bearer"},
    )


def check_admin_password(candidate: str | None) -> None:
    """
    Validate a candidate admin password.

    Raises:
        HTTPException 500: If no admin password is configured
        HTTPException 401: If the candidate is missing or wrong
    """
    expected = settings.admin_password
    if not expected:
        raise _configuration_error()

    if not candidate or not hmac.compare_digest(candidate.encode(), expected.encode()):
        logger.warning("Rejected admin credential")
        raise _unauthorized()


async def require_admin(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> None:
    """
    FastAPI dependency guarding admin endpoints.

    Usage:
        @router.get("/admin/endpoint", dependencies=[Depends(require_admin)])
        async def admin_endpoint():
            ...

    Raises:
        HTTPException 500: If no admin password is configured
        HTTPException 401: If the bearer credential is missing or wrong
    """
    check_admin_password(credentials.credentials if credentials else None)


__all__ = [
    "check_admin_password",
    "require_admin",
]
