from fastapi import APIRouter

from app.modules.admin.router import router as admin_router
from app.modules.applications.router import router as applications_router
from app.modules.certificates.router import router as certificates_router

api_router = APIRouter()

api_router.include_router(applications_router, tags=["Applications"])

api_router.include_router(certificates_router, prefix="/certificates", tags=["Certificates"])

api_router.include_router(admin_router, prefix="/admin", tags=["Admin"])
