"""
Internship Portal API - Main Application Entry Point

Builds the FastAPI application:
- Lifespan: optional Redis, database, submission throttle, job scheduler
- CORS and the /api/v1 router
- A validation handler answering 400 with the first offending field
- Health and readiness probes
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api import api_router
from app.core.config import settings
from app.core.database import close_db, init_db
from app.core.rate_limit import close_throttle, init_throttle
from app.core.redis import close_redis, init_redis
from app.core.scheduler import start_scheduler, stop_scheduler
from app.modules.applications.jobs import register_application_jobs


def _startup_failed(step: str, error: Exception) -> None:
    """Report a failed startup step; production refuses to boot without it."""
    print(f"[FAIL] {step}: {error}")
    if settings.is_production:
        raise error


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """
    Application lifespan manager.

    Startup order matters: the throttle's redis and database backends need
    their connections before the throttle is built, and the sweep job needs
    the throttle.
    """
    print(f"Starting Internship Portal API in {settings.python_env} mode...")

    if settings.throttle_backend == "redis":
        try:
            await init_redis()
            print("[OK] Redis connected")
        except Exception as e:
            _startup_failed("Redis connection", e)

    if settings.storage_backend == "sql" or settings.throttle_backend == "database":
        try:
            await init_db()
            print("[OK] Database connected")
        except Exception as e:
            _startup_failed("Database connection", e)
    else:
        print(f"[OK] Using {settings.storage_backend} store")

    try:
        init_throttle()
        print(f"[OK] Throttle ready ({settings.throttle_backend})")
    except (RuntimeError, ValueError) as e:
        _startup_failed("Throttle", e)

    try:
        register_application_jobs()
        await start_scheduler()
        print("[OK] Background scheduler started")
    except Exception as e:
        _startup_failed("Background scheduler", e)

    yield

    print("Shutting down Internship Portal API...")

    # Running jobs may still use the throttle
    await stop_scheduler()
    await close_throttle()
    await close_redis()
    await close_db()
    print("[OK] Cleanup complete")


app = FastAPI(
    title="Internship Portal API",
    description="Internship application intake, admin review and certificate issuance",
    version="0.1.0",
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

app.include_router(api_router, prefix="/api/v1")

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _validation_message(exc: RequestValidationError) -> str:
    """Single-line message naming the first offending field."""
    errors = exc.errors()
    if not errors:
        return "Invalid request body"

    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = str(first.get("msg", "Invalid value")).removeprefix("Value error, ")
    return f"{field}: {message}" if field else message


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": {
                "error": "VALIDATION_ERROR",
                "message": _validation_message(exc),
            }
        },
    )


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """Root endpoint - API welcome message."""
    return {
        "message": "Welcome to the Internship Portal API",
        "status": "running",
        "environment": settings.python_env,
    }


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint for container orchestration."""
    return {"status": "healthy"}


@app.get("/ready", tags=["Health"])
async def readiness_check() -> dict[str, str]:
    """Readiness check endpoint."""
    return {"status": "ready"}
