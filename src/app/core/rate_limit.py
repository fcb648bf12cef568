"""
Rate Limiting Module

Anti-abuse throttling for the public submission endpoint and the admin API:

- Per-IP sliding-window rate limit on submissions
- Per-email cooldown between accepted submissions
- Suspicious-activity counter that bans an IP once it crosses a threshold
- Per-IP rate limit on admin endpoints (separate key space, tighter window)

State lives in a ``ThrottleStore`` chosen by ``settings.throttle_backend``.
The ``SubmissionThrottle`` instance is built once on startup, swept by a
background job and closed on shutdown.
"""

import logging
import math

from fastapi import Depends, HTTPException, Request, status

from app.core.config import Settings, settings
from app.core.request_info import get_client_ip
from app.core.throttle_store import (
    CooldownResult,
    DatabaseThrottleStore,
    MemoryThrottleStore,
    RateLimitResult,
    RedisThrottleStore,
    ThrottleStore,
)

logger = logging.getLogger(__name__)


class RateLimitExceeded(HTTPException):
    """Exception raised when rate limit is exceeded."""

    def __init__(self, retry_after_seconds: int, message: str | None = None):
        minutes = max(1, math.ceil(retry_after_seconds / 60))
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "error": "RATE_LIMIT_EXCEEDED",
                "message": message or f"Too many requests. Please try again in {minutes} minutes.",
                "retry_after_seconds": retry_after_seconds,
            },
            headers={"Retry-After": str(retry_after_seconds)},
        )


class SubmissionThrottle:
    """
    Throttling policy over a ``ThrottleStore``.

    Args:
        store: backend holding the counters
        config: settings supplying limits and windows
    """

    def __init__(self, store: ThrottleStore, config: Settings | None = None):
        self.store = store
        self.config = config or settings

    def now(self) -> float:
        return self.store.now()

    async def check_rate_limit(self, ip: str) -> RateLimitResult:
        """
        Count a submission attempt from ``ip``.

        Returns:
            RateLimitResult; when not allowed nothing was recorded
        """
        result = await self.store.hit(
            f"submit:{ip}",
            self.config.submission_rate_limit,
            self.config.rate_limit_window_seconds,
        )
        if not result.allowed:
            logger.warning(f"Submission rate limit exceeded for {ip}")
        return result

    async def check_email_cooldown(self, email: str) -> CooldownResult:
        """
        Claim the cooldown slot for ``email`` (case-insensitive).

        A rejected claim leaves the existing slot untouched.
        """
        normalized = email.strip().lower()
        result = await self.store.claim_cooldown(normalized, self.config.email_cooldown_seconds)
        if not result.allowed:
            logger.warning(f"Email cooldown active for {normalized}")
        return result

    async def check_admin_rate_limit(self, ip: str) -> RateLimitResult:
        result = await self.store.hit(
            f"admin:{ip}",
            self.config.admin_rate_limit,
            self.config.admin_rate_limit_window_seconds,
        )
        if not result.allowed:
            logger.warning(f"Admin rate limit exceeded for {ip}")
        return result

    async def record_suspicious_activity(self, ip: str) -> None:
        await self.store.record_event(f"suspicious:{ip}", self.config.suspicious_window_seconds)

    async def is_suspicious_ip(self, ip: str) -> bool:
        count = await self.store.count_events(
            f"suspicious:{ip}", self.config.suspicious_window_seconds
        )
        return count >= self.config.suspicious_threshold

    async def sweep(self) -> int:
        removed = await self.store.sweep()
        if removed:
            logger.info(f"Throttle sweep removed {removed} expired entries")
        return removed

    async def close(self) -> None:
        await self.store.close()


# Throttle instance (process-wide)
_throttle: SubmissionThrottle | None = None


def _retention_seconds(config: Settings) -> int:
    return max(
        config.rate_limit_window_seconds,
        config.email_cooldown_seconds,
        config.suspicious_window_seconds,
        config.admin_rate_limit_window_seconds,
    )


def create_throttle_store(config: Settings | None = None) -> ThrottleStore:
    """
    Build the throttle backend named by ``throttle_backend``.

    Raises:
        ValueError: unknown backend name
        RuntimeError: redis backend selected but Redis not initialised
    """
    config = config or settings
    backend = config.throttle_backend.lower()

    if backend == "memory":
        return MemoryThrottleStore()

    if backend == "database":
        from app.core.database import async_session_maker

        return DatabaseThrottleStore(
            async_session_maker, retention_seconds=_retention_seconds(config)
        )

    if backend == "redis":
        from app.core.redis import get_redis

        return RedisThrottleStore(get_redis())

    raise ValueError(f"Unknown throttle backend: {config.throttle_backend}")


def init_throttle(config: Settings | None = None) -> SubmissionThrottle:
    """
    Build the process-wide throttle.

    Call this on application startup, after Redis is initialised.
    """
    global _throttle
    config = config or settings
    _throttle = SubmissionThrottle(create_throttle_store(config), config)
    logger.info(f"Throttle initialised with {config.throttle_backend} backend")
    return _throttle


def get_throttle() -> SubmissionThrottle:
    """
    Get the process-wide throttle.

    Falls back to an in-memory throttle when startup did not build one
    (e.g. the app is served without running its lifespan).

    Usage in FastAPI:
        @router.post("/submit")
        async def submit(throttle: SubmissionThrottle = Depends(get_throttle)):
            ...
    """
    global _throttle
    if _throttle is None:
        _throttle = SubmissionThrottle(MemoryThrottleStore())
    return _throttle


async def close_throttle() -> None:
    """Close the throttle backend."""
    global _throttle
    if _throttle is not None:
        await _throttle.close()
        _throttle = None


async def sweep_throttle() -> None:
    """Background job: purge expired throttle state."""
    await get_throttle().sweep()


async def enforce_admin_rate_limit(ip: str, throttle: SubmissionThrottle) -> None:
    """
    Reject an admin request that exceeds the admin rate limit.

    Raises:
        RateLimitExceeded: When the IP is over the admin limit (HTTP 429)
    """
    result = await throttle.check_admin_rate_limit(ip)
    if not result.allowed:
        raise RateLimitExceeded(result.retry_after_seconds(throttle.now()))


async def admin_rate_limit(
    request: Request,
    throttle: SubmissionThrottle = Depends(get_throttle),
) -> None:
    """
    FastAPI dependency applying the admin rate limit to the caller's IP.

    Usage:
        @router.get("/admin/endpoint", dependencies=[Depends(admin_rate_limit)])
    """
    await enforce_admin_rate_limit(get_client_ip(request), throttle)


__all__ = [
    "RateLimitExceeded",
    "SubmissionThrottle",
    "admin_rate_limit",
    "close_throttle",
    "create_throttle_store",
    "enforce_admin_rate_limit",
    "get_throttle",
    "init_throttle",
    "sweep_throttle",
]
