"""
Throttle State Storage

Backends that hold the anti-abuse counters: sliding-window request events,
single-slot cooldowns and plain event counts (used by the suspicious-activity
tracker). All backends share one contract so the throttling policy in
``app.core.rate_limit`` does not care where the state lives.

Backends:
- MemoryThrottleStore: process-local dictionaries. Fine for a single
  instance; state is lost on restart.
- DatabaseThrottleStore: ``rate_limit_events`` and ``email_cooldowns`` tables,
  shared by every instance using the same database.
- RedisThrottleStore: sorted sets and ``SET NX PX`` keys with native expiry.

Contract:
- ``hit`` records an event only when the request is allowed.
- ``claim_cooldown`` does not refresh the slot when it rejects.
- Every backend accepts an injectable clock returning epoch seconds.
"""

import hashlib
import logging
import math
import time
import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from redis.asyncio import Redis
from sqlalchemy import DateTime, Integer, String, delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base

logger = logging.getLogger(__name__)

Clock = Callable[[], float]

# Length of the key columns in the database backend
MAX_KEY_LENGTH = 255


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a sliding-window check."""

    allowed: bool
    remaining: int
    reset_at: float  # epoch seconds at which the oldest counted event leaves the window

    def retry_after_seconds(self, now: float) -> int:
        return max(1, math.ceil(self.reset_at - now))


@dataclass(frozen=True)
class CooldownResult:
    """Outcome of a cooldown claim."""

    allowed: bool
    wait_time_ms: int = 0

    @property
    def wait_minutes(self) -> int:
        return max(1, math.ceil(self.wait_time_ms / 60_000))


class ThrottleStore(ABC):
    """Storage contract for throttle state."""

    def __init__(self, clock: Clock | None = None):
        self._clock = clock or time.time

    def now(self) -> float:
        return self._clock()

    @abstractmethod
    async def hit(self, key: str, limit: int, window_seconds: int) -> RateLimitResult:
        """Count a request against ``key`` if fewer than ``limit`` fall in the window."""

    @abstractmethod
    async def claim_cooldown(self, key: str, cooldown_seconds: int) -> CooldownResult:
        """Take the single slot for ``key`` unless it was taken less than the cooldown ago."""

    @abstractmethod
    async def record_event(self, key: str, window_seconds: int) -> None:
        """Record an event unconditionally."""

    @abstractmethod
    async def count_events(self, key: str, window_seconds: int) -> int:
        """Count events for ``key`` inside the trailing window."""

    @abstractmethod
    async def sweep(self) -> int:
        """Purge expired state. Returns the number of entries removed."""

    async def close(self) -> None:  # noqa: B027
        """Release backend resources."""


# ============================================
# In-memory backend
# ============================================


class MemoryThrottleStore(ThrottleStore):
    """
    Process-local throttle state.

    Handlers never await between reading and writing a key, so each operation
    is atomic with respect to other coroutines on the same event loop.
    """

    def __init__(self, clock: Clock | None = None):
        super().__init__(clock)
        self._events: dict[str, list[float]] = {}
        self._windows: dict[str, int] = {}
        self._cooldowns: dict[str, float] = {}

    def _prune(self, key: str, window_seconds: int, now: float) -> list[float]:
        cutoff = now - window_seconds
        events = [ts for ts in self._events.get(key, []) if ts > cutoff]
        self._events[key] = events
        self._windows[key] = max(window_seconds, self._windows.get(key, 0))
        return events

    async def hit(self, key: str, limit: int, window_seconds: int) -> RateLimitResult:
        now = self.now()
        events = self._prune(key, window_seconds, now)

        if len(events) >= limit:
            return RateLimitResult(allowed=False, remaining=0, reset_at=events[0] + window_seconds)

        events.append(now)
        return RateLimitResult(
            allowed=True,
            remaining=limit - len(events),
            reset_at=events[0] + window_seconds,
        )

    async def claim_cooldown(self, key: str, cooldown_seconds: int) -> CooldownResult:
        now = self.now()
        expires_at = self._cooldowns.get(key)

        if expires_at is not None and expires_at > now:
            return CooldownResult(allowed=False, wait_time_ms=math.ceil((expires_at - now) * 1000))

        self._cooldowns[key] = now + cooldown_seconds
        return CooldownResult(allowed=True)

    async def record_event(self, key: str, window_seconds: int) -> None:
        now = self.now()
        self._prune(key, window_seconds, now).append(now)

    async def count_events(self, key: str, window_seconds: int) -> int:
        return len(self._prune(key, window_seconds, self.now()))

    async def sweep(self) -> int:
        now = self.now()
        removed = 0

        for key in list(self._events):
            window = self._windows.get(key, 0)
            before = len(self._events[key])
            events = [ts for ts in self._events[key] if ts > now - window]
            removed += before - len(events)
            if events:
                self._events[key] = events
            else:
                del self._events[key]
                self._windows.pop(key, None)

        for key, expires_at in list(self._cooldowns.items()):
            if expires_at <= now:
                del self._cooldowns[key]
                removed += 1

        return removed


# ============================================
# Database backend
# ============================================


class RateLimitEvent(Base):
    """One counted request (or suspicious event) for a throttle key."""

    __tablename__ = "rate_limit_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    key: Mapped[str] = mapped_column(String(MAX_KEY_LENGTH), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class EmailCooldown(Base):
    """Last accepted submission time per (lower-cased) email address."""

    __tablename__ = "email_cooldowns"

    email: Mapped[str] = mapped_column(String(MAX_KEY_LENGTH), primary_key=True)
    last_submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


def fit_key(key: str) -> str:
    """Keys longer than the column are replaced by their SHA-256 digest."""
    if len(key) <= MAX_KEY_LENGTH:
        return key
    return "sha256:" + hashlib.sha256(key.encode()).hexdigest()


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class DatabaseThrottleStore(ThrottleStore):
    """
    Throttle state kept in SQL tables.

    Each operation runs in its own short session so throttle writes never
    share a transaction with the request's business data.

    Args:
        session_factory: async session factory bound to the target database
        retention_seconds: age after which ``sweep`` deletes events and cooldowns;
            should be at least the longest window or cooldown in use
        clock: epoch-seconds clock
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        retention_seconds: int = 3600,
        clock: Clock | None = None,
    ):
        super().__init__(clock)
        self._session_factory = session_factory
        self._retention_seconds = retention_seconds

    def _now_dt(self) -> tuple[float, datetime]:
        now = self.now()
        return now, datetime.fromtimestamp(now, UTC)

    async def _window_stats(
        self, session: AsyncSession, key: str, cutoff: datetime
    ) -> tuple[int, datetime | None]:
        result = await session.execute(
            select(func.count(RateLimitEvent.id), func.min(RateLimitEvent.created_at)).where(
                RateLimitEvent.key == key,
                RateLimitEvent.created_at > cutoff,
            )
        )
        count, oldest = result.one()
        return count or 0, _as_utc(oldest) if oldest is not None else None

    async def hit(self, key: str, limit: int, window_seconds: int) -> RateLimitResult:
        now, now_dt = self._now_dt()
        key = fit_key(key)
        cutoff = now_dt - timedelta(seconds=window_seconds)

        async with self._session_factory() as session:
            count, oldest = await self._window_stats(session, key, cutoff)

            if count >= limit:
                reset_at = (oldest or now_dt).timestamp() + window_seconds
                return RateLimitResult(allowed=False, remaining=0, reset_at=reset_at)

            session.add(RateLimitEvent(key=key, created_at=now_dt))
            await session.commit()

        reset_at = (oldest or now_dt).timestamp() + window_seconds
        return RateLimitResult(allowed=True, remaining=limit - count - 1, reset_at=reset_at)

    async def claim_cooldown(self, key: str, cooldown_seconds: int) -> CooldownResult:
        now, now_dt = self._now_dt()
        key = fit_key(key)

        async with self._session_factory() as session:
            row = await session.get(EmailCooldown, key)

            if row is not None:
                expires_at = _as_utc(row.last_submitted_at).timestamp() + cooldown_seconds
                if expires_at > now:
                    return CooldownResult(
                        allowed=False, wait_time_ms=math.ceil((expires_at - now) * 1000)
                    )
                row.last_submitted_at = now_dt
            else:
                session.add(EmailCooldown(email=key, last_submitted_at=now_dt))

            try:
                await session.commit()
            except IntegrityError:
                # Another request claimed the slot between our read and write
                await session.rollback()
                logger.info(f"Cooldown slot for {key} taken concurrently")
                return CooldownResult(allowed=False, wait_time_ms=cooldown_seconds * 1000)

        return CooldownResult(allowed=True)

    async def record_event(self, key: str, window_seconds: int) -> None:
        _, now_dt = self._now_dt()
        async with self._session_factory() as session:
            session.add(RateLimitEvent(key=fit_key(key), created_at=now_dt))
            await session.commit()

    async def count_events(self, key: str, window_seconds: int) -> int:
        _, now_dt = self._now_dt()
        async with self._session_factory() as session:
            count, _ = await self._window_stats(
                session, fit_key(key), now_dt - timedelta(seconds=window_seconds)
            )
        return count

    async def sweep(self) -> int:
        _, now_dt = self._now_dt()
        cutoff = now_dt - timedelta(seconds=self._retention_seconds)

        async with self._session_factory() as session:
            events = await session.execute(
                delete(RateLimitEvent).where(RateLimitEvent.created_at <= cutoff)
            )
            cooldowns = await session.execute(
                delete(EmailCooldown).where(EmailCooldown.last_submitted_at <= cutoff)
            )
            await session.commit()

        return (events.rowcount or 0) + (cooldowns.rowcount or 0)


# ============================================
# Redis backend
# ============================================


class RedisThrottleStore(ThrottleStore):
    """
    Throttle state in Redis.

    Sliding windows use sorted sets scored by timestamp; cooldowns use
    ``SET NX PX`` so the slot claim is atomic. Redis expires keys itself,
    so ``sweep`` has nothing to do.
    """

    def __init__(self, client: Redis, prefix: str = "throttle", clock: Clock | None = None):
        super().__init__(clock)
        self._client = client
        self._prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    async def hit(self, key: str, limit: int, window_seconds: int) -> RateLimitResult:
        now = self.now()
        redis_key = self._key(key)

        pipe = self._client.pipeline()
        pipe.zremrangebyscore(redis_key, 0, now - window_seconds)
        pipe.zcard(redis_key)
        pipe.zrange(redis_key, 0, 0, withscores=True)
        _, count, oldest = await pipe.execute()

        oldest_ts = oldest[0][1] if oldest else now

        if count >= limit:
            return RateLimitResult(allowed=False, remaining=0, reset_at=oldest_ts + window_seconds)

        pipe = self._client.pipeline()
        pipe.zadd(redis_key, {f"{now}:{uuid.uuid4().hex}": now})
        pipe.expire(redis_key, window_seconds)
        await pipe.execute()

        return RateLimitResult(
            allowed=True,
            remaining=limit - count - 1,
            reset_at=oldest_ts + window_seconds,
        )

    async def claim_cooldown(self, key: str, cooldown_seconds: int) -> CooldownResult:
        redis_key = self._key(f"cooldown:{key}")
        claimed = await self._client.set(
            redis_key, str(self.now()), nx=True, px=cooldown_seconds * 1000
        )
        if claimed:
            return CooldownResult(allowed=True)

        ttl_ms = await self._client.pttl(redis_key)
        return CooldownResult(allowed=False, wait_time_ms=max(ttl_ms, 0))

    async def record_event(self, key: str, window_seconds: int) -> None:
        now = self.now()
        redis_key = self._key(key)

        pipe = self._client.pipeline()
        pipe.zadd(redis_key, {f"{now}:{uuid.uuid4().hex}": now})
        pipe.expire(redis_key, window_seconds)
        await pipe.execute()

    async def count_events(self, key: str, window_seconds: int) -> int:
        redis_key = self._key(key)

        pipe = self._client.pipeline()
        pipe.zremrangebyscore(redis_key, 0, self.now() - window_seconds)
        pipe.zcard(redis_key)
        _, count = await pipe.execute()
        return count

    async def sweep(self) -> int:
        return 0


__all__ = [
    "CooldownResult",
    "DatabaseThrottleStore",
    "EmailCooldown",
    "MemoryThrottleStore",
    "RateLimitEvent",
    "RateLimitResult",
    "RedisThrottleStore",
    "ThrottleStore",
]
