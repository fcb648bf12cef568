"""
Background Job Scheduler

APScheduler (AsyncIO flavour) running the portal's housekeeping jobs, such as
purging expired throttle entries.

Feature modules describe their jobs with ``register_job`` at import or
startup time; ``start_scheduler`` (called from the FastAPI lifespan) adds
everything registered so far. Jobs registered after start are scheduled
straight away. Every job can also be run on demand with
``trigger_job_manually``.
"""

import logging
from collections.abc import Callable, Coroutine
from datetime import UTC, datetime
from typing import Any

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, JobExecutionEvent
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.base import BaseTrigger

logger = logging.getLogger(__name__)

JobFunc = Callable[[], Coroutine[Any, Any, None]]

SCHEDULER_TIMEZONE = "UTC"

# Missed runs collapse into one; a job never overlaps itself
JOB_DEFAULTS = {
    "coalesce": True,
    "max_instances": 1,
    "misfire_grace_time": 300,
}

_scheduler: AsyncIOScheduler | None = None

# job_id -> (coroutine function, trigger)
_job_registry: dict[str, tuple[JobFunc, BaseTrigger]] = {}


def _is_running() -> bool:
    return _scheduler is not None and _scheduler.running


def _on_job_event(event: JobExecutionEvent) -> None:
    if event.exception:
        logger.error(f"Job {event.job_id} raised: {event.exception}", exc_info=event.exception)
    else:
        logger.debug(f"Job {event.job_id} finished")


def _schedule(job_id: str) -> None:
    func, trigger = _job_registry[job_id]
    _scheduler.add_job(func, trigger=trigger, id=job_id, replace_existing=True)
    logger.info(f"Scheduled job {job_id} ({trigger})")


def register_job(job_id: str, func: JobFunc, trigger: BaseTrigger) -> None:
    """
    Add (or replace) a job in the registry.

    Args:
        job_id: unique job name
        func: coroutine function taking no arguments
        trigger: when to run it, e.g. ``IntervalTrigger(minutes=10)``
    """
    _job_registry[job_id] = (func, trigger)
    if _is_running():
        _schedule(job_id)


async def start_scheduler() -> AsyncIOScheduler:
    """Create the scheduler, add every registered job and start it."""
    global _scheduler

    if _is_running():
        logger.warning("start_scheduler called twice; keeping the running scheduler")
        return _scheduler

    _scheduler = AsyncIOScheduler(timezone=SCHEDULER_TIMEZONE, job_defaults=JOB_DEFAULTS)
    _scheduler.add_listener(_on_job_event, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR)
    for job_id in _job_registry:
        _schedule(job_id)

    _scheduler.start()
    logger.info(f"Scheduler started ({len(_job_registry)} jobs)")
    return _scheduler


async def stop_scheduler() -> None:
    """Shut the scheduler down after in-flight jobs complete."""
    global _scheduler

    if not _is_running():
        return

    _scheduler.shutdown(wait=True)
    _scheduler = None
    logger.info("Scheduler stopped")


async def trigger_job_manually(job_id: str) -> dict[str, Any]:
    """
    Run a registered job now, outside its schedule.

    Failures are reported in the result rather than raised.

    Returns:
        ``{"job_id", "status": "success" | "error", "executed_at"[, "error"]}``

    Raises:
        ValueError: unknown job id
    """
    try:
        func, _ = _job_registry[job_id]
    except KeyError:
        known = ", ".join(sorted(_job_registry)) or "none"
        raise ValueError(f"Unknown job {job_id!r} (registered: {known})") from None

    result: dict[str, Any] = {
        "job_id": job_id,
        "executed_at": datetime.now(UTC).isoformat(),
    }
    try:
        await func()
    except Exception as e:
        logger.error(f"Manual run of {job_id} failed: {e}", exc_info=True)
        result.update(status="error", error=str(e))
    else:
        result["status"] = "success"
    return result


def list_registered_jobs() -> list[dict[str, Any]]:
    """Registered jobs with their next run time (None until scheduled)."""
    jobs = []
    for job_id in _job_registry:
        job = _scheduler.get_job(job_id) if _scheduler is not None else None
        next_run = job.next_run_time if job is not None else None
        jobs.append(
            {"job_id": job_id, "next_run_time": next_run.isoformat() if next_run else None}
        )
    return jobs
