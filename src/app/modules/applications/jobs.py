"""
Internship Applications Background Jobs

- throttle_sweep: purges expired rate-limit events, cooldowns and
  suspicious-activity counters so throttle state does not grow without bound.
"""

import logging

from apscheduler.triggers.interval import IntervalTrigger

from app.core.config import settings
from app.core.rate_limit import sweep_throttle
from app.core.scheduler import register_job

logger = logging.getLogger(__name__)

JOB_ID_THROTTLE_SWEEP = "applications_throttle_sweep"


def register_application_jobs() -> None:
    """Register background jobs for the applications module."""
    register_job(
        job_id=JOB_ID_THROTTLE_SWEEP,
        func=sweep_throttle,
        trigger=IntervalTrigger(minutes=settings.throttle_sweep_interval_minutes),
    )
    logger.info("Registered application background jobs")
