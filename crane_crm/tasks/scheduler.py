"""APScheduler integration for in-process periodic jobs.

The only job is the scheduled-notification sweep. It runs inside the API
process on the event loop; overlapping ticks are prevented both by
``max_instances=1`` and by the engine's own single-flight lock.
"""

from __future__ import annotations

import logging
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from crane_crm.core.settings import get_notification_settings
from crane_crm.features.notifications.engine import get_notification_engine

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler(
    timezone="UTC",
    job_defaults={
        "coalesce": True,
        "max_instances": 1,
        "misfire_grace_time": 60,
    },
)

SWEEP_JOB_ID = "scheduled_notifications_sweep"


async def run_scheduled_notifications_sweep() -> dict[str, Any]:
    """Deliver due scheduled notifications once."""
    try:
        result = await get_notification_engine().process_scheduled_notifications()
    except Exception:
        logger.exception("Scheduled notification sweep failed")
        return {"status": "error"}

    if result.skipped:
        return {"status": "skipped"}
    return {
        "status": "success",
        "processed": result.processed,
        "sent": result.sent,
        "failed": result.failed,
    }


def setup_scheduled_jobs() -> None:
    """Register periodic jobs according to settings."""
    settings = get_notification_settings()
    if not settings.sweep_enabled:
        logger.info("Scheduled notification sweep disabled")
        return

    scheduler.add_job(
        func=run_scheduled_notifications_sweep,
        trigger=IntervalTrigger(seconds=settings.sweep_interval_seconds),
        id=SWEEP_JOB_ID,
        name="Deliver due scheduled notifications",
        replace_existing=True,
    )
    logger.info(
        "Scheduled jobs registered",
        extra={"jobs": len(scheduler.get_jobs()), "sweep_interval_seconds": settings.sweep_interval_seconds},
    )


async def start_scheduler() -> None:
    """Start the APScheduler. Call after setup_scheduled_jobs()."""
    if not scheduler.running:
        scheduler.start()
        logger.info("APScheduler started", extra={"jobs": len(scheduler.get_jobs())})
    else:
        logger.warning("APScheduler is already running")


async def stop_scheduler() -> None:
    """Stop the APScheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("APScheduler stopped")
    else:
        logger.debug("APScheduler is not running")


def get_job_status() -> list[dict[str, Any]]:
    """Status of all scheduled jobs.

    Jobs added before the scheduler starts have no next run time yet.
    """
    jobs = []
    for job in scheduler.get_jobs():
        next_run = getattr(job, "next_run_time", None)
        jobs.append(
            {
                "id": job.id,
                "name": job.name,
                "next_run_time": next_run.isoformat() if next_run else None,
            }
        )
    return jobs
