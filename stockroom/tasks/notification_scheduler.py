"""Notification Scheduler - daily low stock, overdue loan and maintenance checks.

Runs once a day at ``NOTIFICATION_CHECK_HOUR`` (server time). Each run opens
its own database session; a failing check is logged and the others still run.
"""

import logging
from dataclasses import asdict
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from stockroom.config import settings
from stockroom.database import async_session_maker
from stockroom.services.notifications import NotificationService

logger = logging.getLogger(__name__)

JOB_ID = "notification_checks"

# Global scheduler instance
scheduler: Optional[AsyncIOScheduler] = None


def get_scheduler() -> AsyncIOScheduler:
    """Get or create the scheduler instance."""
    global scheduler
    if scheduler is None:
        scheduler = AsyncIOScheduler()
    return scheduler


async def run_notification_checks() -> list[dict]:
    """
    Main job: run every notification check in a fresh session.

    Returns the per-check outcomes; an empty list if the session itself failed.
    """
    logger.info("Starting scheduled notification checks...")
    outcomes = []

    try:
        async with async_session_maker() as db:
            outcomes = await NotificationService.run_all_checks(db, source="scheduler")
    except Exception as e:
        logger.error(f"Fatal error in notification checks: {e}", exc_info=True)
        return []

    failed = [o.check for o in outcomes if o.status == "rejected"]
    logger.info(f"Notification checks complete. Ran: {len(outcomes)}, Failed: {failed or 'none'}")
    return [asdict(o) for o in outcomes]


def start_notification_scheduler():
    """Start the scheduler with the daily check job."""
    scheduler = get_scheduler()

    scheduler.add_job(
        run_notification_checks,
        CronTrigger(hour=settings.NOTIFICATION_CHECK_HOUR, minute=0),
        id=JOB_ID,
        name="Run notification checks",
        replace_existing=True,
    )

    if not scheduler.running:
        scheduler.start()
        logger.info("Notification scheduler started")
        for job in scheduler.get_jobs():
            logger.info(f"  - {job.name}: {job.trigger}")


def stop_notification_scheduler():
    """Stop the scheduler."""
    global scheduler

    if scheduler and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Notification scheduler stopped")
    scheduler = None


async def run_checks_now():
    """Manually trigger the checks (for testing/admin use)."""
    logger.info("Manual notification check triggered")
    results = await run_notification_checks()
    return {"status": "completed", "results": results}
