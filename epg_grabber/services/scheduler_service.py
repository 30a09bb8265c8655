import logging
from datetime import datetime
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from epg_grabber.config import settings
from epg_grabber.errors import GrabberError
from epg_grabber.services.grab_service import grab_service


logger = logging.getLogger(__name__)

class GrabScheduler:
    """Scheduler for periodic EPG grabs"""

    def __init__(self):
        self.scheduler: AsyncIOScheduler | None = None

    async def _grab_job(self) -> None:
        """Background job that runs the EPG grab"""
        logger.info("Scheduled EPG grab triggered")
        try:
            summary = await grab_service.grab()
            logger.info(
                "Scheduled grab finished: %s (%s programmes)", summary.status, summary.programmes
            )
        except GrabberError as e:
            logger.error(f"Scheduled grab failed: {e}")
        except Exception as e:
            logger.error(f"Exception in scheduled grab: {e}", exc_info=True)

    def start(self) -> None:
        """Start the scheduler with the EPG grab job"""
        if self.scheduler and self.scheduler.running:
            logger.warning("Scheduler already running")
            return

        try:
            trigger = CronTrigger.from_crontab(settings.grab_cron, timezone=settings.provider_timezone)
        except (ValueError, KeyError) as exc:
            logger.error("Invalid cron expression '%s': %s", settings.grab_cron, exc)
            raise

        self.scheduler = AsyncIOScheduler(timezone=settings.provider_timezone)
        self.scheduler.add_job(
            self._grab_job,
            trigger=trigger,
            id='epg_grab',
            max_instances=1,
            coalesce=True,
            misfire_grace_time=settings.grab_misfire_grace_sec
        )

        self.scheduler.start()
        next_time = self.get_next_run_time()
        logger.info(
            "Scheduler started. Next grab: %s",
            next_time.isoformat() if next_time else "unknown"
        )

    def shutdown(self) -> None:
        """Shutdown the scheduler"""
        if self.scheduler and self.scheduler.running:
            self.scheduler.shutdown()
            logger.info("Scheduler stopped")
            self.scheduler = None

    def get_next_run_time(self) -> datetime | None:
        """Get next scheduled grab time"""
        if not self.scheduler:
            return None
        job = self.scheduler.get_job('epg_grab')
        return job.next_run_time if job else None


grab_scheduler = GrabScheduler()
