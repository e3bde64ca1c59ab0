"""APScheduler based scheduler implementation."""

import logging
from datetime import datetime

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_MISSED, JobExecutionEvent
from apscheduler.jobstores.base import JobLookupError
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from lets_pray.services.ports import JobCallback, SchedulerPort

logger = logging.getLogger(__name__)


class APSchedulerAdapter(SchedulerPort):
    """Scheduling adapter backed by APScheduler."""

    def __init__(self) -> None:
        """Initialize scheduler."""
        jobstores = {"default": MemoryJobStore()}
        self._scheduler = AsyncIOScheduler(jobstores=jobstores)
        self._started = False
        self._scheduler.add_listener(self._on_job_event, EVENT_JOB_ERROR | EVENT_JOB_MISSED)

    @property
    def running(self) -> bool:
        return self._started

    def _on_job_event(self, event: JobExecutionEvent) -> None:
        if event.exception is not None:
            logger.error(f"Job {event.job_id} failed: {event.exception}")
        else:
            # e.g. the machine was suspended past the misfire grace time
            logger.warning(f"Job {event.job_id} missed its run time {event.scheduled_run_time}")

    def start(self) -> None:
        """Start the scheduler."""
        if not self._started:
            self._scheduler.start()
            self._started = True
            logger.info("APScheduler started.")

    def shutdown(self) -> None:
        """Shut the scheduler down."""
        if self._started:
            self._scheduler.shutdown(wait=False)
            self._started = False
            logger.info("APScheduler stopped.")

    def schedule_at(self, run_time: datetime, callback: JobCallback, job_id: str) -> None:
        """Run a one-shot job at `run_time`, replacing any job with the same id."""
        if not self._started:
            self.start()

        self._scheduler.add_job(
            callback,
            trigger=DateTrigger(run_date=run_time),
            id=job_id,
            replace_existing=True,
            misfire_grace_time=60,
        )
        logger.debug(f"Job scheduled: {job_id} -> {run_time}")

    def schedule_every(self, seconds: float, callback: JobCallback, job_id: str) -> None:
        """Run a periodic job, replacing any job with the same id."""
        if not self._started:
            self.start()

        self._scheduler.add_job(
            callback,
            trigger=IntervalTrigger(seconds=seconds),
            id=job_id,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=None,
        )
        logger.debug(f"Periodic job scheduled: {job_id} every {seconds}s")

    def cancel(self, job_id: str) -> bool:
        """Cancel a scheduled job."""
        try:
            self._scheduler.remove_job(job_id)
        except JobLookupError:
            return False
        logger.debug(f"Job cancelled: {job_id}")
        return True

    def cancel_all(self) -> None:
        """Cancel every job."""
        self._scheduler.remove_all_jobs()
        logger.info("All scheduled jobs cancelled.")

    def get_scheduled_jobs(self) -> list[tuple[str, datetime]]:
        """List scheduled jobs."""
        jobs = self._scheduler.get_jobs()
        result = []
        for job in jobs:
            if job.next_run_time:
                result.append((job.id, job.next_run_time))
        return sorted(result, key=lambda x: x[1])
