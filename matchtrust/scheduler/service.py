"""Periodic trust refresh on an APScheduler background scheduler."""

import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from matchtrust.logging import get_logger

logger = get_logger(__name__, component="scheduler")

JOB_ID = "trust-refresh"


class SchedulerService:
    """
    Runs a callable (normally ``TrustRefreshPipeline.run_once``) at a fixed interval.

    The job never overlaps itself, and runs delayed past their slot are
    coalesced into one. The main thread stays free to handle signals.
    """

    def __init__(
        self,
        refresh_callable: Callable[[], object],
        interval_seconds: int,
        shutdown_event: Optional[threading.Event] = None,
        run_immediately: bool = True,
    ):
        """
        Initialize the scheduler service.

        Args:
            refresh_callable: Function to call on each scheduled run
            interval_seconds: Interval between runs in seconds
            shutdown_event: Optional event set on shutdown for coordination
            run_immediately: Whether the first run happens at start-up or
                after one interval
        """
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got: {interval_seconds}")
        self.refresh_callable = refresh_callable
        self.interval_seconds = interval_seconds
        self.shutdown_event = shutdown_event
        self.run_immediately = run_immediately

        self.scheduler = BackgroundScheduler(
            job_defaults={
                "max_instances": 1,
                "coalesce": True,
                "misfire_grace_time": interval_seconds,
            },
            timezone=timezone.utc,
        )

    def start(self) -> None:
        """Register the refresh job and start the scheduler thread."""
        now = datetime.now(timezone.utc)
        next_run = now if self.run_immediately else now + timedelta(seconds=self.interval_seconds)

        self.scheduler.add_job(
            func=self.refresh_callable,
            trigger=IntervalTrigger(seconds=self.interval_seconds, timezone=timezone.utc),
            id=JOB_ID,
            name="Trust score refresh",
            replace_existing=True,
            next_run_time=next_run,
        )
        self.scheduler.start()

        logger.info(
            f"Scheduler started with interval: {self.interval_seconds} seconds",
            extra={
                "event": "scheduler.started",
                "interval_seconds": self.interval_seconds,
                "next_run_time": next_run.isoformat(),
            },
        )

    def shutdown(self, wait: bool = False) -> None:
        """
        Stop the scheduler.

        Args:
            wait: If True, wait for a running refresh to finish
        """
        logger.info(
            "Shutting down scheduler",
            extra={"event": "scheduler.stopping", "wait_for_jobs": wait},
        )
        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)
        if self.shutdown_event:
            self.shutdown_event.set()
        logger.info("Scheduler shutdown complete", extra={"event": "scheduler.stopped"})

    def trigger_now(self) -> object:
        """Run the refresh synchronously in the calling thread and return its result."""
        logger.info("Triggering immediate trust refresh", extra={"event": "scheduler.trigger_now"})
        return self.refresh_callable()

    def is_running(self) -> bool:
        return self.scheduler.running

    def get_next_run_time(self) -> Optional[datetime]:
        job = self.scheduler.get_job(JOB_ID)
        return job.next_run_time if job else None
