"""
Periodic check cycles.

Uses APScheduler to run ``run_cycle`` at a fixed interval. Each feed still
decides from its own refresh policy whether a cycle actually checks it, so
the interval only bounds how late a due feed can be.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, JobEvent
from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from rss_mailer.config import get_config
from rss_mailer.logger import get_logger
from rss_mailer.runner import CycleResult, run_cycle

logger = get_logger(__name__)

CYCLE_JOB_ID = "check_cycle"


@dataclass
class SchedulerStats:
    """Statistics for scheduler operations."""

    total_executions: int = 0
    successful_executions: int = 0
    failed_executions: int = 0
    mails_queued: int = 0
    last_execution_time: Optional[datetime] = None
    last_error: Optional[str] = None
    uptime_seconds: float = 0.0


class CycleScheduler:
    """Runs check cycles in a background thread."""

    def __init__(
        self,
        interval_minutes: Optional[int] = None,
        cycle: Callable[[], CycleResult] = run_cycle,
    ):
        """Initialize cycle scheduler.

        Args:
            interval_minutes: Minutes between cycles (default from config)
            cycle: Function running one cycle
        """
        config = get_config().scheduler

        self.interval_minutes = interval_minutes or config.interval_minutes
        self.cycle = cycle

        # A single worker: cycles must never overlap
        self.scheduler = BackgroundScheduler(
            executors={"default": ThreadPoolExecutor(max_workers=1)},
            job_defaults={
                "coalesce": config.coalesce,
                "max_instances": 1,
                "misfire_grace_time": config.misfire_grace_time,
            },
            timezone=config.timezone,
        )

        self.stats = SchedulerStats()
        self.start_time: Optional[datetime] = None

        self.scheduler.add_listener(self._on_job_executed, EVENT_JOB_EXECUTED)
        self.scheduler.add_listener(self._on_job_error, EVENT_JOB_ERROR)

    def start(self, run_now: bool = True) -> None:
        """Start the scheduler.

        Args:
            run_now: Run the first cycle immediately instead of after one interval
        """
        if self.scheduler.running:
            logger.warning("Scheduler is already running")
            return

        job_kwargs = {}
        if run_now:
            # None would add the job paused
            job_kwargs["next_run_time"] = datetime.now(self.scheduler.timezone)

        self.scheduler.add_job(
            func=self.run_once,
            trigger=IntervalTrigger(minutes=self.interval_minutes),
            id=CYCLE_JOB_ID,
            name="Check cycle",
            replace_existing=True,
            **job_kwargs,
        )
        self.scheduler.start()
        self.start_time = datetime.now()
        logger.info(f"Scheduler started, checking every {self.interval_minutes} minutes")

    def stop(self, wait: bool = True) -> None:
        """Stop the scheduler.

        Args:
            wait: Whether to wait for a running cycle to complete
        """
        if not self.scheduler.running:
            logger.warning("Scheduler is not running")
            return

        self.scheduler.shutdown(wait=wait)
        if self.start_time:
            self.stats.uptime_seconds = (datetime.now() - self.start_time).total_seconds()
        logger.info("Scheduler stopped")

    def is_running(self) -> bool:
        return self.scheduler.running

    def next_run_time(self) -> Optional[datetime]:
        job = self.scheduler.get_job(CYCLE_JOB_ID)
        return job.next_run_time if job else None

    def run_once(self) -> Optional[CycleResult]:
        """Run one cycle and record it in the statistics.

        Returns:
            CycleResult, or None if the cycle failed
        """
        self.stats.total_executions += 1
        self.stats.last_execution_time = datetime.now()

        try:
            result = self.cycle()
        except Exception as e:
            logger.exception(f"Check cycle failed: {e}")
            self.stats.failed_executions += 1
            self.stats.last_error = f"{type(e).__name__}: {e}"
            return None

        self.stats.successful_executions += 1
        self.stats.mails_queued += len(result.mails)
        self.stats.last_error = None
        return result

    def get_stats(self) -> SchedulerStats:
        """Get scheduler statistics."""
        if self.start_time and self.scheduler.running:
            self.stats.uptime_seconds = (datetime.now() - self.start_time).total_seconds()
        return self.stats

    def _on_job_executed(self, event: JobEvent) -> None:
        logger.debug(f"Job {event.job_id} executed")

    def _on_job_error(self, event: JobEvent) -> None:
        exception = event.exception
        if exception:
            logger.error(f"Job {event.job_id} failed: {type(exception).__name__}: {exception}")


def create_scheduler(interval_minutes: Optional[int] = None) -> CycleScheduler:
    """Create a configured CycleScheduler instance."""
    return CycleScheduler(interval_minutes=interval_minutes)
