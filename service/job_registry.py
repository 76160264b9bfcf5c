"""
Named cron job registry with start/stop/remove, status and health reporting.
"""
from datetime import datetime, timezone
import logging
from typing import Dict, List, Optional, Set

from config.settings import settings
from core.exceptions import ConfigurationError, DuplicateNameError, NotFoundError
from schemas.notifications import (
    EmergencyStopReport,
    HealthReport,
    JobFailure,
    JobStatus,
)
from store.enums import HealthStatus
from utils import scheduler as cron
from utils.scheduler import CronScheduler, JobHandle, JobTask

logger = logging.getLogger(__name__)

DAILY_SUMMARY = "dailySummary"
WEEKLY_SUMMARY = "weeklySummary"
WEEKLY_LIMIT_CHECK = "weeklyLimitCheck"


class JobRegistry:
    """
    Owns every cron job of the process. Built once at startup and kept on
    ``app.state``; jobs are registered stopped and only fire after
    ``start_all()`` or ``start_job()``.
    """

    def __init__(self, notification_jobs, *, scheduler: Optional[CronScheduler] = None, config=settings):
        self.notification_jobs = notification_jobs
        self.config = config
        self.scheduler = scheduler or CronScheduler(config.SCHEDULER_TIMEZONE)
        self._jobs: Dict[str, JobHandle] = {}
        self._expected: Set[str] = set()
        self._initialized = False

    # ---- lifecycle ----

    def init(self):
        """Register the built-in notification jobs (stopped)."""
        if self._initialized:
            return
        tz = self.config.SCHEDULER_TIMEZONE
        self.add_job(
            DAILY_SUMMARY,
            self.config.DAILY_SUMMARY_CRON,
            tz,
            self.notification_jobs.send_daily_summaries,
            "Daily expense summary email",
        )
        self.add_job(
            WEEKLY_SUMMARY,
            self.config.WEEKLY_SUMMARY_CRON,
            tz,
            self.notification_jobs.send_weekly_summaries,
            "Weekly expense summary email (current week, Monday to Sunday)",
        )
        self.add_job(
            WEEKLY_LIMIT_CHECK,
            self.config.WEEKLY_LIMIT_CHECK_CRON,
            tz,
            self.notification_jobs.check_weekly_limits,
            "Weekly budget limit check for all active users",
        )
        self._initialized = True
        logger.info(f"Initialized {len(self._jobs)} cron jobs")

    def start_all(self) -> List[str]:
        """Start the clock and every stopped job. Calling it twice is a no-op."""
        self.scheduler.start()
        started = []
        for name, handle in self._jobs.items():
            if handle.start():
                started.append(name)
            self._expected.add(name)
        logger.info(f"Started {len(started)} cron jobs: {', '.join(started) or 'none'}")
        return started

    def stop_all(self) -> List[str]:
        stopped = [name for name, handle in self._jobs.items() if handle.stop()]
        logger.info(f"Stopped {len(stopped)} cron jobs")
        return stopped

    def dispose(self):
        """Stop every job and shut the clock down."""
        self.stop_all()
        self.scheduler.shutdown()
        logger.info("Job registry disposed")

    # ---- job management ----

    def _get(self, name: str, operation: str) -> JobHandle:
        handle = self._jobs.get(name)
        if handle is None:
            raise NotFoundError(f"Job '{name}' not found", operation=operation)
        return handle

    def add_job(
        self,
        name: str,
        expression: str,
        timezone_name: Optional[str],
        task: JobTask,
        description: str = "",
    ) -> JobHandle:
        if name in self._jobs:
            raise DuplicateNameError(name)
        handle = self.scheduler.schedule(name, expression, timezone_name, task, description)
        self._jobs[name] = handle
        return handle

    def remove_job(self, name: str):
        handle = self._get(name, "remove_job")
        handle.remove()
        del self._jobs[name]
        self._expected.discard(name)

    def start_job(self, name: str) -> bool:
        handle = self._get(name, "start_job")
        self.scheduler.start()
        self._expected.add(name)
        return handle.start()

    def stop_job(self, name: str) -> bool:
        handle = self._get(name, "stop_job")
        self._expected.discard(name)
        return handle.stop()

    def list_jobs(self) -> List[str]:
        return list(self._jobs)

    def _status(self, handle: JobHandle) -> JobStatus:
        return JobStatus(
            name=handle.name,
            running=handle.is_running(),
            state=handle.state,
            schedule=handle.expression,
            timezone=handle.timezone,
            description=handle.description,
            next_run_time=handle.next_run_time(),
        )

    def get_job_info(self, name: str) -> JobStatus:
        return self._status(self._get(name, "get_job_info"))

    # ---- status ----

    def get_status(self) -> Dict[str, JobStatus]:
        return {name: self._status(handle) for name, handle in self._jobs.items()}

    def health_check(self) -> HealthReport:
        """Degraded when a job that was started is no longer running."""
        jobs = {}
        overall = HealthStatus.HEALTHY
        for name, handle in self._jobs.items():
            jobs[name] = "running" if handle.is_running() else "stopped"
            if name in self._expected and not handle.is_running():
                overall = HealthStatus.DEGRADED
        return HealthReport(overall=overall, jobs=jobs, timestamp=datetime.now(timezone.utc))

    def emergency_stop(self) -> EmergencyStopReport:
        """Stop every job; a failure on one job does not prevent the others."""
        logger.warning("EMERGENCY STOP: stopping all cron jobs")
        report = EmergencyStopReport()
        for name, handle in list(self._jobs.items()):
            try:
                handle.stop()
                report.stopped.append(name)
            except Exception as e:
                logger.error(f"Failed to stop job {name} during emergency stop: {str(e)}")
                report.failed.append(JobFailure(name=name, error=str(e)))
        logger.warning(f"Emergency stop finished: {len(report.stopped)} stopped, {len(report.failed)} failed")
        return report

    def validate_cron_expression(self, expression: str) -> bool:
        return cron.validate_cron_expression(expression, self.config.SCHEDULER_TIMEZONE)


def build_job_registry(notification_jobs, config=settings) -> JobRegistry:
    registry = JobRegistry(notification_jobs, config=config)
    try:
        registry.init()
    except ConfigurationError as e:
        logger.error(f"Invalid cron configuration: {str(e)}")
        raise
    return registry
