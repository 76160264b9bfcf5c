"""
Cron scheduling on top of APScheduler's AsyncIOScheduler.

Callers only see ``CronScheduler.schedule()`` and the returned ``JobHandle``;
cron parsing stays in this module. Jobs are registered paused and fire only
after an explicit ``start()``. A fire that would overlap a still-running fire
of the same job is skipped, never queued.
"""
from datetime import datetime, timezone as dt_timezone
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from config.settings import settings
from core.exceptions import ConfigurationError
from store.enums import JobState
from utils.time_windows import resolve_timezone

logger = logging.getLogger(__name__)

JobTask = Callable[[], Awaitable[Any] | Any]

_CRON_WEEKDAYS = ["sun", "mon", "tue", "wed", "thu", "fri", "sat"]


def _weekday_number(token: str) -> int:
    token = token.strip().lower()
    if token in _CRON_WEEKDAYS:
        return _CRON_WEEKDAYS.index(token)
    if not token.isdigit() or not 0 <= int(token) <= 7:
        raise ValueError(f"Invalid day-of-week value '{token}'")
    return int(token) % 7  # 7 is Sunday too


def _translate_day_of_week(field: str) -> str:
    """
    Convert a crontab day-of-week field (0 or 7 = Sunday) into APScheduler
    weekday names. APScheduler 3 counts 0 as Monday, so numbers cannot be
    passed through unchanged.
    """
    if field == "*":
        return field
    days: set[int] = set()
    for part in field.split(","):
        step = 1
        if "/" in part:
            part, step_text = part.split("/", 1)
            if not step_text.isdigit() or int(step_text) == 0:
                raise ValueError(f"Invalid day-of-week step '{step_text}'")
            step = int(step_text)
        if part == "*":
            first, last = 0, 6
        elif "-" in part:
            first_text, last_text = part.split("-", 1)
            first = _weekday_number(first_text)
            last = _weekday_number(last_text)
            if last_text.strip() == "7":
                last = 7
        else:
            first = last = _weekday_number(part)
        if first > last:
            raise ValueError(f"Invalid day-of-week range '{part}'")
        days.update(day % 7 for day in range(first, last + 1, step))
    return ",".join(_CRON_WEEKDAYS[day] for day in sorted(days))


def build_trigger(expression: str, timezone: str) -> CronTrigger:
    """Parse a 5-field crontab expression into a CronTrigger or raise ConfigurationError."""
    tz = resolve_timezone(timezone)
    fields = (expression or "").split()
    if len(fields) != 5:
        raise ConfigurationError(
            f"Invalid cron expression '{expression}': expected 5 fields, got {len(fields)}",
            operation="schedule",
        )
    minute, hour, day, month, day_of_week = fields
    try:
        return CronTrigger(
            minute=minute,
            hour=hour,
            day=day,
            month=month,
            day_of_week=_translate_day_of_week(day_of_week),
            timezone=tz,
        )
    except (ValueError, TypeError) as exc:
        raise ConfigurationError(
            f"Invalid cron expression '{expression}': {exc}", operation="schedule"
        ) from exc


def validate_cron_expression(expression: str, timezone: str | None = None) -> bool:
    try:
        build_trigger(expression, timezone or settings.SCHEDULER_TIMEZONE)
    except ConfigurationError:
        return False
    return True


class JobHandle:
    """A named cron job with an explicit Registered/Running/Stopped/Removed lifecycle."""

    def __init__(
        self,
        scheduler: "CronScheduler",
        name: str,
        expression: str,
        timezone: str,
        task: JobTask,
        description: str = "",
    ):
        self._scheduler = scheduler
        self.name = name
        self.expression = expression
        self.timezone = timezone
        self.task = task
        self.description = description
        self.state = JobState.REGISTERED
        self.in_flight = False
        self.last_started_at: Optional[datetime] = None
        self.last_finished_at: Optional[datetime] = None
        self.last_error: Optional[str] = None
        self.skipped_fires = 0

    def __repr__(self):
        return f"<JobHandle {self.name} {self.expression!r} {self.state.value}>"

    def is_running(self) -> bool:
        return self.state == JobState.RUNNING

    def _ensure_not_removed(self, operation: str):
        if self.state == JobState.REMOVED:
            raise ConfigurationError(f"Job '{self.name}' has been removed", operation=operation)

    def start(self) -> bool:
        """Activate future fires. Returns False when already running."""
        self._ensure_not_removed("start")
        if self.state == JobState.RUNNING:
            return False
        self._scheduler.resume(self.name)
        self.state = JobState.RUNNING
        logger.info(f"Started job {self.name} ({self.expression}, {self.timezone})")
        return True

    def stop(self) -> bool:
        """Prevent future fires; a fire already in progress runs to completion."""
        self._ensure_not_removed("stop")
        if self.state != JobState.RUNNING:
            return False
        self._scheduler.pause(self.name)
        self.state = JobState.STOPPED
        logger.info(f"Stopped job {self.name}")
        return True

    def remove(self):
        self._ensure_not_removed("remove")
        self.stop()
        self._scheduler.unschedule(self.name)
        self.state = JobState.REMOVED
        logger.info(f"Removed job {self.name}")

    def next_run_time(self) -> Optional[datetime]:
        if self.state != JobState.RUNNING:
            return None
        return self._scheduler.next_run_time(self.name)

    async def fire(self):
        """Run the task once. Never raises; overlapping fires are skipped."""
        if self.in_flight:
            self.skipped_fires += 1
            logger.warning(
                f"Skipping fire of job {self.name}: previous run started at "
                f"{self.last_started_at} is still in progress"
            )
            return None
        self.in_flight = True
        self.last_started_at = datetime.now(dt_timezone.utc)
        self.last_error = None
        logger.info(f"Running scheduled job {self.name}")
        try:
            result = self.task()
            if inspect.isawaitable(result):
                result = await result
            return result
        except Exception as e:
            self.last_error = str(e)
            logger.exception(f"Error in scheduled job {self.name}: {str(e)}")
            return None
        finally:
            self.in_flight = False
            self.last_finished_at = datetime.now(dt_timezone.utc)


class CronScheduler:
    """Single scheduling clock shared by all jobs."""

    def __init__(self, timezone: str | None = None, scheduler: AsyncIOScheduler | None = None):
        self.timezone = timezone or settings.SCHEDULER_TIMEZONE
        self._scheduler = scheduler or AsyncIOScheduler(timezone=resolve_timezone(self.timezone))
        self._handles: Dict[str, JobHandle] = {}

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def schedule(
        self,
        name: str,
        expression: str,
        timezone: str | None,
        task: JobTask,
        description: str = "",
    ) -> JobHandle:
        """Register ``task`` under ``name`` in the stopped state."""
        timezone = timezone or self.timezone
        trigger = build_trigger(expression, timezone)
        if name in self._handles:
            raise ConfigurationError(f"Job '{name}' is already scheduled", operation="schedule")

        handle = JobHandle(self, name, expression, timezone, task, description)
        self._scheduler.add_job(
            handle.fire,
            trigger,
            id=name,
            name=description or name,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=300,
            next_run_time=None,  # paused until start()
        )
        self._handles[name] = handle
        logger.info(f"Scheduled job {name} with '{expression}' in {timezone} (stopped)")
        return handle

    def resume(self, name: str):
        self._scheduler.resume_job(name)

    def pause(self, name: str):
        self._scheduler.pause_job(name)

    def unschedule(self, name: str):
        self._scheduler.remove_job(name)
        self._handles.pop(name, None)

    def next_run_time(self, name: str) -> Optional[datetime]:
        job = self._scheduler.get_job(name)
        return job.next_run_time if job else None

    def start(self):
        """Start the clock. Must be called from a running event loop."""
        if not self._scheduler.running:
            self._scheduler.start()
            logger.info("Scheduler started successfully")

    def shutdown(self):
        """Stop the clock without waiting for in-progress fires."""
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Scheduler shutdown successfully")
