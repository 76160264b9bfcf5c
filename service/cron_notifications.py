"""
Notification jobs run by the scheduler and by the manual triggers.

Scheduled fires and manual triggers go through the same methods, so a
manual run behaves exactly like a scheduled one.
"""
from datetime import datetime, timezone
import logging
from typing import Callable, Optional

from config.settings import settings
from core.exceptions import NotificationError
from schemas.notifications import (
    ActionResult,
    BatchOutcome,
    LimitCheckResult,
    TriggerReport,
    TriggerResult,
)
from service.batch_runner import BatchRunner
from service.budget_alerts import WeeklyLimitChecker
from utils.dependencies import open_repositories
from utils.time_windows import day_window, local_date, week_window

logger = logging.getLogger(__name__)


class NotificationJobs:
    def __init__(
        self,
        mailer,
        *,
        limit_checker: Optional[WeeklyLimitChecker] = None,
        repositories=open_repositories,
        tz: Optional[str] = None,
        inter_user_delay: Optional[float] = None,
        max_concurrency: Optional[int] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.mailer = mailer
        self.repositories = repositories
        self.tz = tz or settings.SCHEDULER_TIMEZONE
        self.inter_user_delay = inter_user_delay
        self.max_concurrency = max_concurrency
        self.clock = clock
        self.limit_checker = limit_checker or WeeklyLimitChecker(
            mailer, repositories=repositories, tz=self.tz, clock=clock
        )

    def _runner(self, user_repo) -> BatchRunner:
        return BatchRunner(
            user_repo.find_active_users,
            inter_user_delay=self.inter_user_delay,
            max_concurrency=self.max_concurrency,
        )

    async def send_daily_summaries(self, now: Optional[datetime] = None) -> BatchOutcome:
        """Email every active user today's expenses, even when there are none."""
        now = now or self.clock()
        window = day_window(now, self.tz)
        day = local_date(now, self.tz)
        logger.info(f"Running daily summary email job for {day}")

        with self.repositories() as (user_repo, expense_repo):
            async def send_daily(user) -> ActionResult:
                aggregate = expense_repo.aggregate(user.id, window)
                result = await self.mailer.send_daily_summary(user, aggregate.items, aggregate.total, day)
                if not result.success:
                    raise NotificationError(
                        f"Failed to send daily summary to {user.email}: {result.error}",
                        operation="send_daily_summary",
                    )
                logger.info(f"Daily summary sent to {user.email}")
                return ActionResult.sent()

            return await self._runner(user_repo).run_for_each_active_user(send_daily, "daily_summary")

    async def send_weekly_summaries(
        self, now: Optional[datetime] = None, week_offset: int = 0
    ) -> BatchOutcome:
        """
        Email every active user a summary of one Monday to Sunday week. The
        scheduled run fires Sunday evening and reports the week ending that
        day (``week_offset=0``). Users with no expenses in that week are
        skipped.
        """
        now = now or self.clock()
        window = week_window(now, week_offset, self.tz)
        logger.info(f"Running weekly summary email job for {window.start.date()} - {window.end.date()}")

        with self.repositories() as (user_repo, expense_repo):
            async def send_weekly(user) -> ActionResult:
                aggregate = expense_repo.aggregate(user.id, window)
                if aggregate.count == 0:
                    return ActionResult.skipped("no expenses in week")
                result = await self.mailer.send_weekly_summary(
                    user, aggregate.items, aggregate.total, user.weekly_limit, window
                )
                if not result.success:
                    raise NotificationError(
                        f"Failed to send weekly summary to {user.email}: {result.error}",
                        operation="send_weekly_summary",
                    )
                logger.info(f"Weekly summary sent to {user.email}")
                return ActionResult.sent()

            return await self._runner(user_repo).run_for_each_active_user(send_weekly, "weekly_summary")

    async def check_weekly_limits(self, now: Optional[datetime] = None) -> BatchOutcome:
        """Run the weekly limit check for every active user."""
        now = now or self.clock()
        logger.info("Running weekly limit check job")

        async def check_user(user) -> ActionResult:
            result = await self.limit_checker.check(user.id, now)
            if result.error:
                return ActionResult.failed(result.error)
            if result.sent:
                return ActionResult.sent(result.message)
            return ActionResult.skipped(result.message)

        with self.repositories() as (user_repo, _):
            return await self._runner(user_repo).run_for_each_active_user(check_user, "weekly_limit_check")

    async def run_daily_summary_now(self) -> BatchOutcome:
        logger.info("Manual trigger: daily summary")
        return await self.send_daily_summaries()

    async def run_weekly_summary_now(self, week_offset: int = 0) -> BatchOutcome:
        """Manual weekly summary; covers the current week unless told otherwise."""
        logger.info("Manual trigger: weekly summary")
        return await self.send_weekly_summaries(week_offset=week_offset)

    async def run_weekly_limit_check_now(self, user_id: int) -> LimitCheckResult:
        logger.info(f"Manual trigger: weekly limit check for user {user_id}")
        return await self.limit_checker.check(user_id)

    async def run_all_now(self, user_id: int) -> TriggerReport:
        """
        Run every manual trigger once. A trigger that raises is recorded as a
        failure and the remaining triggers still run.
        """
        logger.info(f"Manual trigger: all jobs (limit check for user {user_id})")
        report = TriggerReport()
        triggers = [
            ("daily_summary", self.run_daily_summary_now),
            ("weekly_summary", self.run_weekly_summary_now),
            ("weekly_limit_check", lambda: self.run_weekly_limit_check_now(user_id)),
        ]
        for name, trigger in triggers:
            try:
                outcome = await trigger()
            except Exception as e:
                logger.error(f"Manual trigger {name} failed: {e}")
                report.results[name] = TriggerResult(success=False, error=str(e))
                continue

            if isinstance(outcome, BatchOutcome):
                report.results[name] = TriggerResult(
                    success=outcome.failed == 0,
                    detail=f"{outcome.succeeded} succeeded, {outcome.skipped} skipped, {outcome.failed} failed",
                )
            else:
                report.results[name] = TriggerResult(
                    success=outcome.error is None, detail=outcome.message, error=outcome.error
                )

        logger.info(f"Manual trigger summary: {report.success_count}/{report.total} succeeded")
        return report
