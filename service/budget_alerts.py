"""
Weekly budget-limit alerts.

AlertDecisionEngine decides; WeeklyLimitChecker sends and records. At most
one alert is sent per user per calendar week: the check runs single-flight
per user inside this process, and the alert marker is written with a
conditional UPDATE so a second writer elsewhere cannot claim the same week.
The marker is only written after the email was delivered.
"""
import asyncio
from datetime import datetime, timezone
from decimal import Decimal
import logging
from typing import Callable, Optional, Tuple
import weakref

from config.settings import settings
from core.exceptions import DependencyError, NotFoundError, NotificationError
from schemas.notifications import (
    AlertDecision,
    ExpenseAggregate,
    LimitCheckResult,
    TimeWindow,
    WeeklyStatus,
)
from store.enums import AlertReason, BudgetStatus
from utils.dependencies import open_repositories
from utils.time_windows import ensure_utc, week_window

logger = logging.getLogger(__name__)


class AlertDecisionEngine:
    def __init__(self, expense_repo, threshold_percent: Optional[float] = None, tz: Optional[str] = None):
        self.expense_repo = expense_repo
        self.threshold_percent = (
            settings.ALERT_THRESHOLD_PERCENT if threshold_percent is None else threshold_percent
        )
        self.tz = tz or settings.SCHEDULER_TIMEZONE

    def _current_week(self, user, now: datetime) -> Tuple[TimeWindow, ExpenseAggregate]:
        window = week_window(now, 0, self.tz)
        try:
            aggregate = self.expense_repo.aggregate(user.id, window)
        except DependencyError:
            raise
        except Exception as exc:
            raise DependencyError(
                f"Weekly spend lookup failed for user {user.id}: {exc}", operation="aggregate"
            ) from exc
        return window, aggregate

    def weekly_status(self, user, now: datetime) -> WeeklyStatus:
        """Current-week standing against the limit; never sends anything."""
        window, aggregate = self._current_week(user, now)
        spent = Decimal(aggregate.total)
        status = WeeklyStatus(
            window=window,
            weekly_spent=spent,
            expense_count=aggregate.count,
            average_per_day=spent / 7,
        )
        if not user.weekly_limit or user.weekly_limit <= 0:
            return status

        limit = Decimal(user.weekly_limit)
        status.weekly_limit = limit
        status.remaining_budget = limit - spent
        status.percentage_used = round(float(spent / limit * 100), 2)
        status.is_over_budget = spent > limit
        if status.is_over_budget:
            status.status = BudgetStatus.OVER_BUDGET
        elif status.percentage_used >= self.threshold_percent:
            status.status = BudgetStatus.WARNING
        return status

    def evaluate(self, user, now: datetime) -> AlertDecision:
        """Decide whether ``user`` should get a weekly limit alert at ``now``."""
        limit = user.weekly_limit
        if limit is None or limit <= 0:
            return AlertDecision(should_send=False, reason=AlertReason.NO_LIMIT)

        limit = Decimal(limit)
        window, aggregate = self._current_week(user, now)
        spent = Decimal(aggregate.total)
        percentage_used = float(spent / limit * 100)
        decision = dict(percentage_used=percentage_used, spent=spent, limit=limit, window=window)

        last_alert = ensure_utc(user.last_limit_alert)
        if last_alert is not None and window.contains(last_alert):
            return AlertDecision(should_send=False, reason=AlertReason.ALREADY_ALERTED, **decision)
        if percentage_used >= self.threshold_percent:
            return AlertDecision(should_send=True, reason=AlertReason.THRESHOLD_REACHED, **decision)
        return AlertDecision(should_send=False, reason=AlertReason.BELOW_THRESHOLD, **decision)


class WeeklyLimitChecker:
    """Evaluate, send and commit the weekly limit alert for one user."""

    def __init__(
        self,
        mailer,
        *,
        repositories=open_repositories,
        threshold_percent: Optional[float] = None,
        tz: Optional[str] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.mailer = mailer
        self.repositories = repositories
        self.threshold_percent = threshold_percent
        self.tz = tz
        self.clock = clock
        self._locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, user_id: int) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    async def check(self, user_id: int, now: Optional[datetime] = None) -> LimitCheckResult:
        """
        Run the weekly limit check for ``user_id``.

        Raises NotFoundError for an unknown user and DependencyError when the
        user or the weekly spend cannot be read. A failed send is reported
        in the result and leaves the alert marker untouched, so the next
        check in the same week retries it.
        """
        now = now or self.clock()
        async with self._lock_for(user_id):
            with self.repositories() as (user_repo, expense_repo):
                user = user_repo.find_by_id(user_id)
                if user is None:
                    raise NotFoundError(f"User {user_id} not found", operation="weekly_limit_check")

                engine = AlertDecisionEngine(expense_repo, self.threshold_percent, self.tz)
                decision = engine.evaluate(user, now)
                result = LimitCheckResult(user_id=user_id, decision=decision)
                if not decision.should_send:
                    logger.debug(
                        f"No weekly limit alert for user {user_id}: {decision.reason.value} "
                        f"({decision.percentage_used:.1f}% used)"
                    )
                    return result

                send_result = await self.mailer.send_weekly_limit_alert(user, decision.spent, decision.limit)
                if not send_result.success:
                    error = NotificationError(
                        f"Failed to send weekly limit alert to {user.email}: {send_result.error}",
                        operation="send_weekly_limit_alert",
                    )
                    logger.error(str(error))
                    result.error = str(error)
                    return result

                result.sent = True
                try:
                    result.committed = user_repo.update_last_alert(user_id, now, decision.window)
                except DependencyError as exc:
                    logger.error(f"Weekly limit alert sent to {user.email} but marker not saved: {exc}")
                    result.error = str(exc)
                    return result

                if result.committed:
                    logger.info(
                        f"Weekly limit alert sent to {user.email} "
                        f"({decision.percentage_used:.1f}% used)"
                    )
                else:
                    logger.warning(
                        f"Weekly limit alert sent to {user.email} but another writer "
                        f"already recorded an alert for this week"
                    )
                return result
