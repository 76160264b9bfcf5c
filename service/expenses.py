from datetime import datetime, timezone
import logging
from typing import Optional

from core.exceptions import NotFoundError
from schemas.expenses import ExpenseCreate, ExpenseResponse, WeeklyLimitUpdate
from schemas.notifications import WeeklyStatus
from service.budget_alerts import AlertDecisionEngine
from service.limit_check_queue import LimitCheckQueue
from store.repositories import ExpenseRepository, UserRepository

logger = logging.getLogger(__name__)


async def record_expense(
    user_id: int,
    request: ExpenseCreate,
    user_repo: UserRepository,
    expense_repo: ExpenseRepository,
    limit_checks: Optional[LimitCheckQueue] = None,
) -> ExpenseResponse:
    """
    Persist an expense for ``user_id`` and queue a weekly limit check.

    The check runs in the background; its outcome never affects the
    response of the write.
    """
    user = user_repo.find_by_id(user_id)
    if not user:
        raise NotFoundError(f"User {user_id} not found", operation="record_expense")

    expense = expense_repo.create_expense(
        user_id=user_id,
        title=request.title,
        amount=request.amount,
        category=request.category,
        date=request.date or datetime.now(timezone.utc),
        note=request.note,
    )
    logger.info(f"Recorded expense {expense.id} for user {user_id}")

    if limit_checks is not None and user.is_active:
        limit_checks.submit(user_id)
    return ExpenseResponse.model_validate(expense)


async def set_weekly_limit(
    user_id: int,
    request: WeeklyLimitUpdate,
    user_repo: UserRepository,
    limit_checks: Optional[LimitCheckQueue] = None,
) -> dict:
    user = user_repo.set_weekly_limit(user_id, request.weekly_limit)
    if not user:
        raise NotFoundError(f"User {user_id} not found", operation="set_weekly_limit")
    logger.info(f"Weekly limit for user {user_id} set to {request.weekly_limit}")

    if limit_checks is not None and user.is_active and user.has_weekly_limit:
        limit_checks.submit(user_id)
    return {"user_id": user.id, "weekly_limit": user.weekly_limit}


async def get_weekly_status(
    user_id: int,
    user_repo: UserRepository,
    expense_repo: ExpenseRepository,
    now: Optional[datetime] = None,
    threshold_percent: Optional[float] = None,
    tz: Optional[str] = None,
) -> WeeklyStatus:
    """Current-week spend, remaining budget and warning level for ``user_id``."""
    user = user_repo.find_by_id(user_id)
    if not user:
        raise NotFoundError(f"User {user_id} not found", operation="get_weekly_status")

    engine = AlertDecisionEngine(expense_repo, threshold_percent, tz)
    return engine.weekly_status(user, now or datetime.now(timezone.utc))


async def deactivate_account(user_id: int, user_repo: UserRepository) -> dict:
    user = user_repo.toggle_active_status(user_id, False)
    if not user:
        raise NotFoundError(f"User {user_id} not found", operation="deactivate_account")
    logger.info(f"Deactivated account for user {user_id}")
    return {"user_id": user.id, "is_active": user.is_active, "message": "Account deactivated"}
