"""
Expenses controller with repository-injected endpoints.
"""
from fastapi import Depends

from core.exceptions import ExpenseTrackerError
from api.controller.jobs import to_http_exception
from schemas.expenses import ExpenseCreate, WeeklyLimitUpdate
from service.expenses import deactivate_account, get_weekly_status, record_expense, set_weekly_limit
from service.limit_check_queue import LimitCheckQueue
from store.repositories import ExpenseRepository, UserRepository
from utils.dependencies import get_limit_check_queue, get_repository


async def record_expense_controller(
    user_id: int,
    request: ExpenseCreate,
    user_repo: UserRepository = Depends(get_repository(UserRepository)),
    expense_repo: ExpenseRepository = Depends(get_repository(ExpenseRepository)),
    limit_checks: LimitCheckQueue = Depends(get_limit_check_queue),
):
    try:
        return await record_expense(
            user_id=user_id,
            request=request,
            user_repo=user_repo,
            expense_repo=expense_repo,
            limit_checks=limit_checks,
        )
    except ExpenseTrackerError as exc:
        raise to_http_exception(exc) from exc


async def set_weekly_limit_controller(
    user_id: int,
    request: WeeklyLimitUpdate,
    user_repo: UserRepository = Depends(get_repository(UserRepository)),
    limit_checks: LimitCheckQueue = Depends(get_limit_check_queue),
):
    try:
        return await set_weekly_limit(
            user_id=user_id,
            request=request,
            user_repo=user_repo,
            limit_checks=limit_checks,
        )
    except ExpenseTrackerError as exc:
        raise to_http_exception(exc) from exc


async def get_weekly_status_controller(
    user_id: int,
    user_repo: UserRepository = Depends(get_repository(UserRepository)),
    expense_repo: ExpenseRepository = Depends(get_repository(ExpenseRepository)),
):
    try:
        return await get_weekly_status(user_id=user_id, user_repo=user_repo, expense_repo=expense_repo)
    except ExpenseTrackerError as exc:
        raise to_http_exception(exc) from exc


async def deactivate_account_controller(
    user_id: int,
    user_repo: UserRepository = Depends(get_repository(UserRepository)),
):
    try:
        return await deactivate_account(user_id=user_id, user_repo=user_repo)
    except ExpenseTrackerError as exc:
        raise to_http_exception(exc) from exc
