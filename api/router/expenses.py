from fastapi import APIRouter

from api.controller.expenses import (
    deactivate_account_controller,
    get_weekly_status_controller,
    record_expense_controller,
    set_weekly_limit_controller,
)
from schemas.expenses import ExpenseResponse
from schemas.notifications import WeeklyStatus

expenses_router = APIRouter(prefix="/users", tags=["Expenses"])

expenses_router.add_api_route(
    "/{user_id}/expenses",
    endpoint=record_expense_controller,
    methods=["POST"],
    response_model=ExpenseResponse,
    status_code=201,
    summary="Record an expense",
)

expenses_router.add_api_route(
    "/{user_id}/weekly-limit",
    endpoint=set_weekly_limit_controller,
    methods=["PUT"],
    response_model=dict,
    summary="Set the weekly spending limit",
)

expenses_router.add_api_route(
    "/{user_id}/weekly-status",
    endpoint=get_weekly_status_controller,
    methods=["GET"],
    response_model=WeeklyStatus,
    summary="This week's spend against the weekly limit",
)

expenses_router.add_api_route(
    "/{user_id}/deactivate",
    endpoint=deactivate_account_controller,
    methods=["POST"],
    response_model=dict,
    summary="Deactivate an account; it stops receiving notifications",
)
