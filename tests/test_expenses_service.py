import pytest

from core.exceptions import NotFoundError
from service.expenses import deactivate_account, get_weekly_status
from store.enums import BudgetStatus

from conftest import TZ, make_user


@pytest.mark.asyncio
async def test_get_weekly_status(user_repo, expense_repo, now):
    user_repo.users = {1: make_user(1, weekly_limit=200)}
    expense_repo.add(1, 250, now)

    status = await get_weekly_status(1, user_repo, expense_repo, now=now, threshold_percent=80, tz=TZ)

    assert status.status == BudgetStatus.OVER_BUDGET
    assert status.percentage_used == 125.0
    assert status.remaining_budget == -50

    with pytest.raises(NotFoundError):
        await get_weekly_status(2, user_repo, expense_repo, now=now, tz=TZ)


@pytest.mark.asyncio
async def test_deactivate_account(user_repo):
    user_repo.users = {1: make_user(1), 2: make_user(2)}

    result = await deactivate_account(1, user_repo)

    assert result["is_active"] is False
    assert [user.id for user in user_repo.find_active_users()] == [2]
    with pytest.raises(NotFoundError):
        await deactivate_account(9, user_repo)
