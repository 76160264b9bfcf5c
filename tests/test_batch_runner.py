import asyncio

import pytest

from core.exceptions import DependencyError
from schemas.notifications import ActionResult
from service.batch_runner import BatchRunner

from conftest import make_user


class RecordingSleep:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.mark.asyncio
async def test_one_user_failure_does_not_stop_the_batch():
    users = [make_user(1), make_user(2), make_user(3)]
    seen = []

    async def action(user):
        seen.append(user.id)
        if user.id == 2:
            raise DependencyError("aggregate failed", operation="aggregate")
        return ActionResult.sent()

    runner = BatchRunner(lambda: users, inter_user_delay=0)
    outcome = await runner.run_for_each_active_user(action, "daily_summary")

    assert seen == [1, 2, 3]
    assert (outcome.attempted, outcome.succeeded, outcome.failed) == (3, 2, 1)
    assert outcome.per_user_errors[0].user_id == 2
    assert "aggregate failed" in outcome.per_user_errors[0].error


@pytest.mark.asyncio
async def test_failed_result_counts_as_failure():
    async def action(user):
        return ActionResult.failed("mailbox full")

    runner = BatchRunner(lambda: [make_user(1)], inter_user_delay=0)
    outcome = await runner.run_for_each_active_user(action)

    assert outcome.failed == 1
    assert outcome.per_user_errors[0].error == "mailbox full"


@pytest.mark.asyncio
async def test_no_users_gives_empty_outcome():
    async def action(user):
        raise AssertionError("should not be called")

    outcome = await BatchRunner(lambda: [], inter_user_delay=0).run_for_each_active_user(action)

    assert (outcome.attempted, outcome.succeeded, outcome.failed) == (0, 0, 0)
    assert outcome.finished_at is not None


@pytest.mark.asyncio
async def test_user_listing_failure_propagates():
    def broken_source():
        raise DependencyError("connection refused", operation="find_active_users")

    async def action(user):
        return ActionResult.sent()

    with pytest.raises(DependencyError):
        await BatchRunner(broken_source, inter_user_delay=0).run_for_each_active_user(action)


@pytest.mark.asyncio
async def test_delay_only_between_attempted_sends():
    sleep = RecordingSleep()
    users = [make_user(1), make_user(2), make_user(3), make_user(4)]

    async def action(user):
        if user.id == 2:
            return ActionResult.skipped("no expenses")
        return ActionResult.sent()

    runner = BatchRunner(lambda: users, inter_user_delay=1.5, sleep=sleep)
    outcome = await runner.run_for_each_active_user(action, "weekly_summary")

    # after user 1 (sent) and user 3 (sent); user 2 was skipped
    assert sleep.calls == [1.5, 1.5]
    assert (outcome.succeeded, outcome.skipped) == (4, 1)


@pytest.mark.asyncio
async def test_zero_delay_never_sleeps():
    sleep = RecordingSleep()

    async def action(user):
        return ActionResult.sent()

    runner = BatchRunner(lambda: [make_user(1), make_user(2)], inter_user_delay=0, sleep=sleep)
    await runner.run_for_each_active_user(action)

    assert sleep.calls == []


@pytest.mark.asyncio
async def test_pooled_run_processes_every_user_once():
    active = 0
    peak = 0
    seen = []

    async def action(user):
        nonlocal active, peak
        active += 1
        peak = max(peak, active)
        await asyncio.sleep(0)
        seen.append(user.id)
        active -= 1
        if user.id == 4:
            raise RuntimeError("boom")
        return ActionResult.sent()

    users = [make_user(i) for i in range(1, 7)]
    runner = BatchRunner(lambda: users, inter_user_delay=0, max_concurrency=3)
    outcome = await runner.run_for_each_active_user(action)

    assert sorted(seen) == [1, 2, 3, 4, 5, 6]
    assert peak <= 3
    assert (outcome.attempted, outcome.succeeded, outcome.failed) == (6, 5, 1)
