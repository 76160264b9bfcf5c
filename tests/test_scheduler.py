import asyncio
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from core.exceptions import ConfigurationError
from store.enums import JobState
from utils.scheduler import (
    CronScheduler,
    _translate_day_of_week,
    build_trigger,
    validate_cron_expression,
)

NY = ZoneInfo("America/New_York")


async def noop():
    return "done"


@pytest.mark.parametrize(
    "expression",
    ["99 99 * * *", "* * *", "", "0 20 * * 9", "61 * * * *", "0 0 32 * *"],
)
def test_invalid_expressions_are_rejected(expression):
    assert validate_cron_expression(expression, "America/New_York") is False
    with pytest.raises(ConfigurationError):
        build_trigger(expression, "America/New_York")


def test_valid_expressions_are_accepted():
    for expression in ["59 23 * * *", "0 20 * * 0", "0 * * * *", "*/15 9-17 * * 1-5"]:
        assert validate_cron_expression(expression, "America/New_York") is True


def test_unknown_timezone_is_rejected():
    with pytest.raises(ConfigurationError):
        build_trigger("0 * * * *", "Nowhere/Special")


def test_day_of_week_uses_crontab_numbering():
    assert _translate_day_of_week("0") == "sun"
    assert _translate_day_of_week("7") == "sun"
    assert _translate_day_of_week("1-5") == "mon,tue,wed,thu,fri"
    assert _translate_day_of_week("*") == "*"


def test_sunday_expression_fires_on_sunday():
    trigger = build_trigger("0 20 * * 0", "America/New_York")
    wednesday = datetime(2024, 3, 13, 12, 0, tzinfo=NY)

    next_fire = trigger.get_next_fire_time(None, wednesday)

    assert next_fire.weekday() == 6
    assert (next_fire.day, next_fire.hour, next_fire.minute) == (17, 20, 0)


def test_job_lifecycle():
    scheduler = CronScheduler("America/New_York")
    handle = scheduler.schedule("dailySummary", "59 23 * * *", None, noop, "Daily")

    assert handle.state == JobState.REGISTERED
    assert handle.next_run_time() is None

    assert handle.start() is True
    assert handle.start() is False
    assert handle.state == JobState.RUNNING
    assert handle.next_run_time() is not None

    assert handle.stop() is True
    assert handle.state == JobState.STOPPED
    assert handle.stop() is False

    assert handle.start() is True
    handle.remove()
    assert handle.state == JobState.REMOVED
    with pytest.raises(ConfigurationError):
        handle.start()


def test_duplicate_schedule_name_is_rejected():
    scheduler = CronScheduler("America/New_York")
    scheduler.schedule("job", "0 * * * *", None, noop)

    with pytest.raises(ConfigurationError):
        scheduler.schedule("job", "0 * * * *", None, noop)


@pytest.mark.asyncio
async def test_fire_returns_task_result():
    scheduler = CronScheduler("America/New_York")
    handle = scheduler.schedule("job", "0 * * * *", None, noop)

    assert await handle.fire() == "done"
    assert handle.in_flight is False
    assert handle.last_finished_at is not None


@pytest.mark.asyncio
async def test_fire_logs_and_swallows_task_errors():
    async def broken():
        raise RuntimeError("smtp down")

    scheduler = CronScheduler("America/New_York")
    handle = scheduler.schedule("job", "0 * * * *", None, broken)

    assert await handle.fire() is None
    assert handle.last_error == "smtp down"
    assert handle.in_flight is False


@pytest.mark.asyncio
async def test_overlapping_fire_is_skipped():
    release = asyncio.Event()
    runs = []

    async def slow():
        runs.append("start")
        await release.wait()
        return "finished"

    scheduler = CronScheduler("America/New_York")
    handle = scheduler.schedule("job", "* * * * *", None, slow)

    first = asyncio.create_task(handle.fire())
    await asyncio.sleep(0)
    assert handle.in_flight is True

    assert await handle.fire() is None
    assert handle.skipped_fires == 1

    release.set()
    assert await first == "finished"
    assert runs == ["start"]


@pytest.mark.asyncio
async def test_stop_does_not_cancel_in_flight_fire():
    release = asyncio.Event()

    async def slow():
        await release.wait()
        return "finished"

    scheduler = CronScheduler("America/New_York")
    handle = scheduler.schedule("job", "* * * * *", None, slow)
    handle.start()

    running = asyncio.create_task(handle.fire())
    await asyncio.sleep(0)
    handle.stop()
    release.set()

    assert await running == "finished"
    assert handle.state == JobState.STOPPED


@pytest.mark.asyncio
async def test_scheduler_start_and_shutdown():
    scheduler = CronScheduler("America/New_York")
    scheduler.start()
    scheduler.start()
    assert scheduler.running is True

    scheduler.shutdown()
    await asyncio.sleep(0)
    assert scheduler.running is False
