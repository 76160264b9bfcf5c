import asyncio
from types import SimpleNamespace

import pytest
import pytest_asyncio

from core.exceptions import ConfigurationError, DuplicateNameError, NotFoundError
from service.job_registry import (
    DAILY_SUMMARY,
    WEEKLY_LIMIT_CHECK,
    WEEKLY_SUMMARY,
    JobRegistry,
    build_job_registry,
)
from store.enums import HealthStatus, JobState


class FakeNotificationJobs:
    def __init__(self):
        self.calls = []

    async def send_daily_summaries(self):
        self.calls.append("daily")

    async def send_weekly_summaries(self):
        self.calls.append("weekly")

    async def check_weekly_limits(self):
        self.calls.append("limits")


def make_config(**overrides):
    values = dict(
        SCHEDULER_TIMEZONE="America/New_York",
        DAILY_SUMMARY_CRON="59 23 * * *",
        WEEKLY_SUMMARY_CRON="0 20 * * 0",
        WEEKLY_LIMIT_CHECK_CRON="0 * * * *",
    )
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest_asyncio.fixture
async def registry():
    registry = JobRegistry(FakeNotificationJobs(), config=make_config())
    registry.init()
    yield registry
    registry.dispose()
    await asyncio.sleep(0)


async def extra_task():
    return None


@pytest.mark.asyncio
async def test_init_registers_builtin_jobs_stopped(registry):
    assert registry.list_jobs() == [DAILY_SUMMARY, WEEKLY_SUMMARY, WEEKLY_LIMIT_CHECK]
    status = registry.get_status()
    assert all(not job.running for job in status.values())
    assert status[WEEKLY_SUMMARY].schedule == "0 20 * * 0"
    assert status[DAILY_SUMMARY].state == JobState.REGISTERED


@pytest.mark.asyncio
async def test_start_all_is_idempotent(registry):
    first = registry.start_all()
    second = registry.start_all()

    assert first == [DAILY_SUMMARY, WEEKLY_SUMMARY, WEEKLY_LIMIT_CHECK]
    assert second == []
    assert registry.scheduler.running is True
    assert all(job.running for job in registry.get_status().values())


@pytest.mark.asyncio
async def test_duplicate_name_is_rejected(registry):
    with pytest.raises(DuplicateNameError):
        registry.add_job(DAILY_SUMMARY, "0 8 * * *", None, extra_task)

    assert len(registry.list_jobs()) == 3


@pytest.mark.asyncio
async def test_invalid_expression_leaves_job_count_unchanged(registry):
    with pytest.raises(ConfigurationError):
        registry.add_job("broken", "99 99 * * *", None, extra_task)

    assert len(registry.list_jobs()) == 3
    assert "broken" not in registry.list_jobs()


@pytest.mark.asyncio
async def test_add_and_remove_job(registry):
    registry.add_job("monthlyReport", "0 9 1 * *", "UTC", extra_task, "Monthly report")
    registry.start_job("monthlyReport")

    info = registry.get_job_info("monthlyReport")
    assert info.running is True
    assert info.timezone == "UTC"
    assert info.next_run_time is not None

    registry.remove_job("monthlyReport")
    assert "monthlyReport" not in registry.list_jobs()
    with pytest.raises(NotFoundError):
        registry.remove_job("monthlyReport")


@pytest.mark.asyncio
async def test_unknown_job_raises_not_found(registry):
    with pytest.raises(NotFoundError):
        registry.start_job("nope")
    with pytest.raises(NotFoundError):
        registry.stop_job("nope")
    with pytest.raises(NotFoundError):
        registry.get_job_info("nope")


@pytest.mark.asyncio
async def test_health_is_healthy_before_start(registry):
    report = registry.health_check()

    assert report.overall == HealthStatus.HEALTHY
    assert report.jobs == {DAILY_SUMMARY: "stopped", WEEKLY_SUMMARY: "stopped", WEEKLY_LIMIT_CHECK: "stopped"}


@pytest.mark.asyncio
async def test_explicitly_stopped_job_does_not_degrade_health(registry):
    registry.start_all()
    registry.stop_job(WEEKLY_SUMMARY)

    report = registry.health_check()

    assert report.overall == HealthStatus.HEALTHY
    assert report.jobs[WEEKLY_SUMMARY] == "stopped"


@pytest.mark.asyncio
async def test_stop_all_degrades_health(registry):
    registry.start_all()
    registry.stop_all()

    assert registry.health_check().overall == HealthStatus.DEGRADED

    registry.start_all()
    assert registry.health_check().overall == HealthStatus.HEALTHY


@pytest.mark.asyncio
async def test_emergency_stop_isolates_failures(registry, monkeypatch):
    registry.start_all()
    handle = registry._jobs[WEEKLY_SUMMARY]

    def broken_stop():
        raise RuntimeError("jobstore unavailable")

    monkeypatch.setattr(handle, "stop", broken_stop)

    report = registry.emergency_stop()

    assert report.stopped == [DAILY_SUMMARY, WEEKLY_LIMIT_CHECK]
    assert report.failed[0].name == WEEKLY_SUMMARY
    assert report.failed[0].error == "jobstore unavailable"
    assert report.success is False
    assert registry.get_job_info(DAILY_SUMMARY).running is False
    assert registry.health_check().overall == HealthStatus.DEGRADED


@pytest.mark.asyncio
async def test_validate_cron_expression(registry):
    assert registry.validate_cron_expression("0 20 * * 0") is True
    assert registry.validate_cron_expression("99 99 * * *") is False


@pytest.mark.asyncio
async def test_builtin_jobs_fire_notification_jobs(registry):
    for name in registry.list_jobs():
        await registry._jobs[name].fire()

    assert registry.notification_jobs.calls == ["daily", "weekly", "limits"]


def test_bad_cron_configuration_fails_build():
    with pytest.raises(ConfigurationError):
        build_job_registry(FakeNotificationJobs(), config=make_config(WEEKLY_SUMMARY_CRON="0 20 * *"))
