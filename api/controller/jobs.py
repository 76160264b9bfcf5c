"""
Jobs controller - manual triggers and cron job administration.
"""
import logging

from fastapi import Depends, HTTPException

from core.exceptions import (
    ConfigurationError,
    DependencyError,
    DuplicateNameError,
    ExpenseTrackerError,
    NotFoundError,
)
from service.cron_notifications import NotificationJobs
from service.job_registry import JobRegistry
from utils.dependencies import get_job_registry, get_notification_jobs

logger = logging.getLogger(__name__)


def to_http_exception(exc: ExpenseTrackerError) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, DuplicateNameError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, ConfigurationError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, DependencyError):
        return HTTPException(status_code=503, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


async def get_jobs_status_controller(registry: JobRegistry = Depends(get_job_registry)):
    return registry.get_status()


async def get_jobs_health_controller(registry: JobRegistry = Depends(get_job_registry)):
    return registry.health_check()


async def get_job_info_controller(name: str, registry: JobRegistry = Depends(get_job_registry)):
    try:
        return registry.get_job_info(name)
    except ExpenseTrackerError as exc:
        raise to_http_exception(exc) from exc


async def run_daily_summary_controller(jobs: NotificationJobs = Depends(get_notification_jobs)):
    try:
        return await jobs.run_daily_summary_now()
    except ExpenseTrackerError as exc:
        logger.error(f"Manual daily summary failed: {str(exc)}")
        raise to_http_exception(exc) from exc


async def run_weekly_summary_controller(jobs: NotificationJobs = Depends(get_notification_jobs)):
    try:
        return await jobs.run_weekly_summary_now()
    except ExpenseTrackerError as exc:
        logger.error(f"Manual weekly summary failed: {str(exc)}")
        raise to_http_exception(exc) from exc


async def run_weekly_limit_check_controller(
    user_id: int, jobs: NotificationJobs = Depends(get_notification_jobs)
):
    try:
        result = await jobs.run_weekly_limit_check_now(user_id)
    except ExpenseTrackerError as exc:
        raise to_http_exception(exc) from exc
    return {
        "user_id": result.user_id,
        "alert_sent": result.sent,
        "committed": result.committed,
        "percentage_used": result.decision.percentage_used,
        "reason": result.decision.reason,
        "message": result.message,
    }


async def run_all_triggers_controller(
    user_id: int, jobs: NotificationJobs = Depends(get_notification_jobs)
):
    report = await jobs.run_all_now(user_id)
    return {
        "results": {name: result.model_dump() for name, result in report.results.items()},
        "summary": {
            "total": report.total,
            "success_count": report.success_count,
            "failure_count": report.failure_count,
        },
    }


async def start_all_jobs_controller(registry: JobRegistry = Depends(get_job_registry)):
    return {"started": registry.start_all()}


async def stop_all_jobs_controller(registry: JobRegistry = Depends(get_job_registry)):
    return {"stopped": registry.stop_all()}


async def emergency_stop_controller(registry: JobRegistry = Depends(get_job_registry)):
    report = registry.emergency_stop()
    return {"success": report.success, "stopped": report.stopped, "failed": report.failed}


async def start_job_controller(name: str, registry: JobRegistry = Depends(get_job_registry)):
    try:
        started = registry.start_job(name)
    except ExpenseTrackerError as exc:
        raise to_http_exception(exc) from exc
    return {"name": name, "started": started}


async def stop_job_controller(name: str, registry: JobRegistry = Depends(get_job_registry)):
    try:
        stopped = registry.stop_job(name)
    except ExpenseTrackerError as exc:
        raise to_http_exception(exc) from exc
    return {"name": name, "stopped": stopped}


async def remove_job_controller(name: str, registry: JobRegistry = Depends(get_job_registry)):
    try:
        registry.remove_job(name)
    except ExpenseTrackerError as exc:
        raise to_http_exception(exc) from exc
    return {"name": name, "removed": True}


async def validate_cron_controller(expression: str, registry: JobRegistry = Depends(get_job_registry)):
    return {"expression": expression, "valid": registry.validate_cron_expression(expression)}
