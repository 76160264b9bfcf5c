from fastapi import APIRouter

from api.controller.jobs import (
    emergency_stop_controller,
    get_job_info_controller,
    get_jobs_health_controller,
    get_jobs_status_controller,
    remove_job_controller,
    run_all_triggers_controller,
    run_daily_summary_controller,
    run_weekly_limit_check_controller,
    run_weekly_summary_controller,
    start_all_jobs_controller,
    start_job_controller,
    stop_all_jobs_controller,
    stop_job_controller,
    validate_cron_controller,
)
from schemas.notifications import BatchOutcome, HealthReport, JobStatus

jobs_router = APIRouter(prefix="/jobs", tags=["Jobs"])

jobs_router.add_api_route(
    "/status",
    endpoint=get_jobs_status_controller,
    methods=["GET"],
    response_model=dict[str, JobStatus],
    summary="Status of every cron job",
)

jobs_router.add_api_route(
    "/health",
    endpoint=get_jobs_health_controller,
    methods=["GET"],
    response_model=HealthReport,
    summary="Cron job health",
)

jobs_router.add_api_route(
    "/validate",
    endpoint=validate_cron_controller,
    methods=["GET"],
    response_model=dict,
    summary="Check a cron expression",
)

jobs_router.add_api_route(
    "/daily-summary",
    endpoint=run_daily_summary_controller,
    methods=["POST"],
    response_model=BatchOutcome,
    summary="Send today's summary emails now",
)

jobs_router.add_api_route(
    "/weekly-summary",
    endpoint=run_weekly_summary_controller,
    methods=["POST"],
    response_model=BatchOutcome,
    summary="Send this week's summary emails now",
)

jobs_router.add_api_route(
    "/weekly-limit-check/{user_id}",
    endpoint=run_weekly_limit_check_controller,
    methods=["POST"],
    response_model=dict,
    summary="Run the weekly limit check for one user",
)

jobs_router.add_api_route(
    "/test-all",
    endpoint=run_all_triggers_controller,
    methods=["POST"],
    response_model=dict,
    summary="Run every manual trigger once, reporting each outcome",
)

jobs_router.add_api_route(
    "/start-all",
    endpoint=start_all_jobs_controller,
    methods=["POST"],
    response_model=dict,
    summary="Start every cron job",
)

jobs_router.add_api_route(
    "/stop-all",
    endpoint=stop_all_jobs_controller,
    methods=["POST"],
    response_model=dict,
    summary="Stop every cron job",
)

jobs_router.add_api_route(
    "/emergency-stop",
    endpoint=emergency_stop_controller,
    methods=["POST"],
    response_model=dict,
    summary="Stop every cron job, reporting per-job failures",
)

jobs_router.add_api_route(
    "/{name}",
    endpoint=get_job_info_controller,
    methods=["GET"],
    response_model=JobStatus,
    summary="Details of one cron job",
)

jobs_router.add_api_route(
    "/{name}/start",
    endpoint=start_job_controller,
    methods=["POST"],
    response_model=dict,
    summary="Start one cron job",
)

jobs_router.add_api_route(
    "/{name}/stop",
    endpoint=stop_job_controller,
    methods=["POST"],
    response_model=dict,
    summary="Stop one cron job",
)

jobs_router.add_api_route(
    "/{name}",
    endpoint=remove_job_controller,
    methods=["DELETE"],
    response_model=dict,
    summary="Remove a cron job",
)
