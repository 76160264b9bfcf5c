from fastapi import FastAPI
from fastapi.responses import JSONResponse
import time
import logging

from config.settings import settings
from core.logger import setup_logging
from database.postgres import check_database_health, close_all_connections, init_db

# Import routers
from api.router.expenses import expenses_router
from api.router.jobs import jobs_router

from service.budget_alerts import WeeklyLimitChecker
from service.cron_notifications import NotificationJobs
from service.job_registry import build_job_registry
from service.limit_check_queue import LimitCheckQueue
from utils.email_service import ExpenseMailer

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="Expense tracking with scheduled summaries and weekly budget alerts",
    version="1.0.0",
)

# Routers
app.include_router(expenses_router, prefix="/api/v1")
app.include_router(jobs_router, prefix="/api/v1")


@app.on_event("startup")
async def on_startup():
    """
    Startup tasks:
    - Configure logging
    - Create tables and test the database connection
    - Build the notification jobs and register the cron jobs
    - Start the scheduler
    """
    setup_logging()
    logger.info("=" * 60)
    logger.info("APPLICATION STARTING UP")
    logger.info("=" * 60)

    try:
        init_db()
        db_health = check_database_health()
        logger.info(f"Database status: {db_health.get('status')}")
    except Exception as e:
        # Don't raise - allow app to start for health checks
        logger.error(f"Error during database startup: {str(e)}")

    mailer = ExpenseMailer()
    limit_checker = WeeklyLimitChecker(mailer)
    notification_jobs = NotificationJobs(mailer, limit_checker=limit_checker)

    app.state.notification_jobs = notification_jobs
    app.state.limit_check_queue = LimitCheckQueue(limit_checker)
    app.state.job_registry = build_job_registry(notification_jobs)

    if settings.START_SCHEDULER_ON_STARTUP:
        started = app.state.job_registry.start_all()
        logger.info(f"Scheduler started with jobs: {', '.join(started)}")
    else:
        logger.info("Scheduler not started (START_SCHEDULER_ON_STARTUP is off)")

    logger.info("=" * 60)
    logger.info("APPLICATION READY")
    logger.info("=" * 60)


@app.on_event("shutdown")
async def on_shutdown():
    """
    Shutdown tasks:
    - Stop scheduler
    - Wait for queued limit checks
    - Close database connections
    """
    logger.info("Application shutting down...")

    try:
        app.state.job_registry.dispose()
        logger.info("Scheduler shutdown")
    except Exception as e:
        logger.error(f"Error during scheduler shutdown: {e}")

    try:
        await app.state.limit_check_queue.drain()
    except Exception as e:
        logger.error(f"Error waiting for pending limit checks: {e}")

    try:
        close_all_connections()
        logger.info("Database connections closed")
    except Exception as e:
        logger.error(f"Error closing database connections: {e}")

    logger.info("Shutdown completed")


@app.get("/")
def read_root():
    """Root endpoint"""
    return {
        "name": f"{settings.APP_NAME} API",
        "version": "1.0.0",
        "status": "operational",
    }


@app.get("/health")
def health_check():
    """
    Health check endpoint for load balancers

    Returns:
        dict: Health status
    """
    health = {
        "status": "healthy",
        "timestamp": time.time(),
    }

    # Check Database
    db_health = check_database_health()
    health["database"] = db_health.get("status", "unknown")
    if db_health.get("status") != "healthy":
        health["status"] = "unhealthy"

    # Check cron jobs
    registry = getattr(app.state, "job_registry", None)
    if registry is not None:
        jobs_health = registry.health_check()
        health["jobs"] = jobs_health.jobs
        if jobs_health.overall != "healthy" and health["status"] == "healthy":
            health["status"] = "degraded"

    status_code = 200 if health["status"] in ["healthy", "degraded"] else 503
    return JSONResponse(content=health, status_code=status_code)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)
