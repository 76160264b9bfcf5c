import os
import logging

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from the project .env file when present
load_dotenv()

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    APP_NAME: str = "Expense Tracker"
    ENV: str = "development"
    BASE_DIR: str = ""

    POSTGRES_URI: str = "postgresql://localhost:5432/expense_tracker"

    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 587
    SMTP_USERNAME: str | None = None
    SMTP_PASSWORD: str | None = None
    SMTP_FROM_EMAIL: str = "no-reply@expense-tracker.local"
    SMTP_FROM_NAME: str = "Expense Tracker"
    SMTP_TIMEOUT_SECONDS: int = 10

    # Notification Settings
    ENABLE_EMAIL_NOTIFICATIONS: bool = True
    ALERT_THRESHOLD_PERCENT: float = 80.0
    INTER_USER_DELAY_SECONDS: float = 1.0  # throttle between successive sends
    BATCH_MAX_CONCURRENCY: int = 1

    # Scheduler Settings
    SCHEDULER_TIMEZONE: str = "America/New_York"
    DAILY_SUMMARY_CRON: str = "59 23 * * *"  # 11:59 PM every day
    WEEKLY_SUMMARY_CRON: str = "0 20 * * 0"  # 8:00 PM every Sunday
    WEEKLY_LIMIT_CHECK_CRON: str = "0 * * * *"  # top of every hour
    START_SCHEDULER_ON_STARTUP: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str | None = "logs/app.log"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if not self.BASE_DIR:
            self.BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
        logger.debug(f"Settings BASE_DIR: {self.BASE_DIR}")
        logger.debug(
            f"Scheduler Settings - Timezone: {self.SCHEDULER_TIMEZONE}, "
            f"Daily: {self.DAILY_SUMMARY_CRON}, Weekly: {self.WEEKLY_SUMMARY_CRON}, "
            f"Limit check: {self.WEEKLY_LIMIT_CHECK_CRON}"
        )

    @property
    def template_dir(self) -> str:
        return os.path.join(self.BASE_DIR, "static", "templates")


settings = Settings()
