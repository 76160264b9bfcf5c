from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional, List, Dict
from schemas.expenses import ExpenseSummary
from store.enums import ActionStatus, AlertReason, BudgetStatus, HealthStatus, JobState


class TimeWindow(BaseModel):
    """Inclusive [start, end] interval in the reference timezone."""
    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant <= self.end

    class Config:
        frozen = True


class ExpenseAggregate(BaseModel):
    total: Decimal = Decimal("0")
    count: int = 0
    items: List[ExpenseSummary] = Field(default_factory=list)


class NotificationResult(BaseModel):
    success: bool
    error: Optional[str] = None
    message_id: Optional[str] = None


class ActionResult(BaseModel):
    """What a per-user batch action reports back to the batch runner."""
    status: ActionStatus
    detail: Optional[str] = None

    @classmethod
    def sent(cls, detail: Optional[str] = None) -> "ActionResult":
        return cls(status=ActionStatus.SENT, detail=detail)

    @classmethod
    def skipped(cls, detail: Optional[str] = None) -> "ActionResult":
        return cls(status=ActionStatus.SKIPPED, detail=detail)

    @classmethod
    def failed(cls, detail: str) -> "ActionResult":
        return cls(status=ActionStatus.FAILED, detail=detail)


class UserError(BaseModel):
    user_id: Optional[int]
    error: str


class BatchOutcome(BaseModel):
    job_name: Optional[str] = None
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0  # subset of succeeded: nothing needed sending
    per_user_errors: List[UserError] = Field(default_factory=list)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    def record_success(self, skipped: bool = False):
        self.attempted += 1
        self.succeeded += 1
        if skipped:
            self.skipped += 1

    def record_failure(self, user_id: Optional[int], error: str):
        self.attempted += 1
        self.failed += 1
        self.per_user_errors.append(UserError(user_id=user_id, error=error))

    @property
    def duration_seconds(self) -> float:
        if not self.started_at or not self.finished_at:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()


class AlertDecision(BaseModel):
    should_send: bool
    reason: AlertReason
    percentage_used: float = 0.0
    spent: Decimal = Decimal("0")
    limit: Optional[Decimal] = None
    window: Optional[TimeWindow] = None


class LimitCheckResult(BaseModel):
    user_id: int
    decision: AlertDecision
    sent: bool = False
    committed: bool = False
    error: Optional[str] = None

    @property
    def message(self) -> str:
        percentage = f"{self.decision.percentage_used:.1f}% used"
        if self.sent:
            return f"Weekly limit alert sent ({percentage})"
        if self.error:
            return f"Weekly limit alert failed ({percentage}): {self.error}"
        if self.decision.reason == AlertReason.NO_LIMIT:
            return "No weekly limit set for user"
        return f"No alert needed ({percentage}, {self.decision.reason.value})"


class JobStatus(BaseModel):
    name: str
    running: bool
    state: JobState
    schedule: str
    timezone: str
    description: str
    next_run_time: Optional[datetime] = None


class HealthReport(BaseModel):
    overall: HealthStatus
    jobs: Dict[str, str]
    timestamp: datetime


class JobFailure(BaseModel):
    name: str
    error: str


class EmergencyStopReport(BaseModel):
    stopped: List[str] = Field(default_factory=list)
    failed: List[JobFailure] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failed


class WeeklyStatus(BaseModel):
    """Current-week spend against the weekly limit."""
    window: TimeWindow
    weekly_limit: Optional[Decimal] = None
    weekly_spent: Decimal = Decimal("0")
    remaining_budget: Optional[Decimal] = None
    percentage_used: float = 0.0
    is_over_budget: bool = False
    status: BudgetStatus = BudgetStatus.GOOD
    expense_count: int = 0
    average_per_day: Decimal = Decimal("0")


class TriggerResult(BaseModel):
    success: bool
    detail: Optional[str] = None
    error: Optional[str] = None


class TriggerReport(BaseModel):
    """Outcome of running every manual trigger once."""
    results: Dict[str, TriggerResult] = Field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def success_count(self) -> int:
        return sum(1 for result in self.results.values() if result.success)

    @property
    def failure_count(self) -> int:
        return self.total - self.success_count
