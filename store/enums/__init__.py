"""
Enums package for system-wide enumerations.
"""
from .enums import (
    ExpenseCategory,
    JobState,
    HealthStatus,
    ActionStatus,
    AlertReason,
    BudgetStatus,
)

__all__ = [
    "ExpenseCategory",
    "JobState",
    "HealthStatus",
    "ActionStatus",
    "AlertReason",
    "BudgetStatus",
]
