"""
Centralized enumerations for the expense tracker.
"""
from enum import Enum


# ============================================================================
# EXPENSE ENUMS
# ============================================================================

class ExpenseCategory(str, Enum):
    """Expense categories offered to users"""
    FOOD_AND_DINING = "Food & Dining"
    TRANSPORTATION = "Transportation"
    SHOPPING = "Shopping"
    ENTERTAINMENT = "Entertainment"
    BILLS_AND_UTILITIES = "Bills & Utilities"
    HEALTHCARE = "Healthcare"
    EDUCATION = "Education"
    TRAVEL = "Travel"
    GROCERIES = "Groceries"
    PERSONAL_CARE = "Personal Care"
    HOME_AND_GARDEN = "Home & Garden"
    GIFTS_AND_DONATIONS = "Gifts & Donations"
    BUSINESS = "Business"
    OTHER = "Other"


# ============================================================================
# SCHEDULER ENUMS
# ============================================================================

class JobState(str, Enum):
    """Lifecycle of a scheduled job descriptor"""
    REGISTERED = "registered"  # added, never started
    RUNNING = "running"
    STOPPED = "stopped"
    REMOVED = "removed"


class HealthStatus(str, Enum):
    """Overall scheduler health"""
    HEALTHY = "healthy"
    DEGRADED = "degraded"


# ============================================================================
# NOTIFICATION ENUMS
# ============================================================================

class ActionStatus(str, Enum):
    """Outcome of one per-user action inside a batch"""
    SENT = "sent"
    SKIPPED = "skipped"
    FAILED = "failed"


class AlertReason(str, Enum):
    """Why the budget-alert engine did or did not decide to send"""
    NO_LIMIT = "no limit configured"
    ALREADY_ALERTED = "already alerted this week"
    BELOW_THRESHOLD = "below alert threshold"
    THRESHOLD_REACHED = "alert threshold reached"


class BudgetStatus(str, Enum):
    """Weekly budget standing shown to the user"""
    GOOD = "good"
    WARNING = "warning"
    OVER_BUDGET = "over_budget"
