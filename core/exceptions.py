"""
Error taxonomy for the job runner and budget-alert engine.

Per-user failures (DependencyError, NotificationError) are caught at the
user boundary and recorded as data. Registry errors (ConfigurationError,
DuplicateNameError, NotFoundError) propagate to the administrative caller.
"""


class ExpenseTrackerError(Exception):
    """Base exception for scheduler and notification operations."""

    def __init__(self, message: str, operation: str | None = None, recoverable: bool = True):
        super().__init__(message)
        self.operation = operation
        self.recoverable = recoverable


class ConfigurationError(ExpenseTrackerError):
    """Invalid schedule expression, timezone or missing configuration."""

    def __init__(self, message: str, operation: str | None = None):
        super().__init__(message, operation=operation, recoverable=False)


class DependencyError(ExpenseTrackerError):
    """A persistence or aggregation call failed."""


class NotificationError(ExpenseTrackerError):
    """An email could not be delivered."""


class DuplicateNameError(ExpenseTrackerError):
    """A job with the same name is already registered."""

    def __init__(self, name: str):
        super().__init__(f"Job '{name}' already exists", operation="add_job", recoverable=False)
        self.name = name


class NotFoundError(ExpenseTrackerError):
    """A named job or a user record does not exist."""

    def __init__(self, message: str, operation: str | None = None):
        super().__init__(message, operation=operation, recoverable=False)
