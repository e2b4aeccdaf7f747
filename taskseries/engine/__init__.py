"""Task lifecycle engine for taskseries."""

from taskseries.engine.errors import (
    StoreError,
    TaskLifecycleError,
    TaskNotFoundError,
    UnsupportedRecurrenceError,
)

__all__ = [
    "StoreError",
    "TaskLifecycleError",
    "TaskNotFoundError",
    "UnsupportedRecurrenceError",
]
