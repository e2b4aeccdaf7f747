"""Error taxonomy for task lifecycle operations."""


class TaskLifecycleError(Exception):
    """Base error for a failed lifecycle operation; ``str(e)`` is user-facing."""


class TaskNotFoundError(TaskLifecycleError):
    """The target id is not present in the owner's task collection."""


class StoreError(TaskLifecycleError):
    """The task store rejected a call or could not be reached."""


class UnsupportedRecurrenceError(TaskLifecycleError):
    """A recurrence kind has no advancement rule (configuration error)."""
