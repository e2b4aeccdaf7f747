"""Data models for taskseries."""

from taskseries.models.task import ChecklistItem, Recurrence, Task, TaskDraft, TaskPatch, TaskStatus

__all__ = [
    "ChecklistItem",
    "Recurrence",
    "Task",
    "TaskDraft",
    "TaskPatch",
    "TaskStatus",
]
