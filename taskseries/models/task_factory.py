"""Task creation factory for taskseries.

This module centralizes draft/provisional task creation so every entry point
applies the same defaults.
"""

import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from taskseries.models.task import ChecklistItem, Recurrence, Task, TaskDraft
from taskseries.models.constants import (
    DEFAULT_DURATION_MINUTES,
    DEFAULT_RECURRENCE,
    DEFAULT_STATUS,
    PROJECTED_ID_MARKER,
    TEMP_ID_PREFIX,
)


def create_task_defaults() -> Dict[str, Any]:
    """Get default task values as a dictionary."""
    return {
        "notes": "",
        "status": DEFAULT_STATUS,
        "checklist": [],
        "is_important": False,
        "recurrence": DEFAULT_RECURRENCE,
        "recurring_template_id": None,
        "tags": [],
    }


def create_task_draft(
    title: str,
    start_time: datetime,
    end_time: Optional[datetime] = None,
    notes: Optional[str] = None,
    checklist: Optional[List[str]] = None,
    is_important: Optional[bool] = None,
    recurrence: Optional[Recurrence] = None,
    tags: Optional[List[str]] = None,
) -> TaskDraft:
    """Create a draft with defaults, allowing overrides.

    Args:
        title: Task title (required)
        start_time: Start of the scheduled window (required)
        end_time: End of the window (defaults to start + DEFAULT_DURATION_MINUTES)
        notes: Task notes
        checklist: Checklist item texts, all created uncompleted
        is_important: Importance flag
        recurrence: Recurrence rule (defaults to NONE)
        tags: Free-form tags

    Returns:
        TaskDraft ready to be passed to the lifecycle manager
    """
    defaults = create_task_defaults()
    if end_time is None:
        end_time = start_time + timedelta(minutes=DEFAULT_DURATION_MINUTES)

    return TaskDraft(
        title=title,
        start_time=start_time,
        end_time=end_time,
        notes=notes if notes is not None else defaults["notes"],
        status=defaults["status"],
        checklist=[ChecklistItem(text=text) for text in checklist] if checklist else defaults["checklist"],
        is_important=is_important if is_important is not None else defaults["is_important"],
        recurrence=recurrence if recurrence is not None else defaults["recurrence"],
        recurring_template_id=defaults["recurring_template_id"],
        tags=tags if tags is not None else defaults["tags"],
    )


def create_provisional_task(user_id: str, draft: TaskDraft, now: datetime) -> Task:
    """Build the locally visible stand-in for a draft that is not persisted yet."""
    return Task(
        **draft.model_dump(),
        id=f"{TEMP_ID_PREFIX}{uuid.uuid4()}",
        user_id=user_id,
        created_at=now,
    )


def is_provisional_id(task_id: str) -> bool:
    return task_id.startswith(TEMP_ID_PREFIX)


def resolve_projected_id(task_id: str) -> str:
    """Strip the projected-occurrence suffix, e.g. ``abc-projected-2024-05-01`` -> ``abc``."""
    return task_id.split(PROJECTED_ID_MARKER)[0]
