"""Task data model for taskseries."""

import uuid
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class TaskStatus(str, Enum):
    """Task status enumeration."""
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"


class Recurrence(str, Enum):
    """Recurrence rule for a task series (NONE means a standalone task)."""
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class ChecklistItem(BaseModel):
    """Single checklist entry inside a task."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Checklist item identifier")
    text: str = Field(..., description="Item text")
    completed: bool = Field(False, description="Whether the item is ticked off")


class TaskDraft(BaseModel):
    """Fields a caller supplies when creating a task.

    The store assigns ``id`` and ``created_at``; the owner comes from the
    authenticated session, never from the draft.
    """

    title: str = Field(..., description="Task title")
    notes: str = Field("", description="Task notes")
    start_time: datetime = Field(..., description="Scheduled window start")
    end_time: datetime = Field(..., description="Scheduled window end")
    status: TaskStatus = Field(TaskStatus.TODO, description="Task status")
    checklist: List[ChecklistItem] = Field(default_factory=list, description="Ordered checklist")
    is_important: bool = Field(False, description="Importance flag")
    recurrence: Recurrence = Field(Recurrence.NONE, description="Recurrence rule")
    recurring_template_id: Optional[str] = Field(
        None, description="Root task id of the series this instance belongs to"
    )
    tags: List[str] = Field(default_factory=list, description="Free-form tags")

    class Config:
        """Pydantic configuration."""
        use_enum_values = True
        alias_generator = to_camel
        populate_by_name = True


class Task(TaskDraft):
    """Canonical Task model (one stored instance)."""

    id: str = Field(..., description="Store-assigned task identifier")
    user_id: str = Field(..., description="Owner of the task")
    created_at: datetime = Field(..., description="Creation timestamp")

    @property
    def is_recurring(self) -> bool:
        return self.recurrence != Recurrence.NONE

    @property
    def series_root_id(self) -> str:
        """Id every instance of this task's series points back to."""
        return self.recurring_template_id or self.id

    def is_historical(self, start_of_today: datetime) -> bool:
        """Past and done: kept untouched when its series is terminated."""
        return self.start_time < start_of_today and self.status == TaskStatus.DONE


class TaskPatch(BaseModel):
    """Partial update body: only the fields that were sent are applied."""

    title: Optional[str] = None
    notes: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    status: Optional[TaskStatus] = None
    checklist: Optional[List[ChecklistItem]] = None
    is_important: Optional[bool] = None
    recurrence: Optional[Recurrence] = None
    tags: Optional[List[str]] = None

    class Config:
        """Pydantic configuration."""
        use_enum_values = True
        alias_generator = to_camel
        populate_by_name = True
        extra = "forbid"

    def to_fields(self) -> dict:
        """Sent fields keyed by their camelCase names."""
        return self.model_dump(exclude_unset=True, by_alias=True)
