"""SQLAlchemy database models for taskseries."""

from datetime import datetime
from typing import Any, Dict, Type, TypeVar, Union
import uuid

from sqlalchemy import Boolean, Column, DateTime, JSON, String

from taskseries.database.database import Base
from taskseries.models.constants import TASKS_COLLECTION
from taskseries.models.task import Recurrence, TaskStatus

T = TypeVar('T')


def enum_to_value(enum_obj: Union[str, T]) -> str:
    """Convert enum to string value (handles both enum and string).

    Args:
        enum_obj: Enum instance or string value

    Returns:
        String value of the enum, or the string itself if already a string
    """
    if hasattr(enum_obj, 'value'):
        return enum_obj.value
    return str(enum_obj)


class TaskDB(Base):
    """Database model for Task.

    Column names are the store's native (snake_case) field names; records
    leave and enter this layer as plain dicts keyed by them.
    """

    __tablename__ = TASKS_COLLECTION

    # Primary key
    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))

    # Owner (never mutated after creation)
    user_id = Column(String, nullable=False, index=True)

    # Basic fields
    title = Column(String, nullable=False)
    notes = Column(String, nullable=False, default="")
    status = Column(String, nullable=False, default=TaskStatus.TODO.value, index=True)

    # Scheduled window
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False)

    # Checklist (JSON array of {id, text, completed}) and tags (JSON array of strings)
    checklist = Column(JSON, nullable=False, default=list)
    tags = Column(JSON, nullable=False, default=list)

    is_important = Column(Boolean, nullable=False, default=False)

    # Series linkage
    recurrence = Column(String, nullable=False, default=Recurrence.NONE.value)
    recurring_template_id = Column(String, nullable=True, index=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    @classmethod
    def field_names(cls) -> set:
        return {column.name for column in cls.__table__.columns}

    def to_record(self) -> Dict[str, Any]:
        """Convert the row to a store record."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "notes": self.notes or "",
            "status": self.status,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "checklist": list(self.checklist or []),
            "tags": list(self.tags or []),
            "is_important": bool(self.is_important),
            "recurrence": self.recurrence,
            "recurring_template_id": self.recurring_template_id,
            "created_at": self.created_at,
        }

    @classmethod
    def from_record(cls: Type["TaskDB"], record: Dict[str, Any]) -> "TaskDB":
        """Create a row from a store record (enum members are stored by value)."""
        values = {key: value for key, value in record.items() if key in cls.field_names()}
        for key in ("status", "recurrence"):
            if key in values and values[key] is not None:
                values[key] = enum_to_value(values[key])
        return cls(**values)
