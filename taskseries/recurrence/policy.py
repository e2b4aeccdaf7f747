"""Recurrence policy: derive the next instance of a series from a completed one."""

from __future__ import annotations

import calendar
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Mapping, Optional

from taskseries.engine.errors import UnsupportedRecurrenceError
from taskseries.models.task import Recurrence, Task, TaskStatus

AdvanceRule = Callable[[datetime], datetime]


def add_days(days: int) -> AdvanceRule:
    def _advance(dt: datetime) -> datetime:
        return dt + timedelta(days=days)
    return _advance


def add_months(months: int) -> AdvanceRule:
    """Advance by calendar months, clamping to the last day of shorter months."""
    def _advance(dt: datetime) -> datetime:
        month_index = dt.month - 1 + months
        year = dt.year + month_index // 12
        month = month_index % 12 + 1
        day = min(dt.day, calendar.monthrange(year, month)[1])
        return dt.replace(year=year, month=month, day=day)
    return _advance


DEFAULT_RULES: Dict[Recurrence, AdvanceRule] = {
    Recurrence.DAILY: add_days(1),
    Recurrence.WEEKLY: add_days(7),
    Recurrence.MONTHLY: add_months(1),
}


def _as_recurrence(value: Any) -> Optional[Recurrence]:
    try:
        return Recurrence(value)
    except ValueError:
        return None


class RecurrencePolicy:
    """Maps each supported recurrence kind to the rule that advances a timestamp.

    Kinds missing from ``rules`` are unsupported: asking for their next
    instance raises ``UnsupportedRecurrenceError`` instead of silently
    treating the task as non-recurring.
    """

    def __init__(self, rules: Optional[Mapping[Recurrence, AdvanceRule]] = None):
        self.rules: Dict[Recurrence, AdvanceRule] = dict(DEFAULT_RULES if rules is None else rules)

    def supports(self, recurrence: Any) -> bool:
        kind = _as_recurrence(recurrence)
        return kind is not None and kind in self.rules

    def next_instance_fields(self, completed: Task) -> Dict[str, Any]:
        """Field set (attribute names) for the instance that follows ``completed``.

        The window keeps its duration, status and checklist progress are reset,
        and the series root id is carried forward unchanged.
        """
        kind = _as_recurrence(completed.recurrence)
        if kind == Recurrence.NONE:
            raise ValueError(f"Task {completed.id} is not recurring")
        if kind is None or kind not in self.rules:
            raise UnsupportedRecurrenceError(
                f"Recurrence '{completed.recurrence}' is not supported"
            )

        advance = self.rules[kind]
        next_start = advance(completed.start_time)
        next_end = next_start + (completed.end_time - completed.start_time)

        return {
            "title": completed.title,
            "notes": completed.notes,
            "start_time": next_start,
            "end_time": next_end,
            "status": TaskStatus.TODO.value,
            "checklist": [
                {**item.model_dump(), "completed": False} for item in completed.checklist
            ],
            "is_important": completed.is_important,
            "recurrence": kind.value,
            "recurring_template_id": completed.series_root_id,
            "tags": list(completed.tags),
        }


default_policy = RecurrencePolicy()


def next_instance_fields(completed: Task) -> Dict[str, Any]:
    """Next-instance fields under the default rules."""
    return default_policy.next_instance_fields(completed)
