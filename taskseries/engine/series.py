"""Series termination planning.

Deleting a recurring task removes every current and future instance of its
series but keeps completed history. The most recent historical instance is
the one that would spawn the next occurrence, so its recurrence is switched
off instead of deleting it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional

from taskseries.models.task import Task


@dataclass
class SeriesTerminationPlan:
    """What to change in the store to terminate one series."""

    terminator: Optional[Task] = None
    delete_ids: List[str] = field(default_factory=list)

    @property
    def is_noop(self) -> bool:
        return self.terminator is None and not self.delete_ids


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def plan_series_termination(series: Iterable[Task], start_of_today: datetime) -> SeriesTerminationPlan:
    """Partition a series into the terminator and the instances to delete.

    An instance is historical iff it started before today and is done. Only
    the latest historical instance becomes the terminator; older history is
    left alone. Everything non-historical is deleted.
    """
    plan = SeriesTerminationPlan()
    for task in sorted(series, key=lambda t: t.start_time, reverse=True):
        if task.is_historical(start_of_today):
            if plan.terminator is None:
                plan.terminator = task
        else:
            plan.delete_ids.append(task.id)
    return plan
