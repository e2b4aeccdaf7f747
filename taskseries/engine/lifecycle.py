"""Task lifecycle manager.

Owns the in-memory task collection for one owner and keeps it consistent
with the task store. Mutations are applied optimistically, then either kept,
rolled back to a snapshot, or replaced wholesale by ``fetch_all``.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from pydantic import ValidationError

from taskseries.database import field_codec
from taskseries.database.store import Record, TaskStoreClient
from taskseries.engine.errors import (
    StoreError,
    TaskNotFoundError,
    UnsupportedRecurrenceError,
)
from taskseries.engine.series import SeriesTerminationPlan, plan_series_termination, start_of_day
from taskseries.models.constants import DEFAULT_BULK_UPDATE_MAX_WORKERS
from taskseries.models.task import Recurrence, Task, TaskDraft, TaskStatus
from taskseries.models.task_factory import create_provisional_task, resolve_projected_id
from taskseries.recurrence.policy import RecurrencePolicy, default_policy

logger = logging.getLogger(__name__)

# Fields that never change after creation; excluded from full-task updates.
_IMMUTABLE_FIELDS = {"id", "user_id", "created_at"}


class TaskLifecycleManager:
    """Task collection and lifecycle operations for a single owner.

    Mutating operations are serialized with a re-entrant lock (they may call
    ``fetch_all`` while holding it). ``get_by_id`` and the ``tasks`` snapshot
    are read without locking.
    """

    def __init__(
        self,
        store: TaskStoreClient,
        owner_id: Optional[str],
        policy: Optional[RecurrencePolicy] = None,
        clock: Callable[[], datetime] = datetime.now,
        max_workers: int = DEFAULT_BULK_UPDATE_MAX_WORKERS,
    ):
        self.store = store
        self.owner_id = owner_id
        self.policy = policy or default_policy
        self.clock = clock
        self.max_workers = max_workers
        self.loading = False
        self.error: Optional[str] = None
        self._tasks: List[Task] = []
        self._lock = threading.RLock()

    @property
    def tasks(self) -> List[Task]:
        """Current snapshot of the collection."""
        return list(self._tasks)

    # ---- codec helpers ----

    def _to_task(self, record: Record) -> Task:
        return Task.model_validate(field_codec.decode(record))

    def _insert_record(self, draft: TaskDraft) -> Record:
        return field_codec.encode({**draft.model_dump(by_alias=True), "userId": self.owner_id})

    def _update_record(self, task: Task) -> Record:
        return field_codec.encode(task.model_dump(by_alias=True, exclude=_IMMUTABLE_FIELDS))

    def _fail(self, message: str, exc: Exception) -> str:
        logger.error(f"{message}: {type(exc).__name__}: {str(exc)}")
        self.error = message
        return message

    # ---- operations ----

    def fetch_all(self) -> List[Task]:
        """Replace the collection with every task the owner has in the store.

        Failures are recorded in ``error`` and leave the collection as it was.
        """
        with self._lock:
            if not self.owner_id:
                self._tasks = []
                self.loading = False
                return []

            self.loading = True
            self.error = None
            try:
                records = self.store.query(where={"user_id": self.owner_id})
                self._tasks = [self._to_task(record) for record in records]
                logger.debug(f"Loaded {len(self._tasks)} tasks for user {self.owner_id}")
            except (StoreError, ValidationError) as e:
                self._fail("Failed to load tasks. Check your connection and try again.", e)
            finally:
                self.loading = False
            return self.tasks

    def add(self, draft: TaskDraft) -> Optional[Task]:
        """Show a provisional task immediately, then persist it.

        On success the provisional entry is swapped for the stored record; on
        failure the collection is reloaded from the store.
        """
        if not self.owner_id:
            return None

        with self._lock:
            provisional = create_provisional_task(self.owner_id, draft, self.clock())
            self._tasks = self._tasks + [provisional]
            try:
                stored = self.store.insert(self._insert_record(draft))
            except StoreError as e:
                message = self._fail("Failed to add task. Please try again.", e)
                self.fetch_all()
                self.error = message
                raise StoreError(message) from e

            created = self._to_task(stored)
            self._tasks = [created if t.id == provisional.id else t for t in self._tasks]
            logger.debug(f"Added task {created.id} (replacing {provisional.id})")
            return created

    def update(self, task_id: str, partial: Dict[str, Any]) -> bool:
        """Patch one task locally, then persist the same partial fields.

        The local patch is not reverted if the store rejects the update; the
        failure is logged and recorded in ``error`` and False is returned.
        """
        if not self.owner_id:
            return False

        with self._lock:
            fields = field_codec.encode(partial)
            fields.pop("id", None)
            local = {key: value for key, value in fields.items() if key in Task.model_fields}
            current = self.get_by_id(task_id)
            if current is not None:
                try:
                    patched = Task.model_validate({**current.model_dump(), **local})
                except ValidationError as e:
                    self._fail(f"Invalid update for task {task_id}", e)
                    return False
                self._tasks = [patched if t.id == task_id else t for t in self._tasks]
            try:
                self.store.update(self.owner_id, task_id, fields)
            except StoreError as e:
                self._fail(f"Failed to update task {task_id}", e)
                return False
            return True

    def update_with_transition(self, task: Task) -> Optional[Task]:
        """Replace a task wholesale, spawning the next instance when a recurring task is completed.

        A failed update restores the collection exactly as it was. A failure to
        spawn the successor is raised, but the completion itself stays saved.
        """
        if not self.owner_id:
            return None

        with self._lock:
            snapshot = self._tasks
            prior = next((t for t in snapshot if t.id == task.id), None)
            if prior is None:
                logger.warning(f"Task {task.id} not found for update")
                raise TaskNotFoundError("Task not found.")
            self._tasks = [task if t.id == task.id else t for t in snapshot]

            try:
                self.store.update(self.owner_id, task.id, self._update_record(task))
            except StoreError as e:
                self._tasks = snapshot
                message = self._fail("Failed to update task. Please try again.", e)
                raise StoreError(message) from e

            just_completed = (
                task.status == TaskStatus.DONE
                and prior.status != TaskStatus.DONE
                and task.recurrence != Recurrence.NONE
            )
            if not just_completed:
                return task

            try:
                self._spawn_next_instance(task)
            except (StoreError, UnsupportedRecurrenceError) as e:
                self.fetch_all()
                self.error = str(e)
                raise
            self.fetch_all()
            return self.get_by_id(task.id) or task

    def _spawn_next_instance(self, completed: Task) -> Task:
        if not self.policy.supports(completed.recurrence):
            message = f"Recurrence '{completed.recurrence}' is not supported; no next instance was created."
            logger.error(f"Task {completed.id}: {message}")
            self.error = message
            raise UnsupportedRecurrenceError(message)

        draft = TaskDraft(**self.policy.next_instance_fields(completed))
        try:
            stored = self.store.insert(self._insert_record(draft))
        except StoreError as e:
            message = self._fail("Task completed, but the next occurrence could not be created.", e)
            raise StoreError(message) from e

        created = self._to_task(stored)
        logger.debug(f"Spawned task {created.id} after completing {completed.id} (series {created.recurring_template_id})")
        return created

    def delete(self, task_id: str) -> Optional[SeriesTerminationPlan]:
        """Delete a task, or terminate its series when it is recurring.

        Accepts projected-occurrence ids. Returns the termination plan that was
        applied for recurring tasks, None otherwise.
        """
        if not self.owner_id:
            return None

        with self._lock:
            real_id = resolve_projected_id(task_id)
            target = self.get_by_id(real_id)
            if target is None:
                logger.warning(f"Task {real_id} not found for deletion")
                raise TaskNotFoundError("Task not found.")

            if not target.is_recurring:
                try:
                    self.store.delete(self.owner_id, real_id)
                except StoreError as e:
                    message = self._fail("Failed to delete task. Please try again.", e)
                    raise StoreError(message) from e
                self.fetch_all()
                return None

            return self._terminate_series(target)

    def _terminate_series(self, target: Task) -> SeriesTerminationPlan:
        template_id = target.series_root_id
        try:
            records = self.store.query(
                where={"user_id": self.owner_id},
                any_of=[{"id": template_id}, {"recurring_template_id": template_id}],
            )
            if not records:
                self.fetch_all()
                return SeriesTerminationPlan()

            plan = plan_series_termination(
                [self._to_task(record) for record in records],
                start_of_day(self.clock()),
            )
            if plan.terminator is not None and plan.terminator.recurrence != Recurrence.NONE:
                self.store.update(self.owner_id, plan.terminator.id, {"recurrence": Recurrence.NONE.value})
            if plan.delete_ids:
                self.store.delete_many(self.owner_id, plan.delete_ids)
        except (StoreError, ValidationError) as e:
            message = self._fail("Failed to delete the recurring task series. Please try again.", e)
            self.fetch_all()
            self.error = message
            raise StoreError(message) from e

        logger.debug(
            f"Terminated series {template_id}: deleted {len(plan.delete_ids)}, "
            f"terminator {plan.terminator.id if plan.terminator else None}"
        )
        self.fetch_all()
        return plan

    def bulk_delete(self, task_ids: Iterable[str]) -> None:
        """Delete many tasks in one store call.

        No series handling: passing part of a recurring series leaves the rest of it alive.
        """
        ids = list(task_ids)
        if not self.owner_id or not ids:
            return

        with self._lock:
            try:
                self.store.delete_many(self.owner_id, ids)
            except StoreError as e:
                message = self._fail("Failed to delete some tasks. Please try again.", e)
                raise StoreError(message) from e
            self.fetch_all()

    def bulk_update(self, tasks: Iterable[Task]) -> None:
        """Persist many full-task updates concurrently, then reload.

        Only the first failure (in input order) is raised; the reload happens either way.
        """
        batch = list(tasks)
        if not self.owner_id or not batch:
            return

        with self._lock:
            unknown = [t.id for t in batch if self.get_by_id(t.id) is None]
            if unknown:
                logger.warning(f"Bulk update rejected, unknown tasks: {unknown}")
                raise TaskNotFoundError(f"Task not found: {unknown[0]}")
            workers = max(1, min(self.max_workers, len(batch)))
            with ThreadPoolExecutor(max_workers=workers) as pool:
                futures = [pool.submit(self.store.update, self.owner_id, t.id, self._update_record(t)) for t in batch]
            first_error = next((f.exception() for f in futures if f.exception() is not None), None)

            self.fetch_all()
            if first_error is not None:
                message = self._fail("Failed to update some tasks.", first_error)
                raise StoreError(message) from first_error

    def get_by_id(self, task_id: str) -> Optional[Task]:
        return next((t for t in self._tasks if t.id == task_id), None)
