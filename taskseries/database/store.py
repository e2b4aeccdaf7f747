"""Task store client: CRUD over store records in the ``tasks`` collection."""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Protocol
import uuid

from sqlalchemy import asc, desc, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from taskseries.database.models import TaskDB
from taskseries.engine.errors import StoreError

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


class TaskStoreClient(Protocol):
    """Persistence contract the lifecycle manager depends on.

    Records are keyed by store field names (snake_case).
    """

    def query(
        self,
        where: Optional[Mapping[str, Any]] = None,
        any_of: Optional[List[Mapping[str, Any]]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Record]:
        ...

    def insert(self, record: Record) -> Record:
        ...

    def update(self, user_id: str, task_id: str, partial: Record) -> None:
        ...

    def delete(self, user_id: str, task_id: str) -> None:
        ...

    def delete_many(self, user_id: str, task_ids: Iterable[str]) -> None:
        ...


class SqlTaskStore:
    """SQLAlchemy-backed task store.

    Every call opens its own session, so the store can be shared across the
    worker threads used by bulk updates.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def _column(self, field: str):
        if field not in TaskDB.field_names():
            raise StoreError(f"Unknown task field: {field}")
        return getattr(TaskDB, field)

    def _condition(self, field: str, value: Any):
        column = self._column(field)
        if isinstance(value, (list, tuple, set, frozenset)):
            return column.in_(list(value))
        if value is None:
            return column.is_(None)
        return column == value

    def query(
        self,
        where: Optional[Mapping[str, Any]] = None,
        any_of: Optional[List[Mapping[str, Any]]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Record]:
        """Return records matching every ``where`` clause and at least one ``any_of`` clause."""
        conditions = [self._condition(field, value) for field, value in (where or {}).items()]
        if any_of:
            conditions.append(
                or_(*[self._condition(field, value) for clause in any_of for field, value in clause.items()])
            )
        ordering = None
        if order_by:
            column = self._column(order_by)
            ordering = desc(column) if descending else asc(column)

        db = self.session_factory()
        try:
            q = db.query(TaskDB).filter(*conditions)
            if ordering is not None:
                q = q.order_by(ordering)
            return [row.to_record() for row in q.all()]
        except SQLAlchemyError as e:
            logger.error(f"Failed to query tasks: {type(e).__name__}: {str(e)}")
            raise StoreError("Task store query failed") from e
        finally:
            db.close()

    def insert(self, record: Record) -> Record:
        """Insert a record; ``id`` and ``created_at`` are always assigned here."""
        values = dict(record)
        values["id"] = str(uuid.uuid4())
        values["created_at"] = datetime.utcnow()
        unknown = set(values) - TaskDB.field_names()
        if unknown:
            raise StoreError(f"Unknown task fields: {', '.join(sorted(unknown))}")

        db = self.session_factory()
        try:
            row = TaskDB.from_record(values)
            db.add(row)
            db.commit()
            db.refresh(row)
            logger.debug(f"Inserted task {row.id}: {row.title[:50]}")
            return row.to_record()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to insert task: {type(e).__name__}: {str(e)}")
            raise StoreError("Task store insert failed") from e
        finally:
            db.close()

    def update(self, user_id: str, task_id: str, partial: Record) -> None:
        """Apply a partial update to one record owned by user_id."""
        values = {key: value for key, value in partial.items() if key != "id"}
        unknown = set(values) - TaskDB.field_names()
        if unknown:
            raise StoreError(f"Unknown task fields: {', '.join(sorted(unknown))}")
        # created_at is set once at insert
        values.pop("created_at", None)
        converted = TaskDB.from_record(values)

        db = self.session_factory()
        try:
            row = db.query(TaskDB).filter(
                TaskDB.id == task_id,
                TaskDB.user_id == user_id,
            ).first()
            if row is None:
                raise StoreError(f"Task {task_id} not found in store")
            if "user_id" in values and values["user_id"] != row.user_id:
                raise StoreError(f"Owner of task {task_id} cannot be changed")
            for key in values:
                setattr(row, key, getattr(converted, key))
            db.commit()
            logger.debug(f"Updated task {task_id}: {sorted(values)}")
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to update task {task_id}: {type(e).__name__}: {str(e)}")
            raise StoreError("Task store update failed") from e
        finally:
            db.close()

    def delete(self, user_id: str, task_id: str) -> None:
        """Permanently delete one record owned by user_id (a missing id is not an error)."""
        db = self.session_factory()
        try:
            db.query(TaskDB).filter(
                TaskDB.id == task_id,
                TaskDB.user_id == user_id,
            ).delete(synchronize_session=False)
            db.commit()
            logger.debug(f"Deleted task {task_id}")
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to delete task {task_id}: {type(e).__name__}: {str(e)}")
            raise StoreError("Task store delete failed") from e
        finally:
            db.close()

    def delete_many(self, user_id: str, task_ids: Iterable[str]) -> None:
        """Permanently delete a set of records owned by user_id in one statement.

        Ids belonging to other owners are left untouched.
        """
        ids = list(dict.fromkeys(task_ids))
        if not ids:
            return
        db = self.session_factory()
        try:
            affected = (
                db.query(TaskDB)
                .filter(
                    TaskDB.user_id == user_id,
                    TaskDB.id.in_(ids),
                )
                .delete(synchronize_session=False)
            )
            db.commit()
            logger.debug(f"Deleted {affected} tasks for user {user_id}")
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to bulk delete tasks: {type(e).__name__}: {str(e)}")
            raise StoreError("Task store bulk delete failed") from e
        finally:
            db.close()
