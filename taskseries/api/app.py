"""FastAPI web application for taskseries."""

import os
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, status
from pydantic import BaseModel, Field

from taskseries.auth.dependencies import get_current_user_id
from taskseries.database.database import SessionLocal, init_db
from taskseries.database.store import SqlTaskStore
from taskseries.engine.errors import (
    StoreError,
    TaskLifecycleError,
    TaskNotFoundError,
    UnsupportedRecurrenceError,
)
from taskseries.engine.lifecycle import TaskLifecycleManager
from taskseries.engine.registry import TaskManagerRegistry
from taskseries.models.constants import DEFAULT_BULK_UPDATE_MAX_WORKERS, DEFAULT_MAX_MANAGERS
from taskseries.models.task import Task, TaskDraft, TaskPatch
from taskseries.models.task_factory import resolve_projected_id

app = FastAPI(
    title="taskseries API",
    description="Recurring task lifecycle management",
    version="0.1.0",
)

_registry: Optional[TaskManagerRegistry] = None


def get_registry() -> TaskManagerRegistry:
    """Process-wide manager registry backed by the configured database."""
    global _registry
    if _registry is None:
        init_db()
        max_workers = int(os.getenv("BULK_UPDATE_MAX_WORKERS", str(DEFAULT_BULK_UPDATE_MAX_WORKERS)))
        max_managers = int(os.getenv("MAX_CACHED_MANAGERS", str(DEFAULT_MAX_MANAGERS)))
        _registry = TaskManagerRegistry(
            SqlTaskStore(SessionLocal),
            max_workers=max_workers,
            max_managers=max_managers,
        )
    return _registry


def get_manager(
    user_id: str = Depends(get_current_user_id),
    registry: TaskManagerRegistry = Depends(get_registry),
) -> TaskLifecycleManager:
    return registry.get(user_id)


# Response/request models
class TaskResponse(BaseModel):
    task: Task


class TaskListResponse(BaseModel):
    tasks: List[Task]


class PatchResponse(BaseModel):
    task: Optional[Task]
    persisted: bool


class DeleteResponse(BaseModel):
    deleted_ids: List[str] = Field(default_factory=list)
    terminated_id: Optional[str] = None


class BulkDeleteRequest(BaseModel):
    ids: List[str]


class BulkUpdateRequest(BaseModel):
    tasks: List[Task]


def _http_error(e: TaskLifecycleError) -> HTTPException:
    if isinstance(e, TaskNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, UnsupportedRecurrenceError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    if isinstance(e, StoreError):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "healthy", "version": "0.1.0"}


@app.get("/tasks", response_model=TaskListResponse)
def list_tasks(manager: TaskLifecycleManager = Depends(get_manager)):
    """Reload and return every task of the current user."""
    tasks = manager.fetch_all()
    if manager.error:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=manager.error)
    return TaskListResponse(tasks=tasks)


@app.get("/tasks/{task_id}", response_model=TaskResponse)
def get_task(task_id: str, manager: TaskLifecycleManager = Depends(get_manager)):
    task = manager.get_by_id(task_id)
    if task is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found.")
    return TaskResponse(task=task)


@app.post("/tasks", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
def create_task(draft: TaskDraft, manager: TaskLifecycleManager = Depends(get_manager)):
    try:
        task = manager.add(draft)
    except TaskLifecycleError as e:
        raise _http_error(e)
    return TaskResponse(task=task)


@app.patch("/tasks/{task_id}", response_model=PatchResponse)
def patch_task(task_id: str, patch: TaskPatch, manager: TaskLifecycleManager = Depends(get_manager)):
    """Partial update; the local change is kept even when the store rejects it."""
    if manager.get_by_id(task_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found.")
    persisted = manager.update(task_id, patch.to_fields())
    return PatchResponse(task=manager.get_by_id(task_id), persisted=persisted)


@app.put("/tasks/{task_id}", response_model=TaskResponse)
def replace_task(task_id: str, task: Task, manager: TaskLifecycleManager = Depends(get_manager)):
    """Full update; completing a recurring task creates its next occurrence."""
    if task.id != task_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Task id does not match path")
    try:
        updated = manager.update_with_transition(task)
    except TaskLifecycleError as e:
        raise _http_error(e)
    return TaskResponse(task=updated)


@app.delete("/tasks/{task_id}", response_model=DeleteResponse)
def delete_task(task_id: str, manager: TaskLifecycleManager = Depends(get_manager)):
    """Delete a task; recurring tasks terminate their series but keep completed history."""
    try:
        plan = manager.delete(task_id)
    except TaskLifecycleError as e:
        raise _http_error(e)
    if plan is None:
        return DeleteResponse(deleted_ids=[resolve_projected_id(task_id)])
    return DeleteResponse(
        deleted_ids=plan.delete_ids,
        terminated_id=plan.terminator.id if plan.terminator else None,
    )


@app.post("/tasks/bulk-delete", response_model=TaskListResponse)
def bulk_delete_tasks(request: BulkDeleteRequest, manager: TaskLifecycleManager = Depends(get_manager)):
    try:
        manager.bulk_delete(request.ids)
    except TaskLifecycleError as e:
        raise _http_error(e)
    return TaskListResponse(tasks=manager.tasks)


@app.post("/tasks/bulk-update", response_model=TaskListResponse)
def bulk_update_tasks(request: BulkUpdateRequest, manager: TaskLifecycleManager = Depends(get_manager)):
    try:
        manager.bulk_update(request.tasks)
    except TaskLifecycleError as e:
        raise _http_error(e)
    return TaskListResponse(tasks=manager.tasks)
