"""Pytest fixtures and configuration for taskseries tests."""

import pytest
from datetime import datetime, timedelta
from sqlalchemy.orm import sessionmaker

from taskseries.database.database import Base, build_engine
from taskseries.database import models  # noqa: F401  (registers tables)
from taskseries.database.field_codec import decode
from taskseries.database.store import SqlTaskStore
from taskseries.engine.lifecycle import TaskLifecycleManager
from taskseries.models.task import Recurrence, Task, TaskStatus
from taskseries.models.task_factory import create_task_draft

from .fakes import FlakyTaskStore


# Fixed "now" so start-of-today is deterministic.
FIXED_NOW = datetime(2026, 10, 18, 10, 30)


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def today_start(now):
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


@pytest.fixture
def test_user_id():
    """Test user ID for multi-user testing."""
    return "test-user-123"


@pytest.fixture(scope="function")
def session_factory(tmp_path):
    """Session factory over a fresh file-backed SQLite database.

    File-backed (not :memory:) so bulk updates can write from several threads.
    """
    engine = build_engine(f"sqlite:///{tmp_path / 'tasks.db'}")
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def sql_store(session_factory):
    return SqlTaskStore(session_factory)


@pytest.fixture
def store(sql_store):
    """Store wrapper that records calls and can be told to fail."""
    return FlakyTaskStore(sql_store)


@pytest.fixture
def manager(store, test_user_id, now):
    return TaskLifecycleManager(store, test_user_id, clock=lambda: now)


@pytest.fixture
def seed_task(sql_store, test_user_id, today_start):
    """Insert a task straight into the store and return it as a Task.

    ``day`` is an offset from today; the window is 09:00-10:00 that day.
    """
    def _seed(
        title="Test Task",
        day=0,
        status=TaskStatus.TODO,
        recurrence=Recurrence.NONE,
        recurring_template_id=None,
        checklist=None,
        user_id=None,
    ) -> Task:
        start = today_start + timedelta(days=day, hours=9)
        record = sql_store.insert({
            "user_id": user_id or test_user_id,
            "title": title,
            "notes": "Test notes",
            "status": status.value,
            "start_time": start,
            "end_time": start + timedelta(hours=1),
            "checklist": checklist or [],
            "tags": [],
            "is_important": False,
            "recurrence": recurrence.value,
            "recurring_template_id": recurring_template_id,
        })
        return Task.model_validate(decode(record))
    return _seed


@pytest.fixture
def daily_series(seed_task):
    """Series rooted at T-2: T-2 and T-1 done, today and tomorrow to do."""
    root = seed_task(title="Stretch", day=-2, status=TaskStatus.DONE, recurrence=Recurrence.DAILY)
    yesterday = seed_task(
        title="Stretch", day=-1, status=TaskStatus.DONE,
        recurrence=Recurrence.DAILY, recurring_template_id=root.id,
    )
    today = seed_task(title="Stretch", day=0, recurrence=Recurrence.DAILY, recurring_template_id=root.id)
    tomorrow = seed_task(title="Stretch", day=1, recurrence=Recurrence.DAILY, recurring_template_id=root.id)
    return {"root": root, "yesterday": yesterday, "today": today, "tomorrow": tomorrow}


@pytest.fixture
def sample_draft(today_start):
    return create_task_draft(
        title="Write report",
        start_time=today_start + timedelta(hours=14),
        checklist=["outline", "draft"],
    )


@pytest.fixture
def auth_headers(test_user_id):
    from taskseries.auth.jwt import create_access_token
    return {"Authorization": f"Bearer {create_access_token(test_user_id)}"}


@pytest.fixture
def test_client(sql_store, now):
    """FastAPI test client with the manager registry bound to the test database."""
    from fastapi.testclient import TestClient
    from taskseries.api.app import app, get_registry
    from taskseries.engine.registry import TaskManagerRegistry

    registry = TaskManagerRegistry(sql_store, clock=lambda: now)
    app.dependency_overrides[get_registry] = lambda: registry

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
