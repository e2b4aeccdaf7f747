"""Per-owner lifecycle manager registry used by the API."""

import logging
import threading
from collections import OrderedDict
from datetime import datetime
from typing import Callable, Optional

from taskseries.database.store import TaskStoreClient
from taskseries.engine.lifecycle import TaskLifecycleManager
from taskseries.models.constants import DEFAULT_BULK_UPDATE_MAX_WORKERS, DEFAULT_MAX_MANAGERS
from taskseries.recurrence.policy import RecurrencePolicy

logger = logging.getLogger(__name__)


class TaskManagerRegistry:
    """Hands out one TaskLifecycleManager per owner, loading it on first use.

    At most ``max_managers`` managers are kept; the least recently used one is
    dropped when a new owner arrives and is reloaded from the store if that
    owner comes back.
    """

    def __init__(
        self,
        store: TaskStoreClient,
        policy: Optional[RecurrencePolicy] = None,
        clock: Callable[[], datetime] = datetime.now,
        max_workers: int = DEFAULT_BULK_UPDATE_MAX_WORKERS,
        max_managers: int = DEFAULT_MAX_MANAGERS,
    ):
        if max_managers < 1:
            raise ValueError("max_managers must be at least 1")
        self.store = store
        self.policy = policy
        self.clock = clock
        self.max_workers = max_workers
        self.max_managers = max_managers
        self._managers: "OrderedDict[str, TaskLifecycleManager]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._managers)

    def get(self, owner_id: str) -> TaskLifecycleManager:
        with self._lock:
            manager = self._managers.get(owner_id)
            if manager is not None:
                self._managers.move_to_end(owner_id)
                return manager

            manager = TaskLifecycleManager(
                self.store,
                owner_id,
                policy=self.policy,
                clock=self.clock,
                max_workers=self.max_workers,
            )
            self._managers[owner_id] = manager
            logger.debug(f"Created task manager for user {owner_id}")
            while len(self._managers) > self.max_managers:
                evicted, _ = self._managers.popitem(last=False)
                logger.debug(f"Evicted task manager for user {evicted}")
            manager.fetch_all()
            return manager

    def clear(self) -> None:
        with self._lock:
            self._managers.clear()
