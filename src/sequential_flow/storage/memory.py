"""In-memory storage backend; the default when nothing else is configured."""

from __future__ import annotations

import logging
import threading
from datetime import UTC, datetime

from sequential_flow.models import Task

logger = logging.getLogger(__name__)


class InMemoryTaskStorage:
    """Process-local task storage for development and tests.

    Records are deep-copied on the way in and out so callers cannot mutate
    stored engine state. Expired tasks are hidden by `load` and dropped lazily;
    `purge_expired` sweeps the rest.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, Task] = {}
        self._lock = threading.Lock()

    def save(self, task: Task) -> None:
        with self._lock:
            self._tasks[task.id] = task.model_copy(deep=True)
        logger.debug("Saved task id=%s status=%s", task.id, task.status)

    def load(self, task_id: str) -> Task | None:
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                return None
            if task.is_expired():
                del self._tasks[task_id]
                logger.debug("Dropped expired task id=%s", task_id)
                return None
            return task.model_copy(deep=True)

    def delete(self, task_id: str) -> None:
        with self._lock:
            self._tasks.pop(task_id, None)

    def list(self) -> list[Task]:
        with self._lock:
            return [task.model_copy(deep=True) for task in self._tasks.values()]

    def clear(self) -> None:
        with self._lock:
            self._tasks.clear()

    def purge_expired(self, now: datetime | None = None) -> int:
        """Delete every task whose expires_at has passed; return how many were removed."""
        moment = now or datetime.now(tz=UTC)
        with self._lock:
            expired = [task_id for task_id, task in self._tasks.items() if task.is_expired(moment)]
            for task_id in expired:
                del self._tasks[task_id]
        if expired:
            logger.info("Purged %s expired task(s) from memory", len(expired))
        return len(expired)
