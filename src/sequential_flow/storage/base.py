"""Storage contract for paused tasks.

Storage is a waiting room for paused tasks, not an execution log: the
orchestrator saves a task when it pauses and deletes it once it completes or
fails. Adapters treat a task as an opaque record keyed by `task.id`.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from sequential_flow.errors import StorageCapabilityError
from sequential_flow.models import Task

REQUIRED_METHODS = ("save", "load", "delete")
OPTIONAL_METHODS = ("list", "clear")


@runtime_checkable
class TaskStorage(Protocol):
    def save(self, task: Task) -> None:
        """Upsert by task.id; saving the same id again overwrites."""
        ...

    def load(self, task_id: str) -> Task | None:
        """Return the stored task, or None when absent or expired."""
        ...

    def delete(self, task_id: str) -> None:
        """Remove the task; a missing id is a no-op."""
        ...


@runtime_checkable
class ListableTaskStorage(TaskStorage, Protocol):
    def list(self) -> list[Task]: ...

    def clear(self) -> None: ...


def ensure_task_storage(storage: object) -> TaskStorage:
    """Check the save/load/delete capability set when a storage is wired in."""
    missing = [name for name in REQUIRED_METHODS if not callable(getattr(storage, name, None))]
    if missing:
        raise StorageCapabilityError(storage, missing)
    return storage  # type: ignore[return-value]
