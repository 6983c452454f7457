"""Storage backends for paused tasks."""

from sequential_flow.storage.base import ListableTaskStorage, TaskStorage, ensure_task_storage
from sequential_flow.storage.factory import build_storage
from sequential_flow.storage.firestore import FirestoreTaskStorage
from sequential_flow.storage.memory import InMemoryTaskStorage
from sequential_flow.storage.postgres import PostgresTaskStorage
from sequential_flow.storage.redis import RedisTaskStorage

__all__ = [
    "FirestoreTaskStorage",
    "InMemoryTaskStorage",
    "ListableTaskStorage",
    "PostgresTaskStorage",
    "RedisTaskStorage",
    "TaskStorage",
    "build_storage",
    "ensure_task_storage",
]
