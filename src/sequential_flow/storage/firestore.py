"""Document-store backend over a Firestore-style client."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sequential_flow.models import Task

logger = logging.getLogger(__name__)


class FirestoreTaskStorage:
    """Store each task as one document in `collection_name`, keyed by task id.

    `db` is any client exposing `collection(name).document(id)` with
    `set`/`get`/`delete` (for example `google.cloud.firestore.Client`).
    Documents do not expire on their own; expired ones are ignored by `load`
    and removed by `purge_expired`.
    """

    def __init__(self, db: Any, collection_name: str = "sequential_flow_tasks") -> None:
        self._db = db
        self.collection_name = collection_name

    def _collection(self) -> Any:
        return self._db.collection(self.collection_name)

    def save(self, task: Task) -> None:
        self._collection().document(task.id).set(task.to_record())
        logger.debug("Saved task id=%s status=%s", task.id, task.status)

    def load(self, task_id: str) -> Task | None:
        snapshot = self._collection().document(task_id).get()
        if not snapshot.exists:
            return None
        task = Task.from_record(snapshot.to_dict())
        if task.is_expired():
            return None
        return task

    def delete(self, task_id: str) -> None:
        self._collection().document(task_id).delete()

    def purge_expired(self, now: datetime | None = None) -> int:
        removed = 0
        for snapshot in self._collection().stream():
            task = Task.from_record(snapshot.to_dict())
            if task.is_expired(now):
                snapshot.reference.delete()
                removed += 1
        if removed:
            logger.info("Purged %s expired task(s) from %s", removed, self.collection_name)
        return removed
