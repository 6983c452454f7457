"""Redis-backed storage; expiry is enforced natively with SETEX."""

from __future__ import annotations

import json
import logging
import math
from datetime import UTC, datetime
from typing import Any

from sequential_flow.models import Task

logger = logging.getLogger(__name__)


class RedisTaskStorage:
    """Store each task as a JSON blob under `<key_prefix><task_id>`.

    The key TTL follows `task.expires_at`, so Redis reclaims stale tasks on
    its own. `fallback_ttl_s` applies only to tasks without an expiry.
    """

    def __init__(
        self,
        client: Any,
        *,
        key_prefix: str = "seq-flow:",
        fallback_ttl_s: int = 7200,
    ) -> None:
        self._client = client
        self.key_prefix = key_prefix
        self.fallback_ttl_s = fallback_ttl_s

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> RedisTaskStorage:
        if not url:
            raise ValueError("redis url is required")
        redis = cls._load_redis()
        return cls(redis.from_url(url), **kwargs)

    def key(self, task_id: str) -> str:
        return f"{self.key_prefix}{task_id}"

    def save(self, task: Task) -> None:
        ttl_s = self._ttl_seconds(task)
        if ttl_s <= 0:
            # Already past expires_at: nothing valid to keep.
            self._client.delete(self.key(task.id))
            logger.debug("Skipped saving expired task id=%s", task.id)
            return
        self._client.setex(self.key(task.id), ttl_s, json.dumps(task.to_record()))
        logger.debug("Saved task id=%s ttl_s=%s", task.id, ttl_s)

    def load(self, task_id: str) -> Task | None:
        raw = self._client.get(self.key(task_id))
        if raw is None:
            return None
        return Task.from_record(json.loads(raw))

    def delete(self, task_id: str) -> None:
        self._client.delete(self.key(task_id))

    def _ttl_seconds(self, task: Task) -> int:
        if task.expires_at is None:
            return self.fallback_ttl_s
        remaining = (task.expires_at - datetime.now(tz=UTC)).total_seconds()
        return math.ceil(remaining)

    @staticmethod
    def _load_redis() -> Any:
        try:
            import redis
        except ImportError as exc:  # pragma: no cover - exercised only without dependency
            raise RuntimeError(
                "Redis storage requires redis. "
                'Install with: python -m pip install "sequential-flow[redis]"'
            ) from exc
        return redis
