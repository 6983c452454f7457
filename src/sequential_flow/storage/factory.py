"""Select a storage backend from settings."""

from __future__ import annotations

from sequential_flow.config.settings import Settings
from sequential_flow.errors import StorageConfigurationError
from sequential_flow.storage.base import TaskStorage, ensure_task_storage
from sequential_flow.storage.memory import InMemoryTaskStorage
from sequential_flow.storage.postgres import PostgresTaskStorage
from sequential_flow.storage.redis import RedisTaskStorage


def build_storage(settings: Settings) -> TaskStorage:
    backend = settings.storage_backend
    if backend == "memory":
        return InMemoryTaskStorage()

    if backend == "redis":
        redis_url = settings.resolved_redis_url()
        if not redis_url:
            raise StorageConfigurationError(
                "Redis storage selected but no URL is configured. "
                "Set SEQUENTIAL_FLOW_REDIS_URL or REDIS_URL."
            )
        storage = RedisTaskStorage.from_url(
            redis_url,
            key_prefix=settings.redis_key_prefix,
            fallback_ttl_s=settings.redis_fallback_ttl_s,
        )
        return ensure_task_storage(storage)

    if backend == "postgres":
        database_url = settings.resolved_database_url()
        if not database_url:
            raise StorageConfigurationError(
                "Postgres storage selected but no URL is configured. "
                "Set SEQUENTIAL_FLOW_DATABASE_URL or DATABASE_URL."
            )
        storage = PostgresTaskStorage(database_url, table_name=settings.table_name)
        storage.migrate()
        return ensure_task_storage(storage)

    raise StorageConfigurationError(f"Unknown storage backend: {backend!r}")
