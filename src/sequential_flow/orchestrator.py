"""Pause/resume orchestration for restricted code whose only side effect is fetch.

Flow of one task:
- execute: run the code until it completes, fails, or reaches a fetch call.
  A paused task is saved so the caller can perform the fetch elsewhere.
- resume: reload the paused task, hand the fetch response to a fresh engine,
  and continue. Paused again -> saved again; completed or error -> deleted.

Failure policy:
- Engine failures become error-status tasks; execute/resume do not raise them.
- Resuming an unknown task id raises TaskNotFoundError.
- Storage failures propagate unchanged.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

from sequential_flow.config.settings import Settings, get_settings
from sequential_flow.engine.base import EngineFactory, EngineResult, ExecutionEngine
from sequential_flow.errors import TaskNotFoundError
from sequential_flow.models import ExecuteRequest, ResumeRequest, Task
from sequential_flow.storage.base import TaskStorage, ensure_task_storage
from sequential_flow.storage.factory import build_storage
from sequential_flow.storage.memory import InMemoryTaskStorage

logger = logging.getLogger(__name__)

_STATUS_BY_RESULT_TYPE = {"pause": "paused", "complete": "completed"}


def generate_task_id() -> str:
    return f"task-{time.time_ns() // 1_000_000}-{uuid4().hex[:12]}"


def unwrap_fetch_response(fetch_response: Any) -> Any:
    """Return `data` from a response envelope, or the value itself when bare."""
    if isinstance(fetch_response, Mapping) and "data" in fetch_response:
        return fetch_response["data"]
    return fetch_response


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def _error_message(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


def _dispose(engine: ExecutionEngine, task_id: str) -> None:
    # Release failures must not replace the outcome already computed for the task.
    try:
        engine.dispose()
    except Exception as exc:
        logger.warning("Task %s engine dispose failed: %s", task_id, exc, exc_info=True)


def _snapshot(outcome: EngineResult, engine: ExecutionEngine, **fields: Any) -> Task:
    status = _STATUS_BY_RESULT_TYPE.get(outcome.type, "error")
    if status == "paused":
        return Task(
            status="paused",
            vm_state=outcome.state,
            paused_state=engine.paused,
            fetch_request=outcome.fetch_request,
            **fields,
        )
    if status == "completed":
        return Task(status="completed", result=outcome.result, **fields)
    message = outcome.error or f"Execution ended with result type {outcome.type!r}"
    return Task(status="error", error=message, **fields)


class SequentialFlow:
    """Orchestrator context: one engine factory plus one default-storage slot.

    Create one instance at process start and pass it to whatever handles
    requests. Calls that omit `storage` use the current default.
    """

    def __init__(
        self,
        engine_factory: EngineFactory,
        *,
        storage: TaskStorage | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._engine_factory = engine_factory
        self.settings = settings or get_settings()
        self._default_storage: TaskStorage = (
            ensure_task_storage(storage) if storage is not None else InMemoryTaskStorage()
        )

    @classmethod
    def from_settings(
        cls,
        engine_factory: EngineFactory,
        settings: Settings | None = None,
    ) -> SequentialFlow:
        resolved = settings or get_settings()
        return cls(engine_factory, storage=build_storage(resolved), settings=resolved)

    @property
    def default_storage(self) -> TaskStorage:
        return self._default_storage

    def set_default_storage(self, storage: TaskStorage) -> None:
        self._default_storage = ensure_task_storage(storage)

    def _resolve_storage(self, storage: TaskStorage | None) -> TaskStorage:
        if storage is None:
            return self._default_storage
        return ensure_task_storage(storage)

    def execute(
        self,
        request: ExecuteRequest | Mapping[str, Any],
        *,
        storage: TaskStorage | None = None,
        save_to_storage: bool = True,
        ttl: int | None = None,
    ) -> Task:
        """Run code from the start; `ttl` is in milliseconds."""
        payload = (
            request if isinstance(request, ExecuteRequest) else ExecuteRequest.model_validate(request)
        )
        ttl_ms = self.settings.default_ttl_ms if ttl is None else ttl
        if ttl_ms <= 0:
            raise ValueError("ttl must be a positive number of milliseconds")
        target = self._resolve_storage(storage)

        task_id = payload.id or generate_task_id()
        fields: dict[str, Any] = {
            "id": task_id,
            "name": payload.name or task_id,
            "code": payload.code,
        }

        engine: ExecutionEngine | None = None
        try:
            engine = self._engine_factory()
            engine.initialize()
            outcome = EngineResult.coerce(engine.execute_code(payload.code))
            now = _utcnow()
            task = _snapshot(
                outcome,
                engine,
                created_at=now,
                expires_at=now + timedelta(milliseconds=ttl_ms),
                **fields,
            )
        except Exception as exc:
            logger.warning("Task %s failed during execution: %s", task_id, exc, exc_info=True)
            now = _utcnow()
            task = Task(
                status="error",
                error=_error_message(exc),
                created_at=now,
                expires_at=now + timedelta(milliseconds=ttl_ms),
                **fields,
            )
        finally:
            if engine is not None:
                _dispose(engine, task_id)

        if save_to_storage and task.status == "paused":
            target.save(task)
        logger.info("Executed task id=%s status=%s", task.id, task.status)
        return task

    def resume(
        self,
        request: ResumeRequest | Mapping[str, Any],
        *,
        storage: TaskStorage | None = None,
    ) -> Task:
        """Continue a paused task with the response to its pending fetch."""
        payload = (
            request if isinstance(request, ResumeRequest) else ResumeRequest.model_validate(request)
        )
        target = self._resolve_storage(storage)

        stored = target.load(payload.task_id)
        if stored is None:
            raise TaskNotFoundError(payload.task_id)

        fields: dict[str, Any] = {
            "id": stored.id,
            "name": stored.name,
            "code": payload.original_code or stored.code,
        }
        resume_ttl = timedelta(milliseconds=self.settings.resume_ttl_ms)

        engine: ExecutionEngine | None = None
        try:
            engine = self._engine_factory()
            engine.initialize()
            paused_state = (
                payload.paused_state if payload.paused_state is not None else stored.paused_state
            )
            if paused_state is not None:
                engine.paused = paused_state
            outcome = EngineResult.coerce(
                engine.resume_execution(
                    payload.vm_state,
                    unwrap_fetch_response(payload.fetch_response),
                )
            )
            now = _utcnow()
            task = _snapshot(outcome, engine, updated_at=now, expires_at=now + resume_ttl, **fields)
        except Exception as exc:
            logger.warning("Task %s failed during resume: %s", stored.id, exc, exc_info=True)
            now = _utcnow()
            task = Task(
                status="error",
                error=_error_message(exc),
                updated_at=now,
                expires_at=now + resume_ttl,
                **fields,
            )
        finally:
            if engine is not None:
                _dispose(engine, stored.id)

        if task.status == "paused":
            target.save(task)
        else:
            # Terminal: nothing left to resume.
            target.delete(task.id)
        logger.info("Resumed task id=%s status=%s", task.id, task.status)
        return task

    def get_task(self, task_id: str, *, storage: TaskStorage | None = None) -> Task | None:
        return self._resolve_storage(storage).load(task_id)

    def delete_task(self, task_id: str, *, storage: TaskStorage | None = None) -> None:
        self._resolve_storage(storage).delete(task_id)

    def purge_expired(self, *, storage: TaskStorage | None = None) -> int:
        """Run the backend's reclamation sweep if it has one; return tasks removed."""
        target = self._resolve_storage(storage)
        sweep = getattr(target, "purge_expired", None)
        if not callable(sweep):
            return 0
        return int(sweep())
