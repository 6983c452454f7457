"""Failure types raised to callers of the orchestrator.

Engine failures never appear here: they are returned as error-status tasks.
What is raised is either a missing task identity or a mis-wired storage.
"""

from __future__ import annotations


class SequentialFlowError(Exception):
    """Base class for errors raised by sequential_flow."""


class TaskNotFoundError(SequentialFlowError, LookupError):
    """Resume was requested for a task id that storage does not hold."""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task {task_id} not found in storage")
        self.task_id = task_id


class StorageCapabilityError(SequentialFlowError, TypeError):
    """A storage object is missing one of the required methods."""

    def __init__(self, storage: object, missing: list[str]) -> None:
        names = ", ".join(missing)
        super().__init__(f"{type(storage).__name__} is not a task storage (missing: {names})")
        self.missing = missing


class StorageConfigurationError(SequentialFlowError, ValueError):
    """Configured storage backend cannot be built."""
