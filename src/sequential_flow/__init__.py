"""Pause/resume orchestration for fetch-only sandboxed code."""

from sequential_flow.engine.base import EngineFactory, EngineResult, ExecutionEngine
from sequential_flow.errors import (
    SequentialFlowError,
    StorageCapabilityError,
    StorageConfigurationError,
    TaskNotFoundError,
)
from sequential_flow.models import ExecuteRequest, FetchRequest, ResumeRequest, Task, TaskStatus
from sequential_flow.orchestrator import SequentialFlow
from sequential_flow.storage import InMemoryTaskStorage, TaskStorage

__all__ = [
    "EngineFactory",
    "EngineResult",
    "ExecuteRequest",
    "ExecutionEngine",
    "FetchRequest",
    "InMemoryTaskStorage",
    "ResumeRequest",
    "SequentialFlow",
    "SequentialFlowError",
    "StorageCapabilityError",
    "StorageConfigurationError",
    "Task",
    "TaskNotFoundError",
    "TaskStatus",
    "TaskStorage",
]
