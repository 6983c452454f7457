"""Execution-engine contract."""

from sequential_flow.engine.base import EngineFactory, EngineResult, ExecutionEngine

__all__ = [
    "EngineFactory",
    "EngineResult",
    "ExecutionEngine",
]
