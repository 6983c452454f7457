"""Contract for the restricted-language engine the orchestrator drives.

The engine itself is external. It runs code until completion, an error, or a
`fetch` call, and exposes its paused context through the mutable `paused`
attribute so the orchestrator can persist it and restore it later.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sequential_flow.models import FetchRequest


class EngineResult(BaseModel):
    """Discriminated outcome of one engine run: pause, complete, or anything else."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: str
    result: Any = None
    error: str | None = None
    state: Any = None
    fetch_request: FetchRequest | None = Field(default=None, alias="fetchRequest")

    @field_validator("error", mode="before")
    @classmethod
    def _stringify_error(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @classmethod
    def coerce(cls, raw: EngineResult | Mapping[str, Any]) -> EngineResult:
        """Accept either a model or a plain mapping with the same keys."""
        if isinstance(raw, EngineResult):
            return raw
        return cls.model_validate(dict(raw))


class ExecutionEngine(Protocol):
    paused: Any

    def initialize(self) -> None: ...

    def execute_code(self, code: str) -> EngineResult | Mapping[str, Any]: ...

    def resume_execution(
        self,
        vm_state: Any,
        response_value: Any,
    ) -> EngineResult | Mapping[str, Any]: ...

    def dispose(self) -> None: ...


# Called once per execute/resume; each call must return a fresh, unshared engine.
EngineFactory = Callable[[], ExecutionEngine]
