"""Pydantic models for tasks and the requests that drive them.

Terms used in this file:
- Task: one pause/resume-capable execution and everything needed to continue it.
- vm_state / paused_state: engine checkpoints. They are opaque here and are
  stored and handed back exactly as the engine produced them.
- Record: the flat JSON document a persistent storage writes (camelCase keys).
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

# Task lifecycle states. Only "paused" tasks live in storage between calls.
TaskStatus = Literal["running", "paused", "completed", "error"]


class CamelModel(BaseModel):
    """Accepts snake_case or camelCase keys and dumps camelCase by alias."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FetchRequest(CamelModel):
    """Pending network call the caller must perform before resuming."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: str | int | None = None
    url: str
    options: dict[str, Any] = Field(default_factory=dict)


class Task(CamelModel):
    """Full snapshot of one task; every execute/resume call produces a new one."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    name: str
    code: str
    status: TaskStatus
    result: Any = None
    error: str | None = None
    vm_state: Any = None
    paused_state: Any = None
    fetch_request: FetchRequest | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    expires_at: datetime | None = None

    @model_validator(mode="before")
    @classmethod
    def _default_name(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("name"):
            data = {**data, "name": data.get("id")}
        return data

    @field_validator("created_at", "updated_at", "expires_at")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        # Naive timestamps in foreign records are UTC.
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @model_validator(mode="after")
    def _check_status_fields(self) -> Task:
        if self.status == "paused":
            missing = [
                field
                for field in ("vm_state", "paused_state", "fetch_request")
                if getattr(self, field) is None
            ]
            if missing:
                raise ValueError(f"paused task requires {', '.join(missing)}")
        elif self.status == "completed":
            unexpected = [
                field
                for field in ("error", "vm_state", "paused_state", "fetch_request")
                if getattr(self, field) is not None
            ]
            if unexpected:
                raise ValueError(f"completed task must not carry {', '.join(unexpected)}")
        elif self.status == "error":
            if not self.error:
                raise ValueError("error task requires a non-empty error message")
            unexpected = [
                field
                for field in ("result", "vm_state", "paused_state", "fetch_request")
                if getattr(self, field) is not None
            ]
            if unexpected:
                raise ValueError(f"error task must not carry {', '.join(unexpected)}")
        return self

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return self.expires_at <= (now or datetime.now(tz=UTC))

    def to_record(self) -> dict[str, Any]:
        """Serialize to the flat camelCase document persistent storages write."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Task:
        return cls.model_validate(record)


class ExecuteRequest(CamelModel):
    """Input for SequentialFlow.execute."""

    id: str | None = None
    name: str | None = None
    # min_length rejects empty source before an engine is acquired.
    code: str = Field(min_length=1)


class ResumeRequest(CamelModel):
    """Input for SequentialFlow.resume, built from a previously paused task."""

    task_id: str = Field(min_length=1)
    vm_state: Any
    paused_state: Any = None
    original_code: str | None = None
    # Either the bare response value or an envelope such as {"data": value, ...}.
    fetch_response: Any
