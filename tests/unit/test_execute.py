from __future__ import annotations

import pytest
from pydantic import ValidationError

from sequential_flow.models import ExecuteRequest
from sequential_flow.orchestrator import SequentialFlow
from sequential_flow.storage.memory import InMemoryTaskStorage

from tests.fakes import FailingStorage, ScriptedEngineFactory


def test_execute_without_fetch_completes_and_stores_nothing(
    flow: SequentialFlow,
    storage: InMemoryTaskStorage,
) -> None:
    task = flow.execute({"id": "t1", "code": "const x=5; x*2"})

    assert task.status == "completed"
    assert task.result == 10
    assert task.error is None
    assert task.vm_state is None
    assert task.fetch_request is None
    assert storage.list() == []


def test_execute_with_fetch_pauses_and_persists(
    flow: SequentialFlow,
    storage: InMemoryTaskStorage,
) -> None:
    task = flow.execute({"id": "t2", "code": 'const u=fetch("u/1"); u.name'})

    assert task.status == "paused"
    assert task.fetch_request is not None
    assert task.fetch_request.url == "u/1"
    assert task.vm_state is not None
    assert task.paused_state == {"binding": "u", "fetchCount": 1}

    stored = flow.get_task("t2")
    assert stored == task
    assert storage.load("t2") == task


def test_execute_error_in_code_returns_error_task(
    flow: SequentialFlow,
    storage: InMemoryTaskStorage,
) -> None:
    task = flow.execute({"id": "t3", "code": 'throw new Error("boom")'})

    assert task.status == "error"
    assert task.error == "boom"
    assert task.result is None
    assert storage.list() == []


def test_execute_generates_id_and_defaults_name(flow: SequentialFlow) -> None:
    task = flow.execute(ExecuteRequest(code="1"))

    assert task.id.startswith("task-")
    assert task.name == task.id

    named = flow.execute({"code": "1", "name": "answer"})
    assert named.name == "answer"
    assert named.id != task.id


def test_execute_timestamps_follow_ttl(flow: SequentialFlow) -> None:
    task = flow.execute({"id": "ttl", "code": "1"}, ttl=60_000)

    assert task.created_at is not None
    assert task.expires_at is not None
    assert task.expires_at > task.created_at
    assert (task.expires_at - task.created_at).total_seconds() == pytest.approx(60, abs=1)


def test_execute_default_ttl_is_two_hours(flow: SequentialFlow) -> None:
    task = flow.execute({"id": "ttl-default", "code": "1"})

    assert (task.expires_at - task.created_at).total_seconds() == pytest.approx(7200, abs=1)


def test_execute_rejects_non_positive_ttl(flow: SequentialFlow) -> None:
    with pytest.raises(ValueError, match="ttl"):
        flow.execute({"code": "1"}, ttl=0)


def test_execute_rejects_empty_code(flow: SequentialFlow) -> None:
    with pytest.raises(ValidationError):
        flow.execute({"id": "empty", "code": ""})


def test_execute_respects_save_to_storage_flag(
    flow: SequentialFlow,
    storage: InMemoryTaskStorage,
) -> None:
    task = flow.execute({"id": "nosave", "code": 'fetch("api/data")'}, save_to_storage=False)

    assert task.status == "paused"
    assert storage.load("nosave") is None


def test_execute_uses_explicit_storage_over_default(
    flow: SequentialFlow,
    storage: InMemoryTaskStorage,
) -> None:
    other = InMemoryTaskStorage()
    flow.execute({"id": "t4", "code": 'const x = 10; fetch("api/data"); x'}, storage=other)

    loaded = other.load("t4")
    assert loaded is not None
    assert loaded.status == "paused"
    assert storage.load("t4") is None


@pytest.mark.parametrize("stage", ["initialize", "execute"])
def test_execute_absorbs_engine_failures(
    stage: str,
    storage: InMemoryTaskStorage,
    settings,
) -> None:
    factory = ScriptedEngineFactory(fail_on=(stage,))
    flow = SequentialFlow(factory, storage=storage, settings=settings)

    task = flow.execute({"id": f"fail-{stage}", "code": 'fetch("x")'})

    assert task.status == "error"
    assert task.error in {"engine failed to start", "engine crashed"}
    assert task.vm_state is None
    assert storage.list() == []
    assert [engine.dispose_calls for engine in factory.engines] == [1]


def test_execute_absorbs_engine_factory_failure(storage: InMemoryTaskStorage, settings) -> None:
    def broken_factory():
        raise OSError("sandbox unavailable")

    flow = SequentialFlow(broken_factory, storage=storage, settings=settings)
    task = flow.execute({"id": "no-engine", "code": "1"})

    assert task.status == "error"
    assert task.error == "sandbox unavailable"


def test_execute_uses_exception_type_when_message_is_empty(
    storage: InMemoryTaskStorage,
    settings,
) -> None:
    class SilentEngine:
        paused = None

        def initialize(self) -> None:
            raise KeyError()

        def execute_code(self, code):
            raise AssertionError("not reached")

        def resume_execution(self, vm_state, response_value):
            raise AssertionError("not reached")

        def dispose(self) -> None:
            return None

    flow = SequentialFlow(SilentEngine, storage=storage, settings=settings)
    task = flow.execute({"id": "silent", "code": "1"})

    assert task.status == "error"
    assert task.error == "KeyError"


def test_execute_maps_unknown_result_type_to_error(storage: InMemoryTaskStorage, settings) -> None:
    class OddEngine:
        paused = None

        def initialize(self) -> None:
            return None

        def execute_code(self, code):
            return {"type": "timeout"}

        def resume_execution(self, vm_state, response_value):
            raise AssertionError("not reached")

        def dispose(self) -> None:
            return None

    flow = SequentialFlow(OddEngine, storage=storage, settings=settings)
    task = flow.execute({"id": "odd", "code": "1"})

    assert task.status == "error"
    assert "timeout" in task.error


def test_execute_pause_without_fetch_request_becomes_error(
    storage: InMemoryTaskStorage,
    settings,
) -> None:
    class IncompletePauseEngine:
        paused = None

        def initialize(self) -> None:
            return None

        def execute_code(self, code):
            self.paused = {"at": 1}
            return {"type": "pause", "state": {"pc": 1}}

        def resume_execution(self, vm_state, response_value):
            raise AssertionError("not reached")

        def dispose(self) -> None:
            return None

    flow = SequentialFlow(IncompletePauseEngine, storage=storage, settings=settings)
    task = flow.execute({"id": "incomplete", "code": "1"})

    assert task.status == "error"
    assert "fetch_request" in task.error
    assert storage.list() == []


def test_execute_disposes_engine_exactly_once(
    flow: SequentialFlow,
    engine_factory: ScriptedEngineFactory,
) -> None:
    flow.execute({"code": "1"})
    flow.execute({"code": 'fetch("a")'})
    flow.execute({"code": 'throw new Error("x")'})

    assert [engine.dispose_calls for engine in engine_factory.engines] == [1, 1, 1]


def test_execute_propagates_storage_failures(engine_factory, settings) -> None:
    flow = SequentialFlow(engine_factory, storage=FailingStorage(), settings=settings)

    with pytest.raises(ConnectionError):
        flow.execute({"id": "down", "code": 'fetch("a")'})

    assert engine_factory.engines[0].dispose_calls == 1


def test_execute_returns_outcome_when_dispose_fails(
    storage: InMemoryTaskStorage,
    settings,
) -> None:
    factory = ScriptedEngineFactory(fail_on=("dispose",))
    flow = SequentialFlow(factory, storage=storage, settings=settings)

    done = flow.execute({"id": "x", "code": "1"})
    paused = flow.execute({"id": "y", "code": 'fetch("a")'})

    assert done.status == "completed"
    assert done.result == 1
    assert paused.status == "paused"
    assert storage.load("y") == paused
    assert [engine.dispose_calls for engine in factory.engines] == [1, 1]


def test_execute_reports_non_string_engine_error(storage: InMemoryTaskStorage, settings) -> None:
    class StructuredErrorEngine:
        paused = None

        def initialize(self) -> None:
            return None

        def execute_code(self, code):
            return {"type": "error", "error": {"code": 500}}

        def resume_execution(self, vm_state, response_value):
            raise AssertionError("not reached")

        def dispose(self) -> None:
            return None

    flow = SequentialFlow(StructuredErrorEngine, storage=storage, settings=settings)
    task = flow.execute({"id": "structured", "code": "1"})

    assert task.status == "error"
    assert task.error == "{'code': 500}"
