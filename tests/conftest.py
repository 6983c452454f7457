from __future__ import annotations

import pytest

from sequential_flow.config.settings import Settings
from sequential_flow.orchestrator import SequentialFlow
from sequential_flow.storage.memory import InMemoryTaskStorage

from tests.fakes import ScriptedEngineFactory


@pytest.fixture
def settings() -> Settings:
    return Settings(storage_backend="memory")


@pytest.fixture
def engine_factory() -> ScriptedEngineFactory:
    return ScriptedEngineFactory()


@pytest.fixture
def storage() -> InMemoryTaskStorage:
    return InMemoryTaskStorage()


@pytest.fixture
def flow(
    engine_factory: ScriptedEngineFactory,
    storage: InMemoryTaskStorage,
    settings: Settings,
) -> SequentialFlow:
    return SequentialFlow(engine_factory, storage=storage, settings=settings)
