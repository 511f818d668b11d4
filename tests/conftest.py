# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from scriptdeck.cli.bootstrap import create_initial_state
from scriptdeck.core.state import AppState
from scriptdeck.tasks.task_controller import TaskController
from scriptdeck.tasks.task_registry import TaskRegistry
from scriptdeck.tasks.task_supervisor import ProcessSupervisor

from .fakes import FakeProcessLayer, RecordingSink, StaticProvider

PROJECT = "/proj"


@pytest.fixture()
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture()
def provider() -> StaticProvider:
    return StaticProvider({"build": "webpack", "test": "jest"})


@pytest.fixture()
def process_layer() -> FakeProcessLayer:
    return FakeProcessLayer()


@pytest.fixture()
def registry(sink: RecordingSink) -> TaskRegistry:
    return TaskRegistry(sink)


@pytest.fixture()
def supervisor(registry: TaskRegistry, process_layer: FakeProcessLayer) -> ProcessSupervisor:
    return ProcessSupervisor(registry, process_layer, lambda project_dir: "npm")


@pytest.fixture()
def controller(
    registry: TaskRegistry,
    supervisor: ProcessSupervisor,
    provider: StaticProvider,
) -> TaskController:
    return TaskController(registry, supervisor, provider)


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with the bootstrap.

    We intentionally use a SimpleNamespace rather than the env-driven Settings,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="scriptdeck-test",
        log_level="INFO",
        data_dir=tmp_path / "data",
        project_dir=Path(PROJECT),
        max_logs=50,
        package_manager="",
        clear_logs_on_run=False,
        read_chunk_size=1024,
        console_echo_output=True,
    )


@pytest.fixture()
def state(settings: SimpleNamespace, provider: StaticProvider, process_layer: FakeProcessLayer) -> AppState:
    """AppState wired with deterministic fakes instead of package.json and real processes."""
    return create_initial_state(
        settings=settings,
        provider=provider,
        process_layer=process_layer,
        resolve_command=lambda project_dir: "npm",
    )
