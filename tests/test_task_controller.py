# tests/test_task_controller.py

from __future__ import annotations

import asyncio

import pytest

from scriptdeck.tasks.task_controller import TaskController
from scriptdeck.tasks.task_models import LogType, TaskEvent, TaskPatch, TaskStatus
from scriptdeck.tasks.task_registry import TaskRegistry
from scriptdeck.tasks.task_supervisor import ProcessSupervisor

from .conftest import PROJECT
from .fakes import FakeProcessLayer, RecordingSink, StaticProvider


def _started_logs(controller: TaskController, task_id: str) -> list[str]:
    task = controller.find_one(task_id)
    assert task is not None
    return [e.text for e in task.logs if e.text == f"Task {task_id} started"]


@pytest.mark.asyncio
async def test_end_to_end_build_scenario(
    controller: TaskController,
    provider: StaticProvider,
    process_layer: FakeProcessLayer,
    sink: RecordingSink,
) -> None:
    provider.commands = {"build": "webpack"}

    tasks = controller.list_tasks("/proj")
    assert [(t.id, t.status) for t in tasks] == [("/proj:build", TaskStatus.IDLE)]

    task = await controller.run("/proj:build")
    assert task is not None
    assert task.status == TaskStatus.RUNNING
    assert sink.of(TaskEvent.TASK_LOG_ADDED.value)[0]["text"] == "Task /proj:build started"

    process_layer.last.exit(0)
    await controller.wait("/proj:build")

    found = controller.find_one("/proj:build")
    assert found is not None and found.status == TaskStatus.DONE
    assert found.logs.snapshot()[-1].text == "Task /proj:build completed"
    statuses = [p["status"] for p in sink.of(TaskEvent.TASK_CHANGED.value)]
    assert statuses == ["running", "done"]


@pytest.mark.asyncio
async def test_run_twice_spawns_one_process(
    registry: TaskRegistry,
    provider: StaticProvider,
    sink: RecordingSink,
) -> None:
    layer = FakeProcessLayer(spawn_delay=0.01)
    supervisor = ProcessSupervisor(registry, layer, lambda project_dir: "npm")
    controller = TaskController(registry, supervisor, provider)
    controller.list_tasks(PROJECT)

    first, second = await asyncio.gather(controller.run("/proj:build"), controller.run("/proj:build"))

    assert first is second
    assert len(layer.calls) == 1
    assert _started_logs(controller, "/proj:build") == ["Task /proj:build started"]

    # A third call while still running is a plain no-op.
    again = await controller.run("/proj:build")
    assert again is first
    assert len(layer.calls) == 1

    layer.last.exit(0)
    await controller.wait("/proj:build")


def test_stop_when_not_running_is_a_noop(
    controller: TaskController,
    process_layer: FakeProcessLayer,
    sink: RecordingSink,
) -> None:
    controller.list_tasks(PROJECT)

    task = controller.stop("/proj:build")

    assert task is not None and task.status == TaskStatus.IDLE
    assert process_layer.terminated == []
    assert sink.events == []


@pytest.mark.asyncio
async def test_stop_returns_immediately_then_reports_terminated(
    controller: TaskController,
    process_layer: FakeProcessLayer,
) -> None:
    controller.list_tasks(PROJECT)
    await controller.run("/proj:build")

    task = controller.stop("/proj:build")
    assert task is not None and task.status == TaskStatus.RUNNING

    await controller.wait("/proj:build")
    assert task.status == TaskStatus.TERMINATED
    assert task.process is None
    assert task.logs.snapshot()[-1].type == LogType.WARN


@pytest.mark.asyncio
async def test_rerun_from_terminal_state_appends_logs(
    controller: TaskController,
    process_layer: FakeProcessLayer,
) -> None:
    controller.list_tasks(PROJECT)
    await controller.run("/proj:test")
    process_layer.last.exit(1)
    await controller.wait("/proj:test")
    task = controller.find_one("/proj:test")
    assert task is not None and task.status == TaskStatus.ERROR
    first_run = len(task.logs)

    await controller.run("/proj:test")
    assert task.status == TaskStatus.RUNNING
    assert len(process_layer.calls) == 2
    process_layer.last.exit(0)
    await controller.wait("/proj:test")

    assert task.status == TaskStatus.DONE
    assert len(task.logs) == first_run + 2


@pytest.mark.asyncio
async def test_rerun_can_start_from_clean_logs(
    registry: TaskRegistry,
    supervisor: ProcessSupervisor,
    provider: StaticProvider,
    process_layer: FakeProcessLayer,
) -> None:
    controller = TaskController(registry, supervisor, provider, clear_logs_on_run=True)
    controller.list_tasks(PROJECT)
    await controller.run("/proj:build")
    process_layer.last.exit(0)
    await controller.wait("/proj:build")

    await controller.run("/proj:build")
    task = controller.find_one("/proj:build")
    assert task is not None
    assert [e.text for e in task.logs] == ["Task /proj:build started"]

    process_layer.last.exit(0)
    await controller.wait("/proj:build")


@pytest.mark.asyncio
async def test_clear_logs_empties_without_notification(
    controller: TaskController,
    process_layer: FakeProcessLayer,
    sink: RecordingSink,
) -> None:
    controller.list_tasks(PROJECT)
    await controller.run("/proj:build")
    process_layer.last.emit_stdout(b"some output\n")
    process_layer.last.exit(0)
    await controller.wait("/proj:build")
    sink.clear()

    controller.clear_logs("/proj:build")

    task = controller.find_one("/proj:build")
    assert task is not None and list(task.logs) == []
    assert sink.events == []


@pytest.mark.asyncio
async def test_history_survives_removal_from_manifest(
    controller: TaskController,
    provider: StaticProvider,
    process_layer: FakeProcessLayer,
) -> None:
    controller.list_tasks(PROJECT)
    await controller.run("/proj:build")
    process_layer.last.emit_stdout(b"ok\n")
    process_layer.last.exit(0)
    await controller.wait("/proj:build")
    logs_before = controller.find_one("/proj:build").logs.snapshot()  # type: ignore[union-attr]

    provider.commands = {"test": "jest"}
    tasks = controller.list_tasks(PROJECT)

    build = next(t for t in tasks if t.id == "/proj:build")
    assert build.status == TaskStatus.DONE
    assert build.logs.snapshot() == logs_before


@pytest.mark.asyncio
async def test_unknown_ids_are_absent_not_errors(controller: TaskController) -> None:
    controller.list_tasks(PROJECT)

    assert controller.find_one("/proj:deploy") is None
    assert await controller.run("/proj:deploy") is None
    assert controller.stop("/proj:deploy") is None
    assert controller.clear_logs("/proj:deploy") is None
    assert await controller.wait("/proj:deploy") is None


def test_update_one_always_notifies(controller: TaskController, sink: RecordingSink) -> None:
    controller.list_tasks(PROJECT)

    controller.update_one("/proj:test", TaskPatch(status=TaskStatus.IDLE))

    [payload] = sink.of(TaskEvent.TASK_CHANGED.value)
    assert payload["id"] == "/proj:test"
    assert payload["status"] == "idle"


@pytest.mark.asyncio
async def test_resync_keeps_the_running_process(
    controller: TaskController,
    provider: StaticProvider,
    process_layer: FakeProcessLayer,
) -> None:
    controller.list_tasks(PROJECT)
    await controller.run("/proj:build")
    await controller.run("/proj:test")

    provider.commands = {"build": "webpack --mode production"}
    tasks = controller.list_tasks(PROJECT)

    by_id = {t.id: t for t in tasks}
    build, test = by_id["/proj:build"], by_id["/proj:test"]
    assert build.command == "webpack --mode production"
    assert build.process is process_layer.processes[0]
    assert test.process is process_layer.processes[1]
    assert build.status == test.status == TaskStatus.RUNNING

    process_layer.processes[0].exit(0)
    controller.stop("/proj:test")
    await controller.wait("/proj:build")
    await controller.wait("/proj:test")

    assert build.status == TaskStatus.DONE and build.process is None
    assert test.status == TaskStatus.TERMINATED and test.process is None
    assert controller.find_one("/proj:test") is test


@pytest.mark.asyncio
async def test_run_locks_are_released_with_dropped_tasks(
    controller: TaskController,
    provider: StaticProvider,
    process_layer: FakeProcessLayer,
) -> None:
    controller.list_tasks(PROJECT)
    await controller.run("/proj:build")
    process_layer.last.exit(0)
    await controller.wait("/proj:build")
    await controller.run("/proj:test")  # stays running

    provider.commands = {}
    controller.list_tasks(PROJECT)
    assert set(controller._run_locks) == {"/proj:build", "/proj:test"}

    controller.update_one("/proj:build", TaskPatch(status=TaskStatus.IDLE))
    controller.list_tasks(PROJECT)

    assert set(controller._run_locks) == {"/proj:test"}
    process_layer.last.exit(0)
    await controller.wait("/proj:test")
