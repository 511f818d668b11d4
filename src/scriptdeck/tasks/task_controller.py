# src/scriptdeck/tasks/task_controller.py

from __future__ import annotations

import asyncio
import logging

from ..core.ports import CommandProvider
from .task_models import Task, TaskPatch
from .task_registry import TaskRegistry
from .task_supervisor import ProcessSupervisor

logger = logging.getLogger(__name__)


class TaskController:
    """
    Public task operations used by the UI layer.

    Lookups return None for unknown ids. run() on a running task and stop() on
    a task that is not running are no-ops that return the task unchanged.
    """

    def __init__(
            self,
            registry: TaskRegistry,
            supervisor: ProcessSupervisor,
            provider: CommandProvider,
            *,
            clear_logs_on_run: bool = False,
    ) -> None:
        self._registry = registry
        self._supervisor = supervisor
        self._provider = provider
        self._clear_logs_on_run = clear_logs_on_run
        self._run_locks: dict[str, asyncio.Lock] = {}

    def list_tasks(self, project_dir: str) -> list[Task]:
        tasks = self._registry.synchronize(project_dir, self._provider)
        self._drop_stale_locks()
        return tasks

    def find_one(self, task_id: str) -> Task | None:
        return self._registry.find(task_id)

    def update_one(self, task_id: str, patch: TaskPatch) -> Task | None:
        return self._registry.update(task_id, patch)

    async def run(self, task_id: str) -> Task | None:
        task = self.find_one(task_id)
        if task is None or task.is_running:
            return task

        # Launching awaits the process layer; a second run() for the same task
        # must see the first one's status, not race it.
        lock = self._run_locks.setdefault(task.id, asyncio.Lock())
        async with lock:
            if task.is_running:
                return task
            if self._clear_logs_on_run and len(task.logs):
                self._registry.clear_logs(task.id)
            return await self._supervisor.spawn(task)

    def stop(self, task_id: str) -> Task | None:
        task = self.find_one(task_id)
        if task is not None and task.is_running:
            self._supervisor.terminate(task)
        return task

    def clear_logs(self, task_id: str) -> Task | None:
        return self._registry.clear_logs(task_id)

    def _drop_stale_locks(self) -> None:
        for task_id in [k for k, lock in self._run_locks.items() if not lock.locked()]:
            if not self._registry.contains(task_id):
                del self._run_locks[task_id]

    async def wait(self, task_id: str) -> Task | None:
        """Wait for the current run of the task (if any) to finish."""
        await self._supervisor.join(task_id)
        return self.find_one(task_id)
