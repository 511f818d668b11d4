# src/scriptdeck/tasks/task_registry.py

from __future__ import annotations

import logging

from ..core.ports import CommandProvider, NotificationSink
from .log_buffer import MAX_LOGS
from .task_models import LogType, Task, TaskEvent, TaskLog, TaskPatch, TaskStatus, make_task_id

logger = logging.getLogger(__name__)


def _require_project_dir(project_dir: str) -> str:
    if not isinstance(project_dir, str) or not project_dir:
        raise ValueError(f"project_dir must be a non-empty string (got {project_dir!r})")
    return project_dir


def _require_task_id(task_id: str) -> str:
    if not isinstance(task_id, str) or not task_id:
        raise ValueError(f"task_id must be a non-empty string (got {task_id!r})")
    return task_id


class TaskRegistry:
    """
    In-memory task registry, partitioned by project directory.

    Each project keeps an ordered task list; an id index spans all projects so
    lookups by task id do not depend on the active project.

    Mutations that observers care about (status/process updates, log appends)
    are published to the notification sink.
    """

    def __init__(self, sink: NotificationSink, *, max_logs: int = MAX_LOGS) -> None:
        self._sink = sink
        self._max_logs = int(max_logs)
        self._projects: dict[str, list[Task]] = {}
        self._index: dict[str, Task] = {}

    # ---- reads ----

    def tasks_for(self, project_dir: str) -> list[Task]:
        return list(self._projects.get(_require_project_dir(project_dir), []))

    def find(self, task_id: str) -> Task | None:
        return self._index.get(_require_task_id(task_id))

    def running_tasks(self) -> list[Task]:
        return [t for t in self._index.values() if t.process is not None]

    def contains(self, task_id: str) -> bool:
        return task_id in self._index

    def project_dirs(self) -> list[str]:
        return list(self._projects)

    # ---- synchronization ----

    def synchronize(self, project_dir: str, provider: CommandProvider) -> list[Task]:
        """
        Reconcile the project's task list with the provider's definitions.

        - known ids: name/command refreshed in place (status, logs, process kept)
        - unknown names: new idle tasks, appended after the retained ones
        - ids the provider no longer lists: dropped only while idle
        """
        project_dir = _require_project_dir(project_dir)
        current = self._projects.get(project_dir, [])

        try:
            commands = provider.read_commands(project_dir)
        except Exception:
            logger.exception("Command provider failed project=%s; keeping %d known task(s)", project_dir, len(current))
            return list(current)

        if commands is None:
            logger.debug("No task definitions for project=%s", project_dir)
            return list(current)

        by_id = {t.id: t for t in current}
        listed: set[str] = set()
        created: list[Task] = []

        for name, command in commands.items():
            if not isinstance(name, str) or not name:
                logger.warning("Skipping unnamed script project=%s command=%r", project_dir, command)
                continue
            task_id = make_task_id(project_dir, name)
            listed.add(task_id)
            existing = by_id.get(task_id)
            if existing is not None:
                existing.name = name
                existing.command = command
            else:
                created.append(Task.create(project_dir, name, command, max_logs=self._max_logs))

        kept = [t for t in current if t.id in listed or t.status != TaskStatus.IDLE]
        for task in current:
            if task.id not in listed and task.status == TaskStatus.IDLE and self._index.get(task.id) is task:
                del self._index[task.id]

        result = kept + created
        for task in result:
            # "/a:b" + "c" and "/a" + "b:c" share an id; the first one indexed keeps it.
            owner = self._index.setdefault(task.id, task)
            if owner is not task and task in created:
                logger.warning("Task id %s already belongs to project=%s; not indexed", task.id, owner.project_dir)
        self._projects[project_dir] = result

        if created or len(kept) != len(current):
            logger.info(
                "Synchronized project=%s tasks=%d (new=%d dropped=%d)",
                project_dir, len(result), len(created), len(current) - len(kept),
            )
        return list(result)

    # ---- mutations ----

    def update(self, task_id: str, patch: TaskPatch) -> Task | None:
        task = self.find(task_id)
        if task is None:
            return None
        patch.apply(task)
        self._sink.publish(TaskEvent.TASK_CHANGED.value, task.snapshot())
        return task

    def add_log(self, task_id: str, log_type: LogType, text: str) -> TaskLog | None:
        task = self.find(task_id)
        if task is None:
            return None
        entry = TaskLog(task_id=task.id, type=log_type, text=text)
        task.logs.append(entry)
        self._sink.publish(TaskEvent.TASK_LOG_ADDED.value, entry.to_dict())
        return entry

    def clear_logs(self, task_id: str) -> Task | None:
        task = self.find(task_id)
        if task is None:
            return None
        task.logs.clear()
        return task
