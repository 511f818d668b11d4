# src/scriptdeck/tasks/task_models.py

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from ..core.ports import ProcessHandle
from .log_buffer import MAX_LOGS, LogBuffer


class TaskStatus(StrEnum):
    """
    Task lifecycle status.

    idle -> running -> done | error | terminated, and back to running on re-run.
    """

    IDLE = "idle"
    RUNNING = "running"
    DONE = "done"
    ERROR = "error"
    TERMINATED = "terminated"


class LogType(StrEnum):
    INFO = "info"
    STDOUT = "stdout"
    STDERR = "stderr"
    WARN = "warn"
    ERROR = "error"
    DONE = "done"


class TaskEvent(StrEnum):
    """Notification kinds published to the sink."""

    TASK_CHANGED = "task_changed"
    TASK_LOG_ADDED = "task_log_added"


def make_task_id(project_dir: str, name: str) -> str:
    if not project_dir or not name:
        raise ValueError(f"task identity needs a project dir and a name (got {project_dir!r}, {name!r})")
    return f"{project_dir}:{name}"


@dataclass(slots=True, frozen=True)
class TaskLog:
    task_id: str
    type: LogType
    text: str
    created_at: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_id": self.task_id,
            "type": self.type.value,
            "text": self.text,
            "created_at": self.created_at,
        }


@dataclass(slots=True)
class Task:
    id: str
    project_dir: str
    name: str
    command: str
    status: TaskStatus = TaskStatus.IDLE
    logs: LogBuffer[TaskLog] = field(default_factory=lambda: LogBuffer(MAX_LOGS))
    # Only set while the task is running.
    process: ProcessHandle | None = None

    @classmethod
    def create(cls, project_dir: str, name: str, command: str, *, max_logs: int = MAX_LOGS) -> Task:
        return cls(
            id=make_task_id(project_dir, name),
            project_dir=project_dir,
            name=name,
            command=command,
            logs=LogBuffer(max_logs),
        )

    @property
    def is_running(self) -> bool:
        return self.status == TaskStatus.RUNNING

    def snapshot(self) -> dict[str, Any]:
        """Plain-data view of the task, safe to hand to observers."""
        return {
            "id": self.id,
            "project_dir": self.project_dir,
            "name": self.name,
            "command": self.command,
            "status": self.status.value,
            "logs": [entry.to_dict() for entry in self.logs],
            "running": self.process is not None,
        }


@dataclass(slots=True, frozen=True)
class TaskPatch:
    """
    Fields an update may touch.

    process=None means "leave the handle alone"; use detach_process=True to clear it.
    """

    status: TaskStatus | None = None
    process: ProcessHandle | None = None
    detach_process: bool = False

    def apply(self, task: Task) -> None:
        if self.status is not None:
            task.status = self.status
        if self.detach_process:
            task.process = None
        elif self.process is not None:
            task.process = self.process
