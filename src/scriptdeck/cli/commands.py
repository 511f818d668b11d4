# src/scriptdeck/cli/commands.py

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from pathlib import Path

from ..core.state import AppState
from ..tasks.task_models import Task, make_task_id

CommandHandler = Callable[[AppState, list[str]], Awaitable[str]]

logger = logging.getLogger(__name__)

DEFAULT_LOG_TAIL = 40


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /run, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        return await handler(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _resolve_task(state: AppState, args: list[str]) -> tuple[Task | None, str]:
    """Accept either a bare script name (current project) or a full task id."""
    if not args:
        return None, "Missing task name."
    ref = args[0]
    controller = state.controller
    task = controller.find_one(ref)
    if task is None:
        # Make sure the current project is synchronized before giving up.
        controller.list_tasks(state.project_dir)
        task = controller.find_one(make_task_id(state.project_dir, ref))
    if task is None:
        return None, f"No task named {ref!r} in {state.project_dir}. Use /list."
    return task, ""


async def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


async def cmd_list(state: AppState, args: list[str]) -> str:
    tasks = state.controller.list_tasks(state.project_dir)
    if not tasks:
        return f"No tasks in {state.project_dir}."
    width = max(len(t.name) for t in tasks)
    lines = [f"Tasks in {state.project_dir}:"]
    for t in tasks:
        lines.append(f"  {t.name.ljust(width)}  [{t.status.value}]  {t.command}")
    return "\n".join(lines)


async def cmd_run(state: AppState, args: list[str]) -> str:
    task, err = _resolve_task(state, args)
    if task is None:
        return err
    if task.is_running:
        return f"{task.name} is already running."
    await state.controller.run(task.id)
    return f"{task.name}: {task.status.value}"


async def cmd_stop(state: AppState, args: list[str]) -> str:
    task, err = _resolve_task(state, args)
    if task is None:
        return err
    if not task.is_running:
        return f"{task.name} is not running ({task.status.value})."
    state.controller.stop(task.id)
    return f"Stopping {task.name}..."


async def cmd_status(state: AppState, args: list[str]) -> str:
    task, err = _resolve_task(state, args)
    if task is None:
        return err
    pid = task.process.pid if task.process is not None else "-"
    return (
        f"Task {task.id}:\n"
        f"  Command: {task.command}\n"
        f"  Status: {task.status.value}\n"
        f"  Pid: {pid}\n"
        f"  Log entries: {len(task.logs)}/{task.logs.capacity}"
    )


async def cmd_logs(state: AppState, args: list[str]) -> str:
    """
    /logs <name>       -> last 40 entries
    /logs <name> <n>   -> last n entries
    """
    task, err = _resolve_task(state, args)
    if task is None:
        return err
    limit = DEFAULT_LOG_TAIL
    if len(args) > 1:
        try:
            limit = max(1, int(args[1]))
        except ValueError:
            return "Usage: /logs <name> [count]"
    entries = task.logs.snapshot()[-limit:]
    if not entries:
        return f"No logs for {task.name}."
    return "".join(
        e.text if e.text.endswith("\n") else e.text + "\n"
        for e in entries
    ).rstrip("\n")


async def cmd_clear(state: AppState, args: list[str]) -> str:
    task, err = _resolve_task(state, args)
    if task is None:
        return err
    state.controller.clear_logs(task.id)
    return f"Logs cleared for {task.name}."


async def cmd_cd(state: AppState, args: list[str]) -> str:
    if not args:
        return f"Current project: {state.project_dir}"
    target = Path(" ".join(args)).expanduser()
    if not target.is_absolute():
        target = Path(state.project_dir) / target
    target = target.resolve()
    if not target.is_dir():
        return f"Not a directory: {target}"
    state.project_dir = str(target)
    logger.info("Project switched to %s", state.project_dir)
    count = len(state.controller.list_tasks(state.project_dir))
    return f"Project: {state.project_dir} ({count} task(s))"


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("list", cmd_list, help_text="List tasks of the current project.", aliases=["ls"])
registry.register("run", cmd_run, help_text="Start a task: /run <name>.")
registry.register("stop", cmd_stop, help_text="Terminate a running task: /stop <name>.")
registry.register("status", cmd_status, help_text="Show one task: /status <name>.")
registry.register("logs", cmd_logs, help_text="Show task output: /logs <name> [count].")
registry.register("clear", cmd_clear, help_text="Clear task logs: /clear <name>.")
registry.register("cd", cmd_cd, help_text="Switch project directory: /cd <dir>.")
