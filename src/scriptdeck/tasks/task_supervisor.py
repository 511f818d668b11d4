# src/scriptdeck/tasks/task_supervisor.py

from __future__ import annotations

"""
Process supervisor.

Owns the OS process behind a running task:
- spawns `<executable> run <task name>` in the task's project directory,
- pumps stdout/stderr chunks into the task's log buffer,
- classifies the exit exactly once and moves the task to its terminal status,
- signals the process group on stop.

All of it runs on the caller's event loop; nothing here blocks on process exit
except join()/shutdown().
"""

import asyncio
import codecs
import logging
import signal
from collections.abc import AsyncIterator
from dataclasses import dataclass

from ..core.ports import ByteStream, CommandResolver, ProcessHandle, ProcessLayer
from .task_models import LogType, Task, TaskPatch, TaskStatus
from .task_registry import TaskRegistry

logger = logging.getLogger(__name__)

DEFAULT_READ_CHUNK_SIZE = 64 * 1024


@dataclass(slots=True, frozen=True)
class ExitOutcome:
    status: TaskStatus
    log_type: LogType
    message: str


def split_returncode(returncode: int | None) -> tuple[int | None, str | None]:
    """
    Convert an asyncio return code into (exit code, signal name).

    asyncio reports death-by-signal N as -N; that run has no exit code.
    """
    if returncode is None:
        return None, None
    if returncode < 0:
        try:
            return None, signal.Signals(-returncode).name
        except ValueError:
            return None, f"SIG{-returncode}"
    return returncode, None


def classify_exit(task_id: str, code: int | None, signal_name: str | None = None) -> ExitOutcome:
    if code is None:
        return ExitOutcome(TaskStatus.TERMINATED, LogType.WARN, f"Task {task_id} was terminated")
    if code != 0:
        return ExitOutcome(TaskStatus.ERROR, LogType.ERROR, f"Task {task_id} ended with error code {code}")
    return ExitOutcome(TaskStatus.DONE, LogType.DONE, f"Task {task_id} completed")


async def iter_chunks(stream: ByteStream, chunk_size: int) -> AsyncIterator[bytes]:
    """Yield raw chunks as the stream delivers them; stops at EOF."""
    while True:
        chunk = await stream.read(chunk_size)
        if not chunk:
            return
        yield chunk


class ProcessSupervisor:
    def __init__(
            self,
            registry: TaskRegistry,
            process_layer: ProcessLayer,
            resolve_command: CommandResolver,
            *,
            read_chunk_size: int = DEFAULT_READ_CHUNK_SIZE,
    ) -> None:
        self._registry = registry
        self._process_layer = process_layer
        self._resolve_command = resolve_command
        self._chunk_size = max(1, int(read_chunk_size))
        self._watchers: dict[str, asyncio.Task[None]] = {}

    # ---- spawn / terminate ----

    async def spawn(self, task: Task) -> Task:
        """
        Start the task's process and return as soon as it is launched.

        A launch failure (missing executable, bad cwd...) ends the run in the
        error status with an explanatory log entry; it is never raised.
        """
        if task.is_running:
            return task

        args = ["run", task.name]
        try:
            executable = self._resolve_command(task.project_dir)
            process = await self._process_layer.spawn(executable, args, cwd=task.project_dir)
        except Exception as e:
            logger.warning("Task %s failed to start: %s", task.id, e)
            self._registry.update(task.id, TaskPatch(status=TaskStatus.ERROR, detach_process=True))
            self._registry.add_log(task.id, LogType.ERROR, f"Task {task.id} failed to start: {e}")
            return task

        self._registry.update(task.id, TaskPatch(status=TaskStatus.RUNNING, process=process))
        self._registry.add_log(task.id, LogType.INFO, f"Task {task.id} started")
        logger.info("Task %s started pid=%s cmd=%s %s", task.id, process.pid, executable, " ".join(args))

        self._watchers[task.id] = asyncio.create_task(
            self._supervise(task.id, process),
            name=f"supervise:{task.id}",
        )
        return task

    def terminate(self, task: Task) -> bool:
        """
        Ask the task's process group to terminate.

        Returns True when a signal was sent. The status change arrives later,
        through the completion handler.
        """
        process = task.process
        if not task.is_running or process is None:
            return False

        try:
            self._process_layer.terminate(process.pid)
        except ProcessLookupError:
            logger.debug("Task %s pid=%s already gone", task.id, process.pid)
            return False
        except OSError:
            logger.warning("Could not signal task %s pid=%s", task.id, process.pid, exc_info=True)
            return False

        logger.info("Termination requested task=%s pid=%s", task.id, process.pid)
        return True

    # ---- waiting ----

    def is_supervising(self, task_id: str) -> bool:
        return task_id in self._watchers

    async def join(self, task_id: str) -> None:
        watcher = self._watchers.get(task_id)
        if watcher is not None:
            await asyncio.shield(watcher)

    async def shutdown(self, *, timeout: float = 10.0) -> None:
        """Terminate every running task and wait for their completion handlers."""
        for task in self._registry.running_tasks():
            self.terminate(task)

        pending = [w for w in self._watchers.values() if not w.done()]
        if not pending:
            return
        _done, still_running = await asyncio.wait(pending, timeout=max(0.0, float(timeout)))
        if still_running:
            logger.warning("%d task(s) did not exit within %.1fs", len(still_running), timeout)

    # ---- background ----

    async def _supervise(self, task_id: str, process: ProcessHandle) -> None:
        try:
            await asyncio.gather(
                self._pump(task_id, process.stdout, LogType.STDOUT),
                self._pump(task_id, process.stderr, LogType.STDERR),
            )
            returncode: int | None = await process.wait()
        except Exception:
            logger.exception("Supervision failed task=%s", task_id)
            returncode = process.returncode

        try:
            self._complete(task_id, returncode)
        finally:
            if self._watchers.get(task_id) is asyncio.current_task():
                del self._watchers[task_id]

    async def _pump(self, task_id: str, stream: ByteStream | None, log_type: LogType) -> None:
        if stream is None:
            return

        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        try:
            async for chunk in iter_chunks(stream, self._chunk_size):
                logger.debug("task=%s %s +%d bytes", task_id, log_type.value, len(chunk))
                text = decoder.decode(chunk)
                if text:
                    self._registry.add_log(task_id, log_type, text)
        except Exception:
            logger.exception("Reading %s failed task=%s", log_type.value, task_id)

        tail = decoder.decode(b"", final=True)
        if tail:
            self._registry.add_log(task_id, log_type, tail)

    def _complete(self, task_id: str, returncode: int | None) -> None:
        code, signal_name = split_returncode(returncode)
        outcome = classify_exit(task_id, code, signal_name)

        self._registry.update(task_id, TaskPatch(status=outcome.status, detach_process=True))
        self._registry.add_log(task_id, outcome.log_type, outcome.message)

        if outcome.status == TaskStatus.DONE:
            logger.info("Task %s completed", task_id)
        else:
            logger.warning("Task %s -> %s (code=%s signal=%s)", task_id, outcome.status.value, code, signal_name)
