# src/scriptdeck/connectors/console_connector.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import sys
import threading
from datetime import datetime
from typing import Any, TextIO

from ..cli.commands import registry as command_registry
from ..core.state import AppState
from ..tasks.task_models import LogType, TaskEvent

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


def _short_name(task_id: str, project_dir: str) -> str:
    prefix = f"{project_dir}:"
    return task_id[len(prefix):] if task_id.startswith(prefix) else task_id


class ConsolePrinter:
    """
    Pub/sub subscriber that mirrors task activity on the terminal.

    Output chunks are written as-is with a "[name]" prefix on each new line;
    lifecycle entries (started/completed/...) get a timestamp.
    """

    def __init__(self, state: AppState, *, echo_output: bool = True, out: TextIO | None = None) -> None:
        self._state = state
        self._echo_output = echo_output
        self._out = out or sys.stdout
        self._at_line_start: dict[str, bool] = {}

    def __call__(self, event: str, payload: dict[str, Any]) -> None:
        if event != TaskEvent.TASK_LOG_ADDED.value:
            return

        task_id = str(payload.get("task_id", ""))
        name = _short_name(task_id, self._state.project_dir)
        text = str(payload.get("text", ""))
        log_type = payload.get("type")

        if log_type in (LogType.STDOUT.value, LogType.STDERR.value):
            if self._echo_output:
                self._write_output(task_id, name, text)
            return

        if not self._at_line_start.get(task_id, True):
            self._out.write("\n")
            self._at_line_start[task_id] = True
        self._out.write(f"[{_ts_local()}] [{name}] {text}\n")
        self._out.flush()

    def _write_output(self, task_id: str, name: str, text: str) -> None:
        at_start = self._at_line_start.get(task_id, True)
        parts = text.splitlines(keepends=True)
        for part in parts:
            if at_start:
                self._out.write(f"[{name}] ")
            self._out.write(part)
            at_start = part.endswith(("\n", "\r"))
        self._at_line_start[task_id] = at_start
        self._out.flush()


def _resolve_ready(fut: asyncio.Future[None]) -> None:
    if not fut.done():
        fut.set_result(None)


class ConsoleInput:
    """
    Line reader for the console loop.

    Where the event loop can watch the input fd, lines are read from it directly,
    so a pending prompt is just a cancellable await. Otherwise (Windows proactor,
    regular files) readline() runs in a daemon thread, which never holds up
    interpreter exit.
    """

    def __init__(self, stream: TextIO | None = None, *, out: TextIO | None = None) -> None:
        self._stream = stream or sys.stdin
        self._out = out or sys.stdout
        self._buf = b""
        self._eof = False
        self._watch_fd = True

    async def readline(self, prompt: str = "") -> str:
        """Return the next line without its line ending; EOFError at end of input."""
        if prompt:
            self._out.write(prompt)
            self._out.flush()

        loop = asyncio.get_running_loop()
        fd = self._fileno()
        if fd is not None and self._watch_fd:
            try:
                return await self._read_fd(loop, fd)
            except (NotImplementedError, PermissionError):
                logger.debug("Input fd %d cannot be watched; reading in a thread", fd)
                self._watch_fd = False
        return await self._read_in_thread(loop)

    def _fileno(self) -> int | None:
        try:
            return self._stream.fileno()
        except (AttributeError, OSError, ValueError):
            return None

    async def _read_fd(self, loop: asyncio.AbstractEventLoop, fd: int) -> str:
        while b"\n" not in self._buf and not self._eof:
            ready: asyncio.Future[None] = loop.create_future()
            loop.add_reader(fd, _resolve_ready, ready)
            try:
                await ready
            finally:
                loop.remove_reader(fd)
            chunk = os.read(fd, 4096)
            if chunk:
                self._buf += chunk
            else:
                self._eof = True

        if b"\n" in self._buf:
            raw, _, self._buf = self._buf.partition(b"\n")
        elif self._buf:
            raw, self._buf = self._buf, b""
        else:
            raise EOFError
        return raw.decode("utf-8", errors="replace").rstrip("\r")

    def _read_in_thread(self, loop: asyncio.AbstractEventLoop) -> asyncio.Future[str]:
        fut: asyncio.Future[str] = loop.create_future()

        def deliver(line: str, exc: BaseException | None) -> None:
            if fut.done():
                return
            if exc is not None:
                fut.set_exception(exc)
            else:
                fut.set_result(line)

        def reader() -> None:
            line, exc = "", None
            try:
                line = self._stream.readline()
                if not line:
                    exc = EOFError()
            except Exception as e:
                exc = e
            # The loop may already be closed if the console was interrupted.
            with contextlib.suppress(RuntimeError):
                loop.call_soon_threadsafe(deliver, line.rstrip("\r\n"), exc)

        threading.Thread(target=reader, name="console-input", daemon=True).start()
        return fut


async def run_console_loop(state: AppState, *, console_input: ConsoleInput | None = None) -> None:
    logger.info("Console connector started project=%s", state.project_dir)
    _print_ts(f"[CONSOLE] Project: {state.project_dir}. Use /help for commands. Use /exit to quit.\n")

    echo = bool(getattr(state.settings, "console_echo_output", True))
    unsubscribe = state.pubsub.subscribe(ConsolePrinter(state, echo_output=echo))
    reader = console_input or ConsoleInput()

    try:
        while True:
            try:
                user_input = (await reader.readline(">>> ")).strip()
            except EOFError:
                logger.info("Console EOF received, exiting.")
                break

            if not user_input:
                continue

            if user_input.lower() in ("/exit", "/quit"):
                logger.info("Console exit command received.")
                break

            if not user_input.startswith("/"):
                # Bare words are shorthand for /run.
                user_input = f"/run {user_input}"

            try:
                cmd_response = await command_registry.handle(state, user_input)
            except Exception:
                logger.exception("Command handler crashed.")
                cmd_response = "Internal error while handling a command."

            if cmd_response is not None:
                _print_ts(cmd_response)
    finally:
        unsubscribe()

    logger.info("Console connector finished.")
