# src/scriptdeck/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The task core depends on Protocols instead of concrete implementations.
This keeps the manifest reader, the process layer and the notification transport
swappable and makes testing easier.
"""

from collections.abc import Callable, Mapping, Sequence
from typing import Any, Protocol

# Project directory -> executable used as `<executable> run <task name>`.
CommandResolver = Callable[[str], str]


class CommandProvider(Protocol):
    """
    Source of task definitions for a project directory.

    Returns a mapping task name -> command string, or None when the project
    declares no scripts at all (the registry then keeps its last known list).
    """

    def read_commands(self, project_dir: str) -> Mapping[str, str] | None: ...


class NotificationSink(Protocol):
    """Where task changes go (GraphQL pubsub, websocket hub, console printer...)."""

    def publish(self, event: str, payload: dict[str, Any]) -> None: ...


class ByteStream(Protocol):
    async def read(self, n: int = -1) -> bytes: ...


class ProcessHandle(Protocol):
    """The parts of a spawned process the supervisor relies on."""

    pid: int
    returncode: int | None
    stdout: ByteStream | None
    stderr: ByteStream | None

    async def wait(self) -> int: ...


class ProcessLayer(Protocol):
    async def spawn(self, executable: str, args: Sequence[str], *, cwd: str) -> ProcessHandle: ...

    def terminate(self, pid: int) -> None:
        """Signal the process group rooted at pid. Must not wait for the exit."""
        ...
