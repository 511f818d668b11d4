# src/scriptdeck/tasks/process_layer.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import signal
from collections.abc import Sequence

import psutil

logger = logging.getLogger(__name__)


class AsyncioProcessLayer:
    """
    ProcessLayer backed by asyncio subprocesses.

    Every script runs in its own session, so its pid is also its process group
    id and terminate() reaches the whole tree the script started
    (npm -> node -> webpack workers...).
    """

    def __init__(self, *, term_signal: int = signal.SIGTERM) -> None:
        self._term_signal = term_signal

    async def spawn(self, executable: str, args: Sequence[str], *, cwd: str) -> asyncio.subprocess.Process:
        # stdin=None inherits ours; output is captured for the log buffer.
        return await asyncio.create_subprocess_exec(
            executable,
            *args,
            cwd=cwd,
            stdin=None,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=(os.name != "nt"),
        )

    def terminate(self, pid: int) -> None:
        """
        Send the termination signal to the process group rooted at pid.

        Descendants that moved to another process group are signalled one by one.
        Raises ProcessLookupError when the process no longer exists.
        """
        try:
            root = psutil.Process(pid)
            descendants = root.children(recursive=True)
        except psutil.NoSuchProcess as e:
            raise ProcessLookupError(pid) from e

        if os.name == "nt":
            for proc in [*descendants, root]:
                with contextlib.suppress(psutil.NoSuchProcess):
                    proc.terminate()
            return

        os.killpg(pid, self._term_signal)

        for proc in descendants:
            with contextlib.suppress(psutil.NoSuchProcess, ProcessLookupError):
                if os.getpgid(proc.pid) != pid:
                    logger.debug("Signalling escaped descendant pid=%s of %s", proc.pid, pid)
                    proc.send_signal(self._term_signal)
